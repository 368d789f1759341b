"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
Per-call types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All records are frozen dataclasses for immutability guarantee
- Errors that reach the caller are exceptions; degraded operation is
  reported as data (Anomaly), never raised
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple
from enum import Enum, auto
import math


# =============================================================================
# CALLER-VISIBLE ERRORS (only two kinds ever propagate)
# =============================================================================

class AspdError(Exception):
    """Base class for every error the engine surfaces to a caller."""


class MalformedInputError(AspdError, TypeError):
    """
    Input violates the call contract (non-string text, non-numeric
    capability, unknown branch or level name).
    """


class ConfigurationError(AspdError, ValueError):
    """
    Engine configuration is internally inconsistent.
    Raised at construction time, never while processing.
    """


# =============================================================================
# ANOMALIES (Explicit, never silent, never raised)
# =============================================================================

class AnomalyCode(Enum):
    """
    Recoverable run-time conditions.
    Every degraded path is enumerated here.
    """
    UNRECOGNIZED_MODE = auto()
    INVARIANT_VIOLATION = auto()
    LEVEL_OVERRIDE_REJECTED = auto()
    EMPTY_AFTER_FILTER = auto()


@dataclass(frozen=True)
class Anomaly:
    """
    Immutable anomaly record.
    Anomalies are data, not exceptions - they travel inside the report.
    """
    code: AnomalyCode
    message: str
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Anomaly:
        """Return new Anomaly with additional context (immutable)."""
        return Anomaly(
            code=self.code,
            message=self.message,
            context=self.context + ((key, value),)
        )

    def to_dict(self) -> dict:
        return {
            'code': self.code.name,
            'message': self.message,
            'context': dict(self.context),
        }


# =============================================================================
# TEMPORAL TYPES (audit trail only - the pipeline itself is timeless)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class TimeRange:
    """Immutable time range for audit queries."""
    start: Timestamp
    end: Timestamp

    def __post_init__(self):
        if self.start.value > self.end.value:
            raise ValueError("TimeRange start must be before or equal to end")

    def contains(self, timestamp: Timestamp) -> bool:
        return self.start.value <= timestamp.value <= self.end.value


# =============================================================================
# CALIBRATION (the AIc + 0.1 = BMqs relationship)
# =============================================================================

INVARIANT_TOLERANCE = 1e-4
DEFAULT_CAPABILITY = 2.89
DEFAULT_SAFETY_MARGIN = 0.1
DEFAULT_CEILING = 2.99


class ViolationSeverity(Enum):
    """How far a calibration has drifted from its invariant."""
    NONE = "none"
    LOW = "low"          # deviation <= tolerance * 10
    MEDIUM = "medium"    # deviation <= tolerance * 100
    HIGH = "high"


@dataclass(frozen=True)
class CalibrationState:
    """
    The three calibration numbers.

    Invariant (checked, not enforced here):
        capability + safety_margin == ceiling   (abs tolerance 1e-4)

    The state is replaced wholesale, never edited in place.
    """
    capability: float = DEFAULT_CAPABILITY
    safety_margin: float = DEFAULT_SAFETY_MARGIN
    ceiling: float = DEFAULT_CEILING

    @property
    def deviation(self) -> float:
        return abs(self.capability + self.safety_margin - self.ceiling)

    @property
    def ratio(self) -> float:
        if self.ceiling == 0:
            return 0.0
        return self.capability / self.ceiling

    @staticmethod
    def aligned(capability: float, safety_margin: float = DEFAULT_SAFETY_MARGIN) -> CalibrationState:
        """Build a state whose ceiling satisfies the invariant by construction."""
        return CalibrationState(
            capability=capability,
            safety_margin=safety_margin,
            ceiling=capability + safety_margin
        )


@dataclass(frozen=True)
class InvariantCheck:
    """Immutable result of one invariant validation."""
    valid: bool
    capability: float
    safety_margin: float
    ceiling: float
    deviation: float
    ratio: float
    severity: ViolationSeverity = ViolationSeverity.NONE
    warning_count: int = 0

    @property
    def message(self) -> str:
        if self.valid:
            return (
                f"Invariant intact: {self.capability} + {self.safety_margin} "
                f"= {self.ceiling}"
            )
        return (
            f"Invariant violated: {self.capability} + {self.safety_margin} "
            f"!= {self.ceiling} (deviation: {self.deviation:.6g}, "
            f"severity: {self.severity.value}, warnings: {self.warning_count})"
        )

    def to_dict(self) -> dict:
        return {
            'valid': self.valid,
            'capability': self.capability,
            'safety_margin': self.safety_margin,
            'ceiling': self.ceiling,
            'deviation': self.deviation,
            'ratio': self.ratio,
            'severity': self.severity.value,
            'warning_count': self.warning_count,
        }


def is_real_number(value: object) -> bool:
    """True for finite int/float values (bool excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
