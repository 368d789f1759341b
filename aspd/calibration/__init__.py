"""
Calibration Layer (Invariant Validator)

RESPONSIBILITY: Hold the process-wide CalibrationState and check
                capability + safety_margin == ceiling
ALLOWED INPUTS: New capability values, replacement CalibrationState
OUTPUTS: InvariantCheck (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Raise on an invariant violation (a failed check is data)
- Choose padding or touch text
- Repair a corrupted state on its own

BOUNDARY ENFORCEMENT:
=====================
The state is owned by one validator instance and replaced wholesale.
All read-modify-write sequences run under a re-entrant lock so that
concurrent callers never observe a half-updated state.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional
import threading

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import (
    CalibrationState, InvariantCheck, ViolationSeverity,
    ConfigurationError, MalformedInputError, is_real_number,
    DEFAULT_CAPABILITY, DEFAULT_SAFETY_MARGIN, INVARIANT_TOLERANCE,
)
from ..contracts.events import AuditLogEntry, AuditEventType


@dataclass
class CalibrationConfig:
    """
    Configuration for the invariant validator.

    A missing ceiling is derived from capability + safety_margin.
    An explicit ceiling must already satisfy the invariant.
    """
    capability: float = DEFAULT_CAPABILITY
    safety_margin: float = DEFAULT_SAFETY_MARGIN
    ceiling: Optional[float] = None
    tolerance: float = INVARIANT_TOLERANCE
    release_safe_ratio: float = 0.96

    def __post_init__(self):
        for name in ('capability', 'safety_margin', 'tolerance', 'release_safe_ratio'):
            if not is_real_number(getattr(self, name)):
                raise ConfigurationError(f"{name} must be a finite number")
        if self.safety_margin <= 0:
            raise ConfigurationError("safety_margin must be positive")
        if self.tolerance <= 0:
            raise ConfigurationError("tolerance must be positive")

        if self.ceiling is None:
            self.ceiling = round(self.capability + self.safety_margin, 10)
        elif not is_real_number(self.ceiling):
            raise ConfigurationError("ceiling must be a finite number")

        if abs(self.capability + self.safety_margin - self.ceiling) >= self.tolerance:
            raise ConfigurationError(
                f"Calibration defaults break the invariant: "
                f"{self.capability} + {self.safety_margin} != {self.ceiling}"
            )

    def to_state(self) -> CalibrationState:
        return CalibrationState(
            capability=self.capability,
            safety_margin=self.safety_margin,
            ceiling=self.ceiling
        )


class InvariantValidator:
    """
    The heat shield's numeric check.

    check() never throws. recalibrate() leaves the state valid by
    construction and returns the fresh check so callers always see it.
    """

    def __init__(self, config: Optional[CalibrationConfig] = None):
        self._config = config or CalibrationConfig()
        self._state = self._config.to_state()
        self._warning_count = 0
        self._lock = threading.RLock()
        self._audit_log: List[AuditLogEntry] = []

    @property
    def state(self) -> CalibrationState:
        with self._lock:
            return self._state

    @property
    def tolerance(self) -> float:
        return self._config.tolerance

    def check(self) -> InvariantCheck:
        with self._lock:
            state = self._state
            deviation = state.deviation
            valid = deviation < self._config.tolerance

            if valid:
                self._warning_count = 0
                severity = ViolationSeverity.NONE
            else:
                self._warning_count += 1
                severity = self._severity(deviation)

            result = InvariantCheck(
                valid=valid,
                capability=state.capability,
                safety_margin=state.safety_margin,
                ceiling=state.ceiling,
                deviation=deviation,
                ratio=state.ratio,
                severity=severity,
                warning_count=self._warning_count
            )

        if not valid:
            self._log_audit(
                action="invariant_violated",
                metadata=(
                    ("deviation", f"{deviation:.6g}"),
                    ("severity", severity.value),
                    ("warning_count", str(result.warning_count)),
                )
            )
        return result

    def recalibrate(self, new_capability: float) -> InvariantCheck:
        """Set capability, re-derive the ceiling, and return the new check."""
        if not is_real_number(new_capability):
            raise MalformedInputError(
                f"capability must be a finite number, got {new_capability!r}"
            )

        with self._lock:
            previous = self._state
            self._state = CalibrationState.aligned(
                capability=float(new_capability),
                safety_margin=previous.safety_margin
            )
            result = self.check()

        self._log_audit(
            action="recalibrated",
            metadata=(
                ("previous_capability", str(previous.capability)),
                ("capability", str(result.capability)),
                ("ceiling", str(result.ceiling)),
            )
        )
        return result

    def reconfigure(self, state: CalibrationState):
        """
        Replace the whole calibration state.
        The invariant is NOT enforced here; the next check reports it.
        """
        if not isinstance(state, CalibrationState):
            raise MalformedInputError("reconfigure expects a CalibrationState")
        for name in ('capability', 'safety_margin', 'ceiling'):
            if not is_real_number(getattr(state, name)):
                raise MalformedInputError(f"{name} must be a finite number")

        with self._lock:
            self._state = state

        self._log_audit(
            action="reconfigured",
            metadata=(
                ("capability", str(state.capability)),
                ("safety_margin", str(state.safety_margin)),
                ("ceiling", str(state.ceiling)),
            )
        )

    def ratio(self) -> float:
        with self._lock:
            return self._state.ratio

    def is_release_safe(self) -> bool:
        return self.ratio() >= self._config.release_safe_ratio

    def _severity(self, deviation: float) -> ViolationSeverity:
        tolerance = self._config.tolerance
        if deviation <= tolerance * 10:
            return ViolationSeverity.LOW
        if deviation <= tolerance * 100:
            return ViolationSeverity.MEDIUM
        return ViolationSeverity.HIGH

    def _log_audit(self, action: str, metadata: tuple = ()):
        entry = AuditLogEntry.create(
            layer="calibration",
            action=action,
            event_type=AuditEventType.CALIBRATION,
            entity_id="calibration_state",
            metadata=metadata
        )
        with self._lock:
            self._audit_log.append(entry)

    def drain_audit_log(self) -> List[AuditLogEntry]:
        """Return and clear pending audit entries."""
        with self._lock:
            entries, self._audit_log = self._audit_log, []
        return entries
