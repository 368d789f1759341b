"""
Decision and Report Contracts

Records produced fresh by every processing call:
ContextVerdict (context layer), PaddingDecision (padding layer) and the
ProcessingReport that bundles them for the caller.

None of these are shared across calls or mutated after construction.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from .base import Anomaly, InvariantCheck, MalformedInputError
from .utterance import Utterance


FORMULA_EQUATION = "ASPD = (SPD v SBMPD/AMF)v"


# =============================================================================
# ENUMS (Closed World)
# =============================================================================

class ContextType(Enum):
    FORMAL_ACADEMIC = "formal_academic"
    NEURODIVERSITY_SCHOLARLY = "neurodiversity_scholarly"
    CASUAL_ACADEMIC = "casual_academic"
    PERSONAL_COMMUNICATION = "personal_communication"
    GENERAL = "general"


class PaddingMode(Enum):
    """ASPD strategies."""
    STANDARD_PADDING = "StandardPadding"
    SEMI_PADDING_BY_CAPABILITY = "SemiPaddingByCapability"
    VELOCITY_ADJUSTED = "VelocityAdjusted"


class BooleanMindLevel(Enum):
    """How much social-conversational rewriting is re-applied."""
    NONE = "none"
    LIGHT = "light"
    MEDIUM = "medium"
    ENHANCED = "enhanced"

    @property
    def description(self) -> str:
        return _LEVEL_DESCRIPTIONS[self]

    @staticmethod
    def parse(value: Union[str, BooleanMindLevel]) -> BooleanMindLevel:
        if isinstance(value, BooleanMindLevel):
            return value
        if isinstance(value, str):
            for level in BooleanMindLevel:
                if level.value == value.strip().lower():
                    return level
        raise MalformedInputError(f"Unknown Boolean-Mind level: {value!r}")


_LEVEL_DESCRIPTIONS = {
    BooleanMindLevel.NONE: "Raw output with no social padding",
    BooleanMindLevel.LIGHT: "Light social context for basic interactions",
    BooleanMindLevel.MEDIUM: "Balanced communication (default)",
    BooleanMindLevel.ENHANCED: "Additional social context for neurotypical communication",
}


class Branch(Enum):
    """Tone selector. Only affects medium and enhanced templates."""
    PROFESSIONAL = "professional"
    INFORMAL = "informal"

    @staticmethod
    def parse(value: Union[str, Branch, None]) -> Branch:
        if value is None:
            return Branch.PROFESSIONAL
        if isinstance(value, Branch):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            # family/friends is the historical name of the informal branch
            if normalized in ("family_friends", "family", "friends"):
                return Branch.INFORMAL
            for branch in Branch:
                if branch.value == normalized:
                    return branch
        raise MalformedInputError(f"Unknown branch: {value!r}")


# =============================================================================
# CONTEXT VERDICT
# =============================================================================

@dataclass(frozen=True)
class KeywordScores:
    """Weighted hits per keyword set for one utterance."""
    formal: float = 0.0
    neurodiversity: float = 0.0
    casual: float = 0.0
    personal: float = 0.0

    @property
    def academic(self) -> float:
        return self.formal + self.neurodiversity + self.casual

    @property
    def total(self) -> float:
        return self.academic + self.personal

    def to_dict(self) -> dict:
        return {
            'formal': self.formal,
            'neurodiversity': self.neurodiversity,
            'casual': self.casual,
            'personal': self.personal,
        }


@dataclass(frozen=True)
class ContextVerdict:
    is_academic_like: bool
    context_type: ContextType
    confidence: float
    suggested_mode: PaddingMode
    velocity_factor: float = 1.0
    scores: KeywordScores = field(default_factory=KeywordScores)
    rule_name: str = "general"

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be between 0.0 and 1.0")
        if self.velocity_factor <= 0:
            raise ValueError("velocity_factor must be positive")


# =============================================================================
# PADDING DECISION
# =============================================================================

@dataclass(frozen=True)
class PaddingDecision:
    level: BooleanMindLevel
    branch: Branch
    mode: PaddingMode
    description: str
    invariant_held: bool
    anomalies: Tuple[Anomaly, ...] = field(default_factory=tuple)


# =============================================================================
# REPORT
# =============================================================================

@dataclass(frozen=True)
class ProcessOptions:
    """
    Per-call options. `level` requests an explicit Boolean-Mind level.
    String values are normalized to their enums on construction.
    """
    branch: Branch = Branch.PROFESSIONAL
    level: Optional[BooleanMindLevel] = None

    def __post_init__(self):
        object.__setattr__(self, 'branch', Branch.parse(self.branch))
        if self.level is not None:
            object.__setattr__(self, 'level', BooleanMindLevel.parse(self.level))


@dataclass(frozen=True)
class ProcessingReport:
    """
    Everything decided during one pass.

    amf_alignment mirrors the invariant check; together with `anomalies`
    it is the only channel through which degraded operation is reported.
    """
    academic_context: ContextVerdict
    padding_applied: str
    boolean_mind_level: BooleanMindLevel
    amf_alignment: bool
    velocity_factor: float
    formula_equation: str = FORMULA_EQUATION

    utterance: Optional[Utterance] = None
    padding_decision: Optional[PaddingDecision] = None
    invariant: Optional[InvariantCheck] = None
    filter_hits: int = 0
    anomalies: Tuple[Anomaly, ...] = field(default_factory=tuple)
    stages: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def summary(self) -> str:
        alignment = "aligned" if self.amf_alignment else "NOT aligned"
        return (
            f"ASPD: {self.academic_context.context_type.value} | "
            f"{self.padding_applied} | BM Level: {self.boolean_mind_level.value} | "
            f"AMF: {alignment} | Velocity: {self.velocity_factor}x"
        )


@dataclass(frozen=True)
class ProcessingResult:
    text: str
    report: ProcessingReport
