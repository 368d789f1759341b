"""
Padding Layer (Padding Selector)

RESPONSIBILITY: Map (context verdict, invariant ratio) to a Boolean-Mind
                level and rewrite text with that level's templates
ALLOWED INPUTS: Filtered text, ContextVerdict, calibration ratio
OUTPUTS: PaddingOutcome (text + immutable PaddingDecision)

WHAT THIS LAYER MUST NOT DO:
============================
- Raise on an unknown mode (fall back to StandardPadding/medium)
- Generate text beyond the fixed templates
- Change text at level none

BOUNDARY ENFORCEMENT:
=====================
Branch (professional / informal) only changes medium and enhanced
templates. force_conservative always yields StandardPadding/medium.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple
import re
import threading

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import Anomaly, AnomalyCode, ConfigurationError, MalformedInputError
from ..contracts.report import (
    BooleanMindLevel, Branch, ContextVerdict, PaddingDecision, PaddingMode,
)
from ..contracts.events import AuditLogEntry, AuditEventType


class Register(Enum):
    """Which template family a rewrite draws from."""
    ACADEMIC = "academic"
    CONVERSATIONAL = "conversational"


MODE_LABELS: Dict[PaddingMode, str] = {
    PaddingMode.STANDARD_PADDING: "SPD (Standard Social Padding)",
    PaddingMode.SEMI_PADDING_BY_CAPABILITY: "SBMPD/AMF (Semi-Boolean Mind Padding modified by AMF)",
}


def describe_mode(mode: PaddingMode, velocity_factor: float) -> str:
    if mode == PaddingMode.VELOCITY_ADJUSTED:
        return f"Velocity-adjusted padding ({velocity_factor}x)"
    return MODE_LABELS[mode]


# =============================================================================
# TEMPLATES
# =============================================================================

@dataclass(frozen=True)
class Template:
    opener: str
    closer: str


MEDIUM_TEMPLATES: Dict[Tuple[Register, Branch], Template] = {
    (Register.ACADEMIC, Branch.PROFESSIONAL): Template(
        "In academic contexts, it is worth considering the following:",
        "This approach aligns with scholarly communication standards."
    ),
    (Register.ACADEMIC, Branch.INFORMAL): Template(
        "Here's the academic side of it:",
        "Hope that lines up with what you were looking for."
    ),
    (Register.CONVERSATIONAL, Branch.PROFESSIONAL): Template(
        "Thank you for your message.",
        "Please let me know if anything needs clarification."
    ),
    (Register.CONVERSATIONAL, Branch.INFORMAL): Template(
        "Thanks for reaching out!",
        "Let me know if you need anything else."
    ),
}

ENHANCED_TEMPLATES: Dict[Tuple[Register, Branch], Template] = {
    (Register.ACADEMIC, Branch.PROFESSIONAL): Template(
        "Thank you for this thoughtful academic inquiry.",
        "I hope this provides the scholarly perspective you're seeking."
    ),
    (Register.ACADEMIC, Branch.INFORMAL): Template(
        "Thanks so much for such a thoughtful question.",
        "I hope this helps with your studies."
    ),
    (Register.CONVERSATIONAL, Branch.PROFESSIONAL): Template(
        "I appreciate you reaching out.",
        "I'm here to help if you have any other questions."
    ),
    (Register.CONVERSATIONAL, Branch.INFORMAL): Template(
        "I really appreciate you reaching out.",
        "I'm always here if you need anything."
    ),
}

QUESTION_ACKNOWLEDGMENT = "I understand you're asking about this."
WARMTH_PHRASE = "Take care, and talk soon!"

LIGHT_REQUEST_PREFIX = "Please,"
LIGHT_PREFIXES: Dict[Register, str] = {
    Register.ACADEMIC: "Regarding your inquiry:",
    Register.CONVERSATIONAL: "Regarding your message:",
}

_POLITENESS = re.compile(r"\b(?:please|kindly|regarding|thanks?|thank you)\b", re.IGNORECASE)
_REQUEST = re.compile(r"^\s*(?:can|could|would|will)\s+you\b", re.IGNORECASE)
_FIRST_WORD = re.compile(r"^\S+")


def _ensure_terminal(text: str) -> str:
    text = text.strip()
    if text and text[-1] not in ".!?":
        return text + "."
    return text


def _lower_first(text: str) -> str:
    """Lower-case the first letter unless the first word is 'I' or an acronym."""
    match = _FIRST_WORD.match(text)
    if not match:
        return text
    word = match.group(0)
    if word in ("I", "I'm", "I've", "I'll", "I'd") or (len(word) > 1 and word.isupper()):
        return text
    return text[0].lower() + text[1:]


# =============================================================================
# SELECTOR
# =============================================================================

@dataclass
class PaddingConfig:
    """Thresholds for level selection."""
    release_safe_ratio: float = 0.96
    velocity_light_min: float = 1.1
    velocity_medium_above: float = 1.4

    def __post_init__(self):
        if not self.velocity_light_min <= self.velocity_medium_above:
            raise ConfigurationError(
                "velocity_light_min must not exceed velocity_medium_above"
            )
        if not 0.0 < self.release_safe_ratio <= 1.0:
            raise ConfigurationError("release_safe_ratio must be in (0, 1]")


@dataclass(frozen=True)
class PaddingOutcome:
    text: str
    decision: PaddingDecision


class PaddingSelector:
    """
    Chooses and applies the Boolean-Mind level.

    Level selection:
        StandardPadding          -> medium
        SemiPaddingByCapability  -> light if ratio >= release_safe_ratio else medium
        VelocityAdjusted         -> none (< 1.1), light (1.1 .. 1.4), medium (> 1.4)
    """

    def __init__(self, config: Optional[PaddingConfig] = None):
        self._config = config or PaddingConfig()
        self._lock = threading.RLock()
        self._audit_log: List[AuditLogEntry] = []

    def level_for(
        self,
        mode: PaddingMode,
        velocity_factor: float,
        invariant_ratio: float
    ) -> BooleanMindLevel:
        if mode == PaddingMode.STANDARD_PADDING:
            return BooleanMindLevel.MEDIUM
        if mode == PaddingMode.SEMI_PADDING_BY_CAPABILITY:
            if invariant_ratio >= self._config.release_safe_ratio:
                return BooleanMindLevel.LIGHT
            return BooleanMindLevel.MEDIUM
        if velocity_factor < self._config.velocity_light_min:
            return BooleanMindLevel.NONE
        if velocity_factor <= self._config.velocity_medium_above:
            return BooleanMindLevel.LIGHT
        return BooleanMindLevel.MEDIUM

    def apply(
        self,
        text: str,
        verdict: ContextVerdict,
        invariant_ratio: float,
        branch: Branch = Branch.PROFESSIONAL,
        force_conservative: bool = False,
        level: Optional[BooleanMindLevel] = None
    ) -> PaddingOutcome:
        """
        Select a level for `verdict` and rewrite `text`.

        force_conservative is raised when the invariant failed; it pins
        StandardPadding/medium and rejects any explicit `level`.
        """
        if not isinstance(text, str):
            raise MalformedInputError(f"text must be a string, got {type(text).__name__}")
        branch = Branch.parse(branch)
        anomalies: List[Anomaly] = []

        mode = verdict.suggested_mode
        if force_conservative:
            mode = PaddingMode.STANDARD_PADDING
            chosen = BooleanMindLevel.MEDIUM
            if level is not None:
                anomalies.append(Anomaly(
                    code=AnomalyCode.LEVEL_OVERRIDE_REJECTED,
                    message=f"Level '{BooleanMindLevel.parse(level).value}' rejected "
                            f"while the invariant is broken"
                ))
        else:
            if not isinstance(mode, PaddingMode):
                anomalies.append(Anomaly(
                    code=AnomalyCode.UNRECOGNIZED_MODE,
                    message="Unrecognized padding mode, falling back to StandardPadding",
                    context=(("mode", repr(mode)),)
                ))
                mode = PaddingMode.STANDARD_PADDING
            chosen = self.level_for(mode, verdict.velocity_factor, invariant_ratio)
            if level is not None:
                chosen = BooleanMindLevel.parse(level)

        register = Register.ACADEMIC if verdict.is_academic_like else Register.CONVERSATIONAL
        rendered = self.render(text, chosen, branch, register)

        decision = PaddingDecision(
            level=chosen,
            branch=branch,
            mode=mode,
            description=describe_mode(mode, verdict.velocity_factor),
            invariant_held=not force_conservative,
            anomalies=tuple(anomalies)
        )

        for anomaly in anomalies:
            self._log_audit(
                action="anomaly",
                event_type=AuditEventType.ANOMALY,
                metadata=(("code", anomaly.code.name), ("message", anomaly.message))
            )
        self._log_audit(
            action="padding_selected",
            metadata=(
                ("mode", mode.value),
                ("level", chosen.value),
                ("branch", branch.value),
            )
        )
        return PaddingOutcome(text=rendered, decision=decision)

    def render(
        self,
        text: str,
        level: BooleanMindLevel,
        branch: Branch = Branch.PROFESSIONAL,
        register: Register = Register.CONVERSATIONAL
    ) -> str:
        """Apply one level's templates directly."""
        if not isinstance(text, str):
            raise MalformedInputError(f"text must be a string, got {type(text).__name__}")
        level = BooleanMindLevel.parse(level)
        branch = Branch.parse(branch)

        if level == BooleanMindLevel.NONE:
            return text
        if level == BooleanMindLevel.LIGHT:
            return self._light(text, register)
        if level == BooleanMindLevel.MEDIUM:
            return self._medium(text, branch, register)
        return self._enhanced(text, branch, register)

    @staticmethod
    def _light(text: str, register: Register) -> str:
        if _POLITENESS.search(text):
            return text
        body = text.strip()
        if _REQUEST.match(body):
            return f"{LIGHT_REQUEST_PREFIX} {_lower_first(body)}"
        return f"{LIGHT_PREFIXES[register]} {body}"

    @staticmethod
    def _medium(text: str, branch: Branch, register: Register) -> str:
        template = MEDIUM_TEMPLATES[(register, branch)]
        parts = [template.opener]
        if "?" in text:
            parts.append(QUESTION_ACKNOWLEDGMENT)
        parts.append(_ensure_terminal(text))
        parts.append(template.closer)
        return " ".join(p for p in parts if p)

    @staticmethod
    def _enhanced(text: str, branch: Branch, register: Register) -> str:
        template = ENHANCED_TEMPLATES[(register, branch)]
        parts = [template.opener, _ensure_terminal(text), template.closer]
        if branch == Branch.INFORMAL:
            parts.append(WARMTH_PHRASE)
        return " ".join(p for p in parts if p)

    def _log_audit(
        self,
        action: str,
        event_type: AuditEventType = AuditEventType.PADDING,
        metadata: tuple = ()
    ):
        entry = AuditLogEntry.create(
            layer="padding",
            action=action,
            event_type=event_type,
            metadata=metadata
        )
        with self._lock:
            self._audit_log.append(entry)

    def drain_audit_log(self) -> List[AuditLogEntry]:
        """Return and clear pending audit entries."""
        with self._lock:
            entries, self._audit_log = self._audit_log, []
        return entries
