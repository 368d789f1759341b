"""
Context Layer (Context Detector)

RESPONSIBILITY: Score text against weighted keyword sets and pick a
                communicative context plus a suggested padding mode
ALLOWED INPUTS: Filtered text
OUTPUTS: ContextVerdict (immutable, fresh per call)

WHAT THIS LAYER MUST NOT DO:
============================
- Learn or adapt weights (counting only)
- Read calibration state or choose a padding level
- Raise on empty input (no hits means neutral confidence 0.5)

BOUNDARY ENFORCEMENT:
=====================
Precedence lives in an ordered tuple of ContextRule, first match wins,
so each rule can be tested on its own.
Keyword sets are validated as disjoint with positive weights at
construction time.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Pattern, Tuple
import re
import threading

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import ConfigurationError, MalformedInputError
from ..contracts.report import ContextType, ContextVerdict, KeywordScores, PaddingMode
from ..contracts.events import AuditLogEntry, AuditEventType


# =============================================================================
# KEYWORD SETS
# =============================================================================

FORMAL = "formal_academic"
NEURODIVERSITY = "neurodiversity"
CASUAL = "casual_academic"
PERSONAL = "personal"

SET_NAMES: Tuple[str, ...] = (FORMAL, NEURODIVERSITY, CASUAL, PERSONAL)


@dataclass(frozen=True)
class KeywordSet:
    """A named set of keywords, each with a positive weight."""
    name: str
    weights: Tuple[Tuple[str, float], ...]

    @staticmethod
    def uniform(name: str, keywords, weight: float = 1.0) -> KeywordSet:
        return KeywordSet(name=name, weights=tuple((k, weight) for k in keywords))

    @property
    def keywords(self) -> Tuple[str, ...]:
        return tuple(k for k, _ in self.weights)


DEFAULT_KEYWORD_SETS: Tuple[KeywordSet, ...] = (
    KeywordSet.uniform(FORMAL, (
        "academic", "scholar", "scholarly", "research", "inquiry", "university",
        "dissertation", "thesis", "publication", "journal", "conference",
        "analysis", "methodology", "hypothesis", "theory", "empirical",
        "peer-review", "rigorous", "literature",
    )),
    KeywordSet.uniform(NEURODIVERSITY, (
        "neurodiversity", "neurodivergent", "autism", "autistic", "spectrum",
        "adhd", "cognitive", "psychology", "behavioral",
    )),
    KeywordSet.uniform(CASUAL, (
        "college", "course", "paper", "study", "class", "lecture", "homework",
        "assignment", "professor", "exam", "semester",
    )),
    KeywordSet.uniform(PERSONAL, (
        "personal", "sharing", "experience", "feel", "feeling", "believe",
        "opinion", "story", "family", "friend", "emotional", "upset", "happy",
        "sad", "love", "miss",
    )),
)


# =============================================================================
# RULES
# =============================================================================

@dataclass(frozen=True)
class ContextOutcome:
    context_type: ContextType
    mode: PaddingMode
    velocity_factor: float
    is_academic_like: bool


@dataclass(frozen=True)
class ContextRule:
    """Predicate over keyword scores plus the outcome it selects."""
    name: str
    predicate: Callable[[KeywordScores], bool]
    outcome: ContextOutcome


def build_default_rules(formal_threshold: float = 3.0) -> Tuple[ContextRule, ...]:
    return (
        ContextRule(
            name="neurodiversity_scholarly",
            predicate=lambda s: s.neurodiversity > 0 and (s.formal + s.casual) > 0,
            outcome=ContextOutcome(
                ContextType.NEURODIVERSITY_SCHOLARLY,
                PaddingMode.SEMI_PADDING_BY_CAPABILITY, 1.2, True
            )
        ),
        ContextRule(
            name="formal_academic",
            predicate=lambda s: s.formal >= formal_threshold and s.formal > s.personal,
            outcome=ContextOutcome(
                ContextType.FORMAL_ACADEMIC,
                PaddingMode.STANDARD_PADDING, 1.5, True
            )
        ),
        ContextRule(
            name="casual_academic",
            predicate=lambda s: s.casual > 0 and s.academic > s.personal,
            outcome=ContextOutcome(
                ContextType.CASUAL_ACADEMIC,
                PaddingMode.VELOCITY_ADJUSTED, 1.3, True
            )
        ),
        ContextRule(
            name="personal_communication",
            predicate=lambda s: s.personal > s.academic,
            outcome=ContextOutcome(
                ContextType.PERSONAL_COMMUNICATION,
                PaddingMode.SEMI_PADDING_BY_CAPABILITY, 1.0, False
            )
        ),
    )


GENERAL_OUTCOME = ContextOutcome(
    ContextType.GENERAL, PaddingMode.VELOCITY_ADJUSTED, 1.0, False
)


@dataclass
class ContextConfig:
    """Configuration for the context detector."""
    keyword_sets: Tuple[KeywordSet, ...] = None
    formal_threshold: float = 3.0
    rules: Tuple[ContextRule, ...] = None

    def __post_init__(self):
        self.keyword_sets = tuple(self.keyword_sets) if self.keyword_sets else DEFAULT_KEYWORD_SETS
        if self.rules is None:
            self.rules = build_default_rules(self.formal_threshold)
        else:
            self.rules = tuple(self.rules)


# =============================================================================
# DETECTOR
# =============================================================================

class ContextDetector:
    """
    Weighted keyword scoring plus first-match rule evaluation.

    Each keyword counts once if present, word-bounded, with an
    optional plural suffix.
    """

    def __init__(self, config: Optional[ContextConfig] = None):
        self._config = config or ContextConfig()
        self._patterns = self._compile(self._config.keyword_sets)
        self._lock = threading.RLock()
        self._audit_log: List[AuditLogEntry] = []

    @staticmethod
    def _compile(
        keyword_sets: Tuple[KeywordSet, ...]
    ) -> Dict[str, Tuple[Tuple[Pattern, float], ...]]:
        by_name = {ks.name: ks for ks in keyword_sets}
        if set(by_name) != set(SET_NAMES) or len(by_name) != len(keyword_sets):
            raise ConfigurationError(
                f"Keyword sets must be exactly {', '.join(SET_NAMES)}"
            )

        owner: Dict[str, str] = {}
        compiled = {}
        for name in SET_NAMES:
            entries = []
            for keyword, weight in by_name[name].weights:
                normalized = keyword.strip().lower()
                if not normalized:
                    raise ConfigurationError(f"Empty keyword in set '{name}'")
                if not isinstance(weight, (int, float)) or isinstance(weight, bool) or weight <= 0:
                    raise ConfigurationError(
                        f"Keyword '{keyword}' in set '{name}' needs a positive weight"
                    )
                if normalized in owner:
                    raise ConfigurationError(
                        f"Keyword '{normalized}' appears in both "
                        f"'{owner[normalized]}' and '{name}'"
                    )
                owner[normalized] = name
                pattern = re.compile(
                    rf"\b{re.escape(normalized)}(?:s|es)?\b",
                    re.IGNORECASE
                )
                entries.append((pattern, float(weight)))
            compiled[name] = tuple(entries)
        return compiled

    def score(self, text: str) -> KeywordScores:
        if not isinstance(text, str):
            raise MalformedInputError(f"text must be a string, got {type(text).__name__}")

        totals = {
            name: sum(weight for pattern, weight in entries if pattern.search(text))
            for name, entries in self._patterns.items()
        }
        return KeywordScores(
            formal=totals[FORMAL],
            neurodiversity=totals[NEURODIVERSITY],
            casual=totals[CASUAL],
            personal=totals[PERSONAL]
        )

    @staticmethod
    def confidence(scores: KeywordScores) -> float:
        if scores.total == 0:
            return 0.5
        return scores.academic / max(1.0, scores.total)

    def detect(self, text: str) -> ContextVerdict:
        scores = self.score(text)

        rule_name = "general"
        outcome = GENERAL_OUTCOME
        for rule in self._config.rules:
            if rule.predicate(scores):
                rule_name = rule.name
                outcome = rule.outcome
                break

        verdict = ContextVerdict(
            is_academic_like=outcome.is_academic_like,
            context_type=outcome.context_type,
            confidence=self.confidence(scores),
            suggested_mode=outcome.mode,
            velocity_factor=outcome.velocity_factor,
            scores=scores,
            rule_name=rule_name
        )

        self._log_audit(
            action="context_detected",
            metadata=(
                ("context_type", verdict.context_type.value),
                ("rule", rule_name),
                ("confidence", f"{verdict.confidence:.4f}"),
            )
        )
        return verdict

    @property
    def rules(self) -> Tuple[ContextRule, ...]:
        return self._config.rules

    def keyword_counts(self) -> Dict[str, int]:
        return {name: len(entries) for name, entries in self._patterns.items()}

    def _log_audit(self, action: str, metadata: tuple = ()):
        entry = AuditLogEntry.create(
            layer="context",
            action=action,
            event_type=AuditEventType.CONTEXT,
            metadata=metadata
        )
        with self._lock:
            self._audit_log.append(entry)

    def drain_audit_log(self) -> List[AuditLogEntry]:
        """Return and clear pending audit entries."""
        with self._lock:
            entries, self._audit_log = self._audit_log, []
        return entries
