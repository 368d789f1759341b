"""
Filtering Layer (Heat Shield Padding Filter)

RESPONSIBILITY: Remove configured social-padding phrases from text
ALLOWED INPUTS: Raw utterance text
OUTPUTS: FilterResult (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Classify or interpret what remains
- Let the cumulative hit counter influence any decision
- Add text (removal and whitespace tidying only)

BOUNDARY ENFORCEMENT:
=====================
Rules are compiled once at construction; a bad pattern is a
ConfigurationError then, never at call time.
strip() runs rule passes until a pass changes nothing, so filtering
already-filtered text is a no-op.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Pattern, Tuple
import re
import threading

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import ConfigurationError, MalformedInputError
from ..contracts.events import AuditLogEntry, AuditEventType


# =============================================================================
# RULES
# =============================================================================

class RuleCategory(Enum):
    FILLER = "filler"
    HEDGING = "hedging"
    META_CLARIFICATION = "meta_clarification"


@dataclass(frozen=True)
class PaddingRule:
    """One phrase pattern. Matched case-insensitively."""
    name: str
    pattern: str
    category: RuleCategory


DEFAULT_RULES: Tuple[PaddingRule, ...] = (
    # Filler words
    PaddingRule("hesitation", r"\b(?:um+|uh+|erm+)\b,?", RuleCategory.FILLER),
    PaddingRule("well", r"(?:^|(?<=[.!?]))\s*well,\s*", RuleCategory.FILLER),
    PaddingRule("you_know", r",\s*you know\b,?|\byou know,\s*", RuleCategory.FILLER),
    PaddingRule("like", r",\s*like,|\blike,\s+", RuleCategory.FILLER),
    PaddingRule("intensifiers", r"\b(?:actually|basically|literally)\b,?", RuleCategory.FILLER),

    # Hedging phrases
    PaddingRule("i_think", r"\bi think\b,?(?:\s+that\b(?!'))?", RuleCategory.HEDGING),
    PaddingRule("i_believe", r"\bi believe\b,?(?:\s+that\b(?!'))?", RuleCategory.HEDGING),
    PaddingRule("i_guess", r"\bi guess\b,?", RuleCategory.HEDGING),
    PaddingRule("maybe", r"\b(?:maybe|perhaps|possibly)\b,?", RuleCategory.HEDGING),
    PaddingRule("sort_of", r"\b(?:sort|kind) of\b", RuleCategory.HEDGING),

    # Meta-clarification phrases
    PaddingRule("just_to_clarify", r"\bjust to clarify\b,?", RuleCategory.META_CLARIFICATION),
    PaddingRule("if_i_understand", r"\bif i understand correctly\b,?", RuleCategory.META_CLARIFICATION),
    PaddingRule("make_sense", r"\bdoes that make sense\b\??", RuleCategory.META_CLARIFICATION),
)


# Tidying applied after every rule pass, in order.
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([,.;:!?])")
_REPEATED_SEPARATORS = re.compile(r"([,;:])(?:\s*[,;:])+")
_SEPARATOR_BEFORE_TERMINAL = re.compile(r"[,;:]+\s*([.!?])")
_SEPARATOR_AFTER_TERMINAL = re.compile(r"([.!?])\s*[,;:]+")
_LEADING_SEPARATORS = re.compile(r"^[\s,;:]+")
_WORD_CHAR = re.compile(r"\w")


@dataclass
class FilterConfig:
    """Configuration for the padding filter."""
    rules: Tuple[PaddingRule, ...] = None
    max_rules: int = 20

    def __post_init__(self):
        self.rules = tuple(self.rules) if self.rules is not None else DEFAULT_RULES


@dataclass(frozen=True)
class FilterResult:
    """Immutable output of one strip() call."""
    output: str
    hit_count: int
    rule_hits: Tuple[Tuple[str, int], ...] = field(default_factory=tuple)

    @property
    def changed(self) -> bool:
        return self.hit_count > 0


@dataclass(frozen=True)
class FilterStats:
    """Snapshot of the cumulative counters."""
    hit_count: int
    calls: int

    def to_dict(self) -> dict:
        return {'hit_count': self.hit_count, 'calls': self.calls}


# =============================================================================
# FILTER
# =============================================================================

class PaddingFilter:
    """
    Heat shield phrase removal.

    Pure aside from the cumulative counters, which exist for
    observability only.
    """

    def __init__(self, config: Optional[FilterConfig] = None):
        self._config = config or FilterConfig()
        self._compiled = self._compile(self._config.rules, self._config.max_rules)
        self._hit_count = 0
        self._calls = 0
        self._lock = threading.RLock()
        self._audit_log: List[AuditLogEntry] = []

    @staticmethod
    def _compile(
        rules: Tuple[PaddingRule, ...],
        max_rules: int
    ) -> Tuple[Tuple[PaddingRule, Pattern], ...]:
        if not 1 <= len(rules) <= max_rules:
            raise ConfigurationError(
                f"Rule count must be between 1 and {max_rules}, got {len(rules)}"
            )

        compiled = []
        seen = set()
        for rule in rules:
            if not isinstance(rule, PaddingRule):
                raise ConfigurationError(f"Not a PaddingRule: {rule!r}")
            if rule.name in seen:
                raise ConfigurationError(f"Duplicate rule name: {rule.name}")
            seen.add(rule.name)
            try:
                pattern = re.compile(rule.pattern, re.IGNORECASE)
            except re.error as e:
                raise ConfigurationError(f"Rule '{rule.name}' does not compile: {e}") from e
            # Empty matches would be counted as hits without removing anything.
            if pattern.fullmatch("") is not None:
                raise ConfigurationError(f"Rule '{rule.name}' matches the empty string")
            compiled.append((rule, pattern))
        return tuple(compiled)

    @property
    def rules(self) -> Tuple[PaddingRule, ...]:
        return tuple(rule for rule, _ in self._compiled)

    def strip(self, text: str) -> FilterResult:
        """
        Remove every rule match, then tidy whitespace and separators.

        Passes repeat until the text stops changing; each changing pass
        removes characters, so this terminates.
        """
        if not isinstance(text, str):
            raise MalformedInputError(f"text must be a string, got {type(text).__name__}")

        hits = {}
        output = text
        while True:
            current = output
            for rule, pattern in self._compiled:
                current, count = pattern.subn(" ", current)
                if count:
                    hits[rule.name] = hits.get(rule.name, 0) + count
            current = self._tidy(current)
            if current == output:
                break
            output = current

        # Stripping everything but punctuation leaves nothing to say.
        if hits and not _WORD_CHAR.search(output):
            output = ""

        total = sum(hits.values())
        with self._lock:
            self._hit_count += total
            self._calls += 1

        if total:
            self._log_audit(
                action="padding_stripped",
                metadata=tuple((name, str(count)) for name, count in sorted(hits.items()))
            )

        return FilterResult(
            output=output,
            hit_count=total,
            rule_hits=tuple(sorted(hits.items()))
        )

    @staticmethod
    def _tidy(text: str) -> str:
        text = _WHITESPACE.sub(" ", text)
        text = _SPACE_BEFORE_PUNCT.sub(r"\1", text)
        text = _REPEATED_SEPARATORS.sub(r"\1", text)
        text = _SEPARATOR_BEFORE_TERMINAL.sub(r"\1", text)
        text = _SEPARATOR_AFTER_TERMINAL.sub(r"\1", text)
        text = _LEADING_SEPARATORS.sub("", text)
        return text.strip()

    def stats(self) -> FilterStats:
        with self._lock:
            return FilterStats(hit_count=self._hit_count, calls=self._calls)

    def reset_stats(self) -> FilterStats:
        """Zero the counters and return what they held."""
        with self._lock:
            previous = FilterStats(hit_count=self._hit_count, calls=self._calls)
            self._hit_count = 0
            self._calls = 0
        self._log_audit(action="stats_reset", metadata=(("previous_hits", str(previous.hit_count)),))
        return previous

    def _log_audit(self, action: str, metadata: tuple = ()):
        entry = AuditLogEntry.create(
            layer="filtering",
            action=action,
            event_type=AuditEventType.FILTERING,
            metadata=metadata
        )
        with self._lock:
            self._audit_log.append(entry)

    def drain_audit_log(self) -> List[AuditLogEntry]:
        """Return and clear pending audit entries."""
        with self._lock:
            entries, self._audit_log = self._audit_log, []
        return entries
