"""
Utterance Contracts

Output of the classification layer.

A Segment is a closed tagged union: exactly one of QuestionSegment,
DirectiveSegment, ConditionalSegment, StatementSegment. Each case carries
only its own fields; consumers dispatch on `kind` (or isinstance) and never
probe for field presence.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Union


CONSEQUENCE_SENTINEL = "action required"


# =============================================================================
# ENUMS (Closed World)
# =============================================================================

class SegmentKind(Enum):
    """Pragmatic role of a single sentence. Order is the priority chain."""
    QUESTION = "question"
    DIRECTIVE = "directive"
    CONDITIONAL = "conditional"
    STATEMENT = "statement"


class QuestionKind(Enum):
    FACTUAL = "factual"
    EXPLANATORY = "explanatory"
    CONFIRMATION = "confirmation"
    GENERAL = "general"


# =============================================================================
# SEGMENTS (one frozen record per case)
# =============================================================================

@dataclass(frozen=True)
class QuestionSegment:
    text: str
    question_kind: QuestionKind
    expects_boolean: bool
    kind: SegmentKind = field(default=SegmentKind.QUESTION, init=False)


@dataclass(frozen=True)
class DirectiveSegment:
    text: str
    action: str
    priority: float
    kind: SegmentKind = field(default=SegmentKind.DIRECTIVE, init=False)

    def __post_init__(self):
        if not 0.0 <= self.priority <= 1.0:
            raise ValueError("priority must be between 0.0 and 1.0")


@dataclass(frozen=True)
class ConditionalSegment:
    text: str
    condition: str
    consequence: str = CONSEQUENCE_SENTINEL
    kind: SegmentKind = field(default=SegmentKind.CONDITIONAL, init=False)


@dataclass(frozen=True)
class StatementSegment:
    text: str
    assertion: str
    confidence: float
    kind: SegmentKind = field(default=SegmentKind.STATEMENT, init=False)

    def __post_init__(self):
        if not 0.1 <= self.confidence <= 0.9:
            raise ValueError("statement confidence must be between 0.1 and 0.9")


Segment = Union[QuestionSegment, DirectiveSegment, ConditionalSegment, StatementSegment]


# =============================================================================
# UTTERANCE
# =============================================================================

@dataclass(frozen=True)
class UtteranceMetrics:
    """Derived once per utterance; every value lies in [0, 1]."""
    complexity: float = 0.0
    directness: float = 0.0
    boolean_density: float = 0.0

    def __post_init__(self):
        for name in ('complexity', 'directness', 'boolean_density'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0")


@dataclass(frozen=True)
class Utterance:
    """
    Raw input plus its classified segments.
    The utterance owns its segments; they are never shared.
    """
    raw_text: str
    filtered_text: str
    segments: Tuple[Segment, ...] = field(default_factory=tuple)
    metrics: UtteranceMetrics = field(default_factory=UtteranceMetrics)

    @property
    def segment_count(self) -> int:
        return len(self.segments)

    def segments_of(self, kind: SegmentKind) -> Tuple[Segment, ...]:
        return tuple(s for s in self.segments if s.kind == kind)

    def kind_counts(self) -> dict:
        counts = {k.value: 0 for k in SegmentKind}
        for segment in self.segments:
            counts[segment.kind.value] += 1
        return counts
