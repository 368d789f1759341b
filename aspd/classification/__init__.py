"""
Classification Layer (Utterance Classifier)

RESPONSIBILITY: Split text into sentences and tag each with its
                pragmatic role; derive utterance metrics
ALLOWED INPUTS: Filtered text (plus the raw text for metrics)
OUTPUTS: Utterance (immutable, owns its segments)

WHAT THIS LAYER MUST NOT DO:
============================
- Drop or double-classify a sentence
- Consult context, calibration, or padding state
- Raise on empty or unusual input

BOUNDARY ENFORCEMENT:
=====================
The priority chain question -> directive -> conditional -> statement is
fixed. A sentence matching several categories always gets the first.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple
import re

import numpy as np

# ONLY import from contracts - never from other layers' implementations
from ..contracts.base import MalformedInputError
from ..contracts.utterance import (
    CONSEQUENCE_SENTINEL, QuestionKind, Segment, SegmentKind,
    QuestionSegment, DirectiveSegment, ConditionalSegment, StatementSegment,
    Utterance, UtteranceMetrics,
)


# =============================================================================
# WORD LISTS
# =============================================================================

WH_WORDS: FrozenSet[str] = frozenset({
    'what', 'who', 'where', 'when', 'why', 'how', 'which', 'whose', 'whom'
})

AUXILIARIES: FrozenSet[str] = frozenset({
    'is', 'are', 'am', 'was', 'were', 'do', 'does', 'did', 'can', 'could',
    'will', 'would', 'should', 'shall', 'may', 'has', 'have'
})

IMPERATIVES: FrozenSet[str] = frozenset({
    'please', 'kindly', 'let', 'tell', 'show', 'give', 'make', 'help',
    'send', 'check', 'explain', 'describe', 'list', 'find', 'create',
    'write', 'run', 'stop', 'start', 'open', 'close', 'take', 'bring',
    'call', 'remember', 'consider', 'note', 'ensure', 'provide', 'review',
    'update', 'fix', 'add', 'remove', 'use', 'try', 'go', 'read', 'keep'
})

CONDITIONAL_TRIGGERS: FrozenSet[str] = frozenset({
    'if', 'when', 'unless', 'provided', 'given'
})

URGENCY_WORDS: FrozenSet[str] = frozenset({
    'urgent', 'important', 'immediately', 'asap', 'critical'
})

CERTAINTY_MARKERS: FrozenSet[str] = frozenset({
    'definitely', 'certainly', 'clearly', 'absolutely', 'undoubtedly',
    'surely', 'always', 'never', 'must', 'proven'
})

UNCERTAINTY_MARKERS: FrozenSet[str] = frozenset({
    'maybe', 'perhaps', 'possibly', 'probably', 'might', 'seems',
    'guess', 'think', 'believe', 'unsure', 'unclear'
})

DIRECT_MARKERS: FrozenSet[str] = frozenset({
    'must', 'need', 'now', 'should', 'will', 'exactly', 'directly',
    'immediately', 'required', 'do', 'stop', 'yes', 'no'
})

INDIRECT_MARKERS: FrozenSet[str] = frozenset({
    'maybe', 'perhaps', 'possibly', 'might', 'could', 'would', 'somewhat',
    'sort', 'kind', 'guess', 'wonder', 'hopefully', 'if'
})

BOOLEAN_WORDS: FrozenSet[str] = frozenset({
    'and', 'or', 'not', 'if', 'then', 'else', 'true', 'false', 'yes', 'no',
    'all', 'any', 'none', 'either', 'neither', 'nor', 'only', 'unless', 'xor'
})

HEDGE_PHRASES: Tuple[str, ...] = (
    'i think', 'i believe', 'i guess', 'i feel like', 'it seems that',
    'it seems', 'maybe', 'perhaps', 'possibly', 'probably'
)


_SENTENCE = re.compile(r"[^.!?]+[.!?]*")
_WORD = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")
_THEN = re.compile(r"\bthen\b\s*(.*)$", re.IGNORECASE)


@dataclass
class ClassifierConfig:
    """Word lists driving classification. Defaults cover English."""
    wh_words: FrozenSet[str] = WH_WORDS
    auxiliaries: FrozenSet[str] = AUXILIARIES
    imperatives: FrozenSet[str] = IMPERATIVES
    conditional_triggers: FrozenSet[str] = CONDITIONAL_TRIGGERS
    urgency_words: FrozenSet[str] = URGENCY_WORDS
    certainty_markers: FrozenSet[str] = CERTAINTY_MARKERS
    uncertainty_markers: FrozenSet[str] = UNCERTAINTY_MARKERS
    direct_markers: FrozenSet[str] = DIRECT_MARKERS
    indirect_markers: FrozenSet[str] = INDIRECT_MARKERS
    boolean_words: FrozenSet[str] = BOOLEAN_WORDS
    hedge_phrases: Tuple[str, ...] = field(default=HEDGE_PHRASES)

    @property
    def interrogatives(self) -> FrozenSet[str]:
        return self.wh_words | self.auxiliaries


def split_sentences(text: str) -> List[str]:
    """
    Maximal runs of non-terminal characters plus their terminal
    punctuation. Runs that hold nothing but punctuation are dropped.
    """
    sentences = []
    for match in _SENTENCE.finditer(text):
        sentence = match.group(0).strip()
        if sentence.rstrip('.!?').strip():
            sentences.append(sentence)
    return sentences


def tokenize(text: str) -> List[str]:
    return _WORD.findall(text.lower())


# =============================================================================
# CLASSIFIER
# =============================================================================

class UtteranceClassifier:
    """
    Deterministic rule-based sentence classifier.
    Same text always yields the same segments and metrics.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self._config = config or ClassifierConfig()
        triggers = "|".join(sorted(self._config.conditional_triggers))
        self._condition = re.compile(
            rf"\b(?:{triggers})\b\s*(.*?)(?:\s*,|\s+then\b|$)",
            re.IGNORECASE
        )
        hedges = "|".join(
            re.escape(h) for h in sorted(self._config.hedge_phrases, key=len, reverse=True)
        )
        self._leading_hedges = re.compile(rf"^(?:(?:{hedges})\b[\s,]*)+", re.IGNORECASE)

    def classify(self, text: str, raw_text: Optional[str] = None) -> Utterance:
        """
        Classify `text` sentence by sentence.

        Metrics are computed from `raw_text` when given (the pre-filter
        input), otherwise from `text`.
        """
        if not isinstance(text, str):
            raise MalformedInputError(f"text must be a string, got {type(text).__name__}")
        if raw_text is None:
            raw_text = text
        elif not isinstance(raw_text, str):
            raise MalformedInputError("raw_text must be a string")

        segments = tuple(self.classify_sentence(s) for s in split_sentences(text))

        return Utterance(
            raw_text=raw_text,
            filtered_text=text,
            segments=segments,
            metrics=self.compute_metrics(raw_text)
        )

    def classify_sentence(self, sentence: str) -> Segment:
        words = tokenize(sentence)
        first = words[0] if words else ""

        if '?' in sentence or first in self._config.interrogatives:
            return self._question(sentence, words, first)
        if first in self._config.imperatives:
            return self._directive(sentence, words, first)
        if self._config.conditional_triggers.intersection(words):
            return self._conditional(sentence)
        return self._statement(sentence, words)

    # -------------------------------------------------------------------------
    # Per-kind extraction
    # -------------------------------------------------------------------------

    def _question(self, sentence: str, words: List[str], first: str) -> QuestionSegment:
        present = set(words)
        if present & {'what', 'who', 'where', 'when'}:
            kind = QuestionKind.FACTUAL
        elif present & {'why', 'how'}:
            kind = QuestionKind.EXPLANATORY
        elif present & {'is', 'are', 'can', 'could', 'would', 'will'}:
            kind = QuestionKind.CONFIRMATION
        else:
            kind = QuestionKind.GENERAL

        return QuestionSegment(
            text=sentence,
            question_kind=kind,
            expects_boolean=first in self._config.auxiliaries
        )

    def _directive(self, sentence: str, words: List[str], first: str) -> DirectiveSegment:
        hits = len(self._config.urgency_words.intersection(words))
        return DirectiveSegment(
            text=sentence,
            action=first,
            priority=min(1.0, (5 + 2 * hits) / 10)
        )

    def _conditional(self, sentence: str) -> ConditionalSegment:
        body = sentence.rstrip('.!?').strip()

        match = self._condition.search(body)
        condition = match.group(1).strip() if match else ""

        consequence = CONSEQUENCE_SENTINEL
        then = _THEN.search(body)
        if then and then.group(1).strip():
            consequence = then.group(1).strip()

        return ConditionalSegment(text=sentence, condition=condition, consequence=consequence)

    def _statement(self, sentence: str, words: List[str]) -> StatementSegment:
        assertion = self._leading_hedges.sub("", sentence).strip() or sentence

        certainty = sum(1 for w in words if w in self._config.certainty_markers)
        uncertainty = sum(1 for w in words if w in self._config.uncertainty_markers)
        # Tenths as integers keep the clamp exact.
        confidence = float(np.clip(7 + certainty - uncertainty, 1, 9)) / 10

        return StatementSegment(text=sentence, assertion=assertion, confidence=confidence)

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def compute_metrics(self, text: str) -> UtteranceMetrics:
        words = tokenize(text)
        if not words:
            return UtteranceMetrics()

        sentence_count = len(split_sentences(text))
        lengths = np.array([len(w) for w in words], dtype=float)
        avg_word_length = float(np.mean(lengths))
        complexity = min(1.0, 0.1 * sentence_count + 0.05 * avg_word_length)

        direct = sum(1 for w in words if w in self._config.direct_markers)
        indirect = sum(1 for w in words if w in self._config.indirect_markers)
        directness = float(np.clip((direct - indirect) / len(words) * 10, 0.0, 1.0))

        boolean_hits = sum(1 for w in words if w in self._config.boolean_words)
        boolean_density = float(np.clip(boolean_hits / len(words), 0.0, 1.0))

        return UtteranceMetrics(
            complexity=complexity,
            directness=directness,
            boolean_density=boolean_density
        )
