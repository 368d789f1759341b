"""
Contracts Module

This module defines the explicit interfaces and data transfer objects
that form the contracts between layers. All inter-layer communication
MUST use these contracts. No layer may import implementation details
from another layer.

DESIGN PRINCIPLES:
==================
1. All per-call contract types are immutable (frozen dataclasses)
2. Degraded operation is carried as Anomaly data, not raised
3. Segments are a closed tagged union, one record per kind
4. All timestamps use UTC and are never mutated
"""

from .base import (
    AspdError, MalformedInputError, ConfigurationError,
    AnomalyCode, Anomaly, Timestamp, TimeRange,
    INVARIANT_TOLERANCE, DEFAULT_CAPABILITY, DEFAULT_SAFETY_MARGIN, DEFAULT_CEILING,
    ViolationSeverity, CalibrationState, InvariantCheck, is_real_number,
)
from .utterance import (
    CONSEQUENCE_SENTINEL, SegmentKind, QuestionKind,
    QuestionSegment, DirectiveSegment, ConditionalSegment, StatementSegment,
    Segment, UtteranceMetrics, Utterance,
)
from .report import (
    FORMULA_EQUATION, ContextType, PaddingMode, BooleanMindLevel, Branch,
    KeywordScores, ContextVerdict, PaddingDecision, ProcessOptions,
    ProcessingReport, ProcessingResult,
)
from .events import AuditEventType, AuditLogEntry, MetricPoint

__all__ = [
    'AspdError', 'MalformedInputError', 'ConfigurationError',
    'AnomalyCode', 'Anomaly', 'Timestamp', 'TimeRange',
    'INVARIANT_TOLERANCE', 'DEFAULT_CAPABILITY', 'DEFAULT_SAFETY_MARGIN', 'DEFAULT_CEILING',
    'ViolationSeverity', 'CalibrationState', 'InvariantCheck', 'is_real_number',
    'CONSEQUENCE_SENTINEL', 'SegmentKind', 'QuestionKind',
    'QuestionSegment', 'DirectiveSegment', 'ConditionalSegment', 'StatementSegment',
    'Segment', 'UtteranceMetrics', 'Utterance',
    'FORMULA_EQUATION', 'ContextType', 'PaddingMode', 'BooleanMindLevel', 'Branch',
    'KeywordScores', 'ContextVerdict', 'PaddingDecision', 'ProcessOptions',
    'ProcessingReport', 'ProcessingResult',
    'AuditEventType', 'AuditLogEntry', 'MetricPoint',
]
