"""
ASPD Engine

Rule-driven social-padding pipeline:
filter -> classify -> validate invariant -> detect context -> select padding.

Formula: ASPD = (SPD v SBMPD/AMF)v
"""

from .engine import AspdEngine, EngineConfig, PipelineStage, EMPTY_PLACEHOLDER
from .contracts import (
    AspdError, MalformedInputError, ConfigurationError,
    BooleanMindLevel, Branch, ContextType, PaddingMode,
    CalibrationState, InvariantCheck, ProcessOptions, ProcessingReport, ProcessingResult,
)

__version__ = "0.1.0"

__all__ = [
    'AspdEngine', 'EngineConfig', 'PipelineStage', 'EMPTY_PLACEHOLDER',
    'AspdError', 'MalformedInputError', 'ConfigurationError',
    'BooleanMindLevel', 'Branch', 'ContextType', 'PaddingMode',
    'CalibrationState', 'InvariantCheck', 'ProcessOptions', 'ProcessingReport', 'ProcessingResult',
]
