"""
Engine Orchestration Module

This module provides the unified interface for coordinating all
layers while maintaining strict boundary separation.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. Data flows strictly forward; no layer calls back into an earlier one
3. All operations are traceable through observability
4. Shared mutable state (calibration, filter counters, processed count)
   is owned by one engine instance and lock-protected
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Union
import threading
import time

import numpy as np

from .contracts.base import (
    Anomaly, AnomalyCode, CalibrationState, InvariantCheck,
    MalformedInputError, Timestamp, TimeRange,
)
from .contracts.report import (
    FORMULA_EQUATION, BooleanMindLevel, Branch, ProcessOptions,
    ProcessingReport, ProcessingResult,
)
from .calibration import InvariantValidator, CalibrationConfig
from .filtering import PaddingFilter, FilterConfig, FilterStats
from .classification import UtteranceClassifier, ClassifierConfig
from .context import ContextDetector, ContextConfig
from .padding import PaddingSelector, PaddingConfig, Register
from .observability import ObservabilityEngine, ObservabilityConfig


EMPTY_PLACEHOLDER = "Input processed. No specific response pattern identified."
DEFAULT_PRECISION_SAMPLES = ("test", "hello world", "BLF V-8 engine")


class PipelineStage(Enum):
    """Ordered, non-looping pipeline states."""
    FILTERING = "filtering"
    CLASSIFYING = "classifying"
    VALIDATING_INVARIANT = "validating_invariant"
    DETECTING_CONTEXT = "detecting_context"
    SELECTING_PADDING = "selecting_padding"
    DONE = "done"


@dataclass
class EngineConfig:
    """Unified configuration for the entire engine."""
    calibration: CalibrationConfig = None
    filter: FilterConfig = None
    classifier: ClassifierConfig = None
    context: ContextConfig = None
    padding: PaddingConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.calibration = self.calibration or CalibrationConfig()
        self.filter = self.filter or FilterConfig()
        self.classifier = self.classifier or ClassifierConfig()
        self.context = self.context or ContextConfig()
        self.padding = self.padding or PaddingConfig(
            release_safe_ratio=self.calibration.release_safe_ratio
        )
        self.observability = self.observability or ObservabilityConfig()


class AspdEngine:
    """
    ASPD pipeline orchestrator.

    LAYER FLOW:
    ===========
    1. Filtering: raw text -> FilterResult
    2. Classifying: filtered text -> Utterance
    3. ValidatingInvariant: CalibrationState -> InvariantCheck
    4. DetectingContext: filtered text -> ContextVerdict
    5. SelectingPadding: verdict + ratio -> PaddingDecision + text
    6. Observability: records all layer activity

    A broken invariant never aborts a call; it pins the selector to
    StandardPadding/medium and is reported through the report.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()

        # Initialize layers (each is independent)
        self._validator = InvariantValidator(self._config.calibration)
        self._filter = PaddingFilter(self._config.filter)
        self._classifier = UtteranceClassifier(self._config.classifier)
        self._detector = ContextDetector(self._config.context)
        self._selector = PaddingSelector(self._config.padding)
        self._observability = ObservabilityEngine(self._config.observability)

        self._processed = 0
        self._lock = threading.RLock()

    # =========================================================================
    # PRIMARY INTERFACE
    # =========================================================================

    def process(
        self,
        raw_text: str,
        options: Union[ProcessOptions, Mapping, None] = None
    ) -> ProcessingResult:
        """
        Run one pass through the pipeline.

        Only non-string text and unknown branch/level names raise
        (MalformedInputError); everything else yields a report.
        """
        if not isinstance(raw_text, str):
            raise MalformedInputError(
                f"raw_text must be a string, got {type(raw_text).__name__}"
            )
        options = self._coerce_options(options)

        started = time.perf_counter()
        stages: List[PipelineStage] = []
        anomalies: List[Anomaly] = []

        # Stage 1: Filtering
        stages.append(PipelineStage.FILTERING)
        filtered = self._filter.strip(raw_text)
        body = filtered.output
        if not body:
            anomalies.append(Anomaly(
                code=AnomalyCode.EMPTY_AFTER_FILTER,
                message="Nothing left after filtering; using placeholder text",
                context=(("raw_length", str(len(raw_text))),)
            ))
            body = EMPTY_PLACEHOLDER

        # Stage 2: Classifying
        stages.append(PipelineStage.CLASSIFYING)
        utterance = self._classifier.classify(filtered.output, raw_text=raw_text)

        # Stage 3: ValidatingInvariant
        stages.append(PipelineStage.VALIDATING_INVARIANT)
        check = self._validator.check()
        ratio = check.ratio
        if not check.valid:
            anomalies.append(Anomaly(
                code=AnomalyCode.INVARIANT_VIOLATION,
                message=check.message,
                context=(("severity", check.severity.value),)
            ))

        # Stage 4: DetectingContext
        stages.append(PipelineStage.DETECTING_CONTEXT)
        verdict = self._detector.detect(filtered.output)

        # Stage 5: SelectingPadding
        stages.append(PipelineStage.SELECTING_PADDING)
        outcome = self._selector.apply(
            body,
            verdict,
            ratio,
            branch=options.branch,
            force_conservative=not check.valid,
            level=options.level
        )
        anomalies.extend(outcome.decision.anomalies)

        stages.append(PipelineStage.DONE)

        with self._lock:
            self._processed += 1
            sequence = self._processed

        report = ProcessingReport(
            academic_context=verdict,
            padding_applied=outcome.decision.description,
            boolean_mind_level=outcome.decision.level,
            amf_alignment=check.valid,
            velocity_factor=verdict.velocity_factor,
            formula_equation=FORMULA_EQUATION,
            utterance=utterance,
            padding_decision=outcome.decision,
            invariant=check,
            filter_hits=filtered.hit_count,
            anomalies=tuple(anomalies),
            stages=tuple(s.value for s in stages)
        )

        self._record(report, sequence, (time.perf_counter() - started) * 1000)
        return ProcessingResult(text=outcome.text, report=report)

    @staticmethod
    def _coerce_options(options) -> ProcessOptions:
        if options is None:
            return ProcessOptions()
        if isinstance(options, ProcessOptions):
            return options
        if isinstance(options, Mapping):
            unknown = set(options) - {'branch', 'level'}
            if unknown:
                raise MalformedInputError(f"Unknown options: {', '.join(sorted(unknown))}")
            return ProcessOptions(
                branch=options.get('branch', Branch.PROFESSIONAL),
                level=options.get('level')
            )
        raise MalformedInputError("options must be ProcessOptions or a mapping")

    def _record(self, report: ProcessingReport, sequence: int, duration_ms: float):
        """Forward layer audit entries and per-call metrics to observability."""
        obs = self._observability
        entity_id = f"call_{sequence}"

        obs.collect_all(self._filter.drain_audit_log())
        obs.collect_all(self._validator.drain_audit_log())
        obs.collect_all(self._detector.drain_audit_log())
        obs.collect_all(self._selector.drain_audit_log())

        utterance = report.utterance
        obs.log_audit(
            action="utterance_classified",
            entity_id=entity_id,
            details=", ".join(f"{k}={v}" for k, v in utterance.kind_counts().items()),
            layer="classification"
        )
        for anomaly in report.anomalies:
            obs.log_anomaly(anomaly, entity_id=entity_id)
            obs.collect_metric("anomalies_total", 1.0, {"code": anomaly.code.name})

        obs.collect_metric("filter_hits_total", float(report.filter_hits))
        obs.collect_metric(
            "context_detections_total", 1.0,
            {"context_type": report.academic_context.context_type.value}
        )
        if not report.amf_alignment:
            obs.collect_metric(
                "invariant_violations_total", 1.0,
                {"severity": report.invariant.severity.value}
            )
        obs.collect_metric("process_duration_ms", duration_ms)
        obs.log_audit(action="processed", entity_id=entity_id, details=report.summary)

    # =========================================================================
    # SECONDARY INTERFACE
    # =========================================================================

    def validate_invariant(self) -> InvariantCheck:
        """Read-only diagnostic of the calibration invariant."""
        result = self._validator.check()
        self._observability.collect_all(self._validator.drain_audit_log())
        return result

    def recalibrate(self, capability: float) -> InvariantCheck:
        """Adjust capability and return the fresh invariant check."""
        result = self._validator.recalibrate(capability)
        self._observability.collect_all(self._validator.drain_audit_log())
        return result

    def reconfigure(self, state: CalibrationState) -> InvariantCheck:
        """Replace the calibration state wholesale and report the result."""
        self._validator.reconfigure(state)
        return self.validate_invariant()

    def get_filter_stats(self) -> FilterStats:
        return self._filter.stats()

    def reset_filter_stats(self) -> FilterStats:
        previous = self._filter.reset_stats()
        self._observability.collect_all(self._filter.drain_audit_log())
        return previous

    def apply_padding_level(
        self,
        text: str,
        level: Union[BooleanMindLevel, str],
        branch: Union[Branch, str] = Branch.PROFESSIONAL,
        academic: Optional[bool] = None
    ) -> str:
        """
        Apply one Boolean-Mind level directly, bypassing selection.
        The register follows context detection unless `academic` is given.
        """
        if not isinstance(text, str):
            raise MalformedInputError(f"text must be a string, got {type(text).__name__}")
        if academic is None:
            academic = self._detector.detect(text).is_academic_like
            self._observability.collect_all(self._detector.drain_audit_log())
        register = Register.ACADEMIC if academic else Register.CONVERSATIONAL
        return self._selector.render(text, BooleanMindLevel.parse(level), Branch.parse(branch), register)

    def validate_precision(self, samples: Optional[Sequence[str]] = None) -> Dict:
        """
        Check that capability + safety_margin == ceiling holds for an
        aligned calibration derived from each sample's length.
        """
        if samples is None:
            samples = DEFAULT_PRECISION_SAMPLES
        if isinstance(samples, str) or not all(isinstance(s, str) for s in samples):
            raise MalformedInputError("samples must be a sequence of strings")
        samples = list(samples)

        state = self._validator.state
        tolerance = self._validator.tolerance
        capabilities = np.array([float(len(s)) for s in samples], dtype=float)
        ceilings = capabilities + state.safety_margin
        deviations = np.abs(capabilities + state.safety_margin - ceilings)
        maintained = deviations < tolerance

        results = [
            {
                'input': sample,
                'capability': float(capabilities[i]),
                'ceiling': float(ceilings[i]),
                'deviation': float(deviations[i]),
                'buffer_maintained': bool(maintained[i]),
            }
            for i, sample in enumerate(samples)
        ]
        total = len(results)
        passed = int(maintained.sum()) if total else 0

        return {
            'test_results': results,
            'all_passed': total > 0 and passed == total,
            'total_tests': total,
            'success_rate': f"{(passed / total * 100) if total else 0.0:.1f}%",
            'safety_margin': state.safety_margin,
        }

    def engine_status(self) -> Dict:
        check = self.validate_invariant()
        stats = self._filter.stats()
        with self._lock:
            processed = self._processed

        return {
            'status': 'nominal' if check.valid else 'heat_shield_engaged',
            'processing_count': processed,
            'calibration': check.to_dict(),
            'release_safe': self._validator.is_release_safe(),
            'filter': {
                **stats.to_dict(),
                'rule_count': len(self._filter.rules),
            },
            'keyword_sets': self._detector.keyword_counts(),
            'context_rules': [rule.name for rule in self._detector.rules],
            'stages': [stage.value for stage in PipelineStage],
            'formula': FORMULA_EQUATION,
            'generated_at': Timestamp.now().to_iso(),
        }

    # =========================================================================
    # OBSERVABILITY INTERFACE
    # =========================================================================

    def get_audit_log(
        self,
        time_range: Optional[TimeRange] = None,
        layers: Optional[List[str]] = None
    ) -> List:
        """Get unified audit log."""
        return self._observability.get_unified_log(time_range, layers)

    def get_audit_report(self, time_range: Optional[TimeRange] = None) -> Dict:
        """Generate audit report."""
        return self._observability.generate_audit_report(time_range)

    def get_metrics(self):
        """Get metrics collector."""
        return self._observability.get_metrics()

    # =========================================================================
    # DIRECT LAYER ACCESS (for advanced use cases)
    # =========================================================================

    @property
    def validator(self) -> InvariantValidator:
        return self._validator

    @property
    def padding_filter(self) -> PaddingFilter:
        return self._filter

    @property
    def classifier(self) -> UtteranceClassifier:
        return self._classifier

    @property
    def detector(self) -> ContextDetector:
        return self._detector

    @property
    def selector(self) -> PaddingSelector:
        return self._selector

    @property
    def observability_layer(self) -> ObservabilityEngine:
        return self._observability
