"""
API Mapper
==========

Transforms internal report contracts into JSON-ready DTOs.
Enums become their string values; nothing is re-derived here.
"""
from typing import Any, Dict

from ..contracts.report import ContextVerdict, PaddingDecision, ProcessingReport, ProcessingResult
from ..contracts.utterance import Segment, Utterance, QuestionSegment, DirectiveSegment, ConditionalSegment


def map_result_to_dto(result: ProcessingResult) -> Dict[str, Any]:
    """Map ProcessingResult to the /process response body."""
    return {
        "text": result.text,
        "report": map_report_to_dto(result.report),
    }


def map_report_to_dto(report: ProcessingReport) -> Dict[str, Any]:
    dto = {
        "academic_context": _map_verdict(report.academic_context),
        "padding_applied": report.padding_applied,
        "boolean_mind_level": report.boolean_mind_level.value,
        "amf_alignment": report.amf_alignment,
        "velocity_factor": report.velocity_factor,
        "formula_equation": report.formula_equation,
        "filter_hits": report.filter_hits,
        "anomalies": [a.to_dict() for a in report.anomalies],
        "stages": list(report.stages),
        "summary": report.summary,
    }
    if report.padding_decision:
        dto["padding_decision"] = _map_decision(report.padding_decision)
    if report.invariant:
        dto["invariant"] = report.invariant.to_dict()
    if report.utterance:
        dto["utterance"] = _map_utterance(report.utterance)
    return dto


def _map_verdict(verdict: ContextVerdict) -> Dict[str, Any]:
    return {
        "is_academic_like": verdict.is_academic_like,
        "context_type": verdict.context_type.value,
        "confidence": verdict.confidence,
        "suggested_mode": verdict.suggested_mode.value,
        "velocity_factor": verdict.velocity_factor,
        "scores": verdict.scores.to_dict(),
        "rule": verdict.rule_name,
    }


def _map_decision(decision: PaddingDecision) -> Dict[str, Any]:
    return {
        "level": decision.level.value,
        "level_description": decision.level.description,
        "branch": decision.branch.value,
        "mode": decision.mode.value,
        "description": decision.description,
        "invariant_held": decision.invariant_held,
    }


def _map_utterance(utterance: Utterance) -> Dict[str, Any]:
    return {
        "filtered_text": utterance.filtered_text,
        "segment_count": utterance.segment_count,
        "segments": [_map_segment(s) for s in utterance.segments],
        "metrics": {
            "complexity": utterance.metrics.complexity,
            "directness": utterance.metrics.directness,
            "boolean_density": utterance.metrics.boolean_density,
        },
    }


def _map_segment(segment: Segment) -> Dict[str, Any]:
    dto = {"kind": segment.kind.value, "text": segment.text}

    if isinstance(segment, QuestionSegment):
        dto["question_kind"] = segment.question_kind.value
        dto["expects_boolean"] = segment.expects_boolean
    elif isinstance(segment, DirectiveSegment):
        dto["action"] = segment.action
        dto["priority"] = segment.priority
    elif isinstance(segment, ConditionalSegment):
        dto["condition"] = segment.condition
        dto["consequence"] = segment.consequence
    else:
        dto["assertion"] = segment.assertion
        dto["confidence"] = segment.confidence

    return dto
