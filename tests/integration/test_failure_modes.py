"""
Failure Mode Tests

Tests for explicit error states: malformed input, bad configuration,
broken calibration and unusual text.

AXIOM UNDER TEST:
=================
Only malformed input and configuration errors raise.
Every other degraded path yields a report whose amf_alignment and
anomalies explain what happened.
"""

import pytest

from aspd import AspdEngine, EngineConfig
from aspd.contracts import (
    AnomalyCode, BooleanMindLevel, ConfigurationError, MalformedInputError,
    PaddingMode, ProcessOptions,
)
from aspd.calibration import CalibrationConfig
from aspd.context import ContextConfig, DEFAULT_KEYWORD_SETS, KeywordSet
from aspd.filtering import FilterConfig, PaddingRule, RuleCategory
from aspd.padding import PaddingConfig

from .fixtures import (
    BROKEN_CALIBRATIONS, CONTEXT_TEXTS, ONLY_PADDING_TEXT, OVERDRIVEN_CALIBRATION,
)


@pytest.fixture
def engine():
    return AspdEngine()


# =============================================================================
# MALFORMED INPUT
# =============================================================================

class TestMalformedInput:
    """
    Non-string text and unknown option names are the only call-time errors.
    """

    @pytest.mark.parametrize("raw", [None, 123, 4.5, b"bytes", ["list"], {"text": "x"}])
    def test_non_string_text_raises(self, engine, raw):
        with pytest.raises(MalformedInputError):
            engine.process(raw)

    def test_malformed_input_is_also_a_type_error(self, engine):
        with pytest.raises(TypeError):
            engine.process(None)

    def test_unknown_branch(self, engine):
        with pytest.raises(MalformedInputError):
            engine.process("hello", {"branch": "pirate"})

    def test_unknown_level(self, engine):
        with pytest.raises(MalformedInputError):
            engine.process("hello", {"level": "maximum"})

    def test_unknown_option_key(self, engine):
        with pytest.raises(MalformedInputError):
            engine.process("hello", {"tone": "warm"})

    def test_wrong_options_type(self, engine):
        with pytest.raises(MalformedInputError):
            engine.process("hello", "informal")

    def test_rejected_call_is_not_counted(self, engine):
        with pytest.raises(MalformedInputError):
            engine.process(None)
        assert engine.engine_status()['processing_count'] == 0

    def test_reconfigure_rejects_non_state(self, engine):
        with pytest.raises(MalformedInputError):
            engine.reconfigure({"capability": 3.5})


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class TestConfigurationErrors:
    """
    Inconsistent configuration fails at construction, never while processing.
    """

    def test_unterminated_bracket_in_rule(self):
        config = EngineConfig(filter=FilterConfig(rules=(
            PaddingRule("broken", r"[unterminated", RuleCategory.FILLER),
        )))
        with pytest.raises(ConfigurationError):
            AspdEngine(config)

    def test_inconsistent_calibration_defaults(self):
        with pytest.raises(ConfigurationError):
            EngineConfig(calibration=CalibrationConfig(capability=2.89, safety_margin=0.1, ceiling=5.0))

    def test_overlapping_keyword_sets(self):
        sets = DEFAULT_KEYWORD_SETS[:3] + (
            KeywordSet.uniform("personal", ("family", "research")),
        )
        with pytest.raises(ConfigurationError):
            AspdEngine(EngineConfig(context=ContextConfig(keyword_sets=sets)))

    def test_inverted_velocity_thresholds(self):
        with pytest.raises(ConfigurationError):
            EngineConfig(padding=PaddingConfig(velocity_light_min=2.0, velocity_medium_above=1.0))

    def test_configuration_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            CalibrationConfig(safety_margin=-1.0)


# =============================================================================
# BROKEN CALIBRATION
# =============================================================================

class TestSafetyFallback:
    """
    A broken invariant never raises; it pins StandardPadding/medium.
    """

    @pytest.mark.parametrize("state", BROKEN_CALIBRATIONS)
    @pytest.mark.parametrize("text", CONTEXT_TEXTS)
    def test_every_context_falls_back(self, state, text):
        engine = AspdEngine()
        engine.reconfigure(state)
        report = engine.process(text).report

        assert report.amf_alignment is False
        assert report.boolean_mind_level == BooleanMindLevel.MEDIUM
        assert report.padding_decision.mode == PaddingMode.STANDARD_PADDING
        assert report.invariant.severity.value in ("low", "medium", "high")

    def test_override_rejected_while_broken(self, engine):
        engine.reconfigure(OVERDRIVEN_CALIBRATION)
        result = engine.process("Status update.", ProcessOptions(level="none"))
        codes = [a.code for a in result.report.anomalies]

        assert result.report.boolean_mind_level == BooleanMindLevel.MEDIUM
        assert AnomalyCode.INVARIANT_VIOLATION in codes
        assert AnomalyCode.LEVEL_OVERRIDE_REJECTED in codes

    def test_warning_count_grows_per_call(self, engine):
        engine.reconfigure(OVERDRIVEN_CALIBRATION)
        # reconfigure() already ran one check
        first = engine.process("one").report.invariant
        second = engine.process("two").report.invariant
        assert second.warning_count == first.warning_count + 1

    def test_recalibrate_clears_violation(self, engine):
        engine.reconfigure(OVERDRIVEN_CALIBRATION)
        engine.recalibrate(2.89)

        report = engine.process("Status update.").report
        assert report.amf_alignment is True
        assert report.anomalies == ()


# =============================================================================
# UNUSUAL TEXT
# =============================================================================

class TestUnusualText:
    """
    Empty, huge and non-ASCII text all produce a best-effort report.
    """

    def test_only_padding(self, engine):
        result = engine.process(ONLY_PADDING_TEXT)

        assert result.report.filter_hits == 4
        assert result.text
        assert [a.code for a in result.report.anomalies] == [AnomalyCode.EMPTY_AFTER_FILTER]

    def test_whitespace_only(self, engine):
        result = engine.process("   \n\t  ")
        assert result.text
        assert result.report.utterance.segment_count == 0

    def test_huge_input(self, engine):
        text = "The data is ready. " * 5000
        result = engine.process(text)

        assert result.report.utterance.segment_count == 5000
        assert result.text

    def test_unicode_input(self, engine):
        result = engine.process("Ünïcödé 日本語 テキスト 🚀?")

        assert result.report.utterance.segment_count == 1
        assert result.report.amf_alignment is True

    def test_punctuation_only(self, engine):
        result = engine.process("?!...")
        assert result.report.utterance.segment_count == 0
        assert result.text

    def test_control_characters(self, engine):
        result = engine.process("line one\x00\x1b[31m line two.")
        assert result.text
