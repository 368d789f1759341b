"""
Heat Shield Filter Tests

Phrase removal, tidying, counters and rule-set validation.
"""

import pytest

from aspd.contracts import ConfigurationError, MalformedInputError
from aspd.filtering import (
    DEFAULT_RULES, FilterConfig, PaddingFilter, PaddingRule, RuleCategory,
)


@pytest.fixture
def heat_shield():
    return PaddingFilter()


class TestStrip:

    def test_filler_and_hedge(self, heat_shield):
        result = heat_shield.strip("Um, I think the results are clear.")

        assert result.output == "the results are clear."
        assert result.hit_count == 2
        assert dict(result.rule_hits) == {"hesitation": 1, "i_think": 1}

    def test_stacked_fillers(self, heat_shield):
        result = heat_shield.strip("Well, basically, you know, it works.")

        assert result.output == "it works."
        assert result.hit_count == 3

    def test_meta_clarification(self, heat_shield):
        result = heat_shield.strip("Just to clarify, the deadline is Friday.")
        assert result.output == "the deadline is Friday."

    def test_trailing_meta_question(self, heat_shield):
        result = heat_shield.strip("Restart the service. Does that make sense?")
        assert result.output == "Restart the service."

    def test_case_insensitive(self, heat_shield):
        result = heat_shield.strip("PERHAPS the build failed.")
        assert result.output == "the build failed."
        assert result.hit_count == 1

    def test_tidies_whitespace_and_punctuation(self, heat_shield):
        result = heat_shield.strip("Hello ,  world !")

        assert result.output == "Hello, world!"
        assert result.hit_count == 0
        assert not result.changed

    def test_plain_text_is_untouched(self, heat_shield):
        text = "The server restarted at noon."
        assert heat_shield.strip(text).output == text

    def test_words_inside_other_words_survive(self, heat_shield):
        # "umbrella" and "welling" must not trigger filler rules
        text = "The umbrella kept welling up."
        assert heat_shield.strip(text).output == text

    def test_question_using_you_know(self, heat_shield):
        text = "do you know the way?"
        assert heat_shield.strip(text).output == text

    def test_that_contraction_is_kept(self, heat_shield):
        result = heat_shield.strip("I think that's fine.")
        assert result.output == "that's fine."

    def test_only_padding_becomes_empty(self, heat_shield):
        result = heat_shield.strip("Um, well, you know, basically.")
        assert result.output == ""
        assert result.changed

    def test_empty_input(self, heat_shield):
        result = heat_shield.strip("")
        assert result.output == ""
        assert result.hit_count == 0

    def test_non_string_rejected(self, heat_shield):
        with pytest.raises(MalformedInputError):
            heat_shield.strip(None)
        with pytest.raises(MalformedInputError):
            heat_shield.strip(42)


class TestStats:

    def test_counters_accumulate(self, heat_shield):
        heat_shield.strip("Um, I think the results are clear.")
        heat_shield.strip("Nothing to remove here.")

        stats = heat_shield.stats()
        assert stats.hit_count == 2
        assert stats.calls == 2

    def test_reset_returns_previous(self, heat_shield):
        heat_shield.strip("Maybe it works.")

        previous = heat_shield.reset_stats()
        assert previous.to_dict() == {"hit_count": 1, "calls": 1}
        assert heat_shield.stats().to_dict() == {"hit_count": 0, "calls": 0}

    def test_counters_do_not_change_output(self, heat_shield):
        first = heat_shield.strip("Um, the plan is fine.")
        for _ in range(5):
            heat_shield.strip("Um, uh, erm.")
        assert heat_shield.strip("Um, the plan is fine.").output == first.output

    def test_audit_only_on_hits(self, heat_shield):
        heat_shield.strip("No padding here.")
        assert heat_shield.drain_audit_log() == []

        heat_shield.strip("Basically done.")
        entries = heat_shield.drain_audit_log()
        assert [e.action for e in entries] == ["padding_stripped"]
        assert dict(entries[0].metadata) == {"intensifiers": "1"}


class TestConfiguration:

    def test_default_rules_loaded(self, heat_shield):
        assert heat_shield.rules == DEFAULT_RULES
        categories = {rule.category for rule in heat_shield.rules}
        assert categories == set(RuleCategory)

    def test_custom_rules(self):
        custom = PaddingFilter(FilterConfig(rules=(
            PaddingRule("honestly", r"\bhonestly\b,?", RuleCategory.FILLER),
        )))
        assert custom.strip("Honestly, it broke.").output == "it broke."
        # Default rules are not active
        assert custom.strip("Um, it broke.").output == "Um, it broke."

    def test_empty_rule_set(self):
        with pytest.raises(ConfigurationError):
            PaddingFilter(FilterConfig(rules=()))

    def test_too_many_rules(self):
        rules = tuple(
            PaddingRule(f"rule_{i}", rf"\bword{i}\b", RuleCategory.FILLER)
            for i in range(5)
        )
        with pytest.raises(ConfigurationError):
            PaddingFilter(FilterConfig(rules=rules, max_rules=4))

    def test_invalid_pattern(self):
        with pytest.raises(ConfigurationError):
            PaddingFilter(FilterConfig(rules=(
                PaddingRule("broken", r"(unclosed", RuleCategory.FILLER),
            )))

    def test_empty_matching_pattern(self):
        with pytest.raises(ConfigurationError):
            PaddingFilter(FilterConfig(rules=(
                PaddingRule("anything", r"x*", RuleCategory.FILLER),
            )))

    def test_duplicate_names(self):
        rule = PaddingRule("dup", r"\bdup\b", RuleCategory.FILLER)
        with pytest.raises(ConfigurationError):
            PaddingFilter(FilterConfig(rules=(rule, rule)))

    def test_non_rule_entry(self):
        with pytest.raises(ConfigurationError):
            PaddingFilter(FilterConfig(rules=(r"\bum\b",)))
