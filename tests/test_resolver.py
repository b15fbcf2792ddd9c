"""
Tests for priorities and overlap resolution.

This module tests:
1. The priority lookup order of PriorityTable
2. Overlap resolution with tie-breaking rules
3. Compatible rules and sentence boundaries
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from grm.grm_ast import RuleMatch
from grm.grm_compiler import IssueType, RuleDefinition
from grm.grm_errors import ConfigurationError
from grm.resolver import OverlapResolver, PriorityTable, resolve_overlaps


def rule_match(rule_id, token_start, token_end, priority=0, rule_order=0, **kwargs):
    return RuleMatch(
        start=token_start * 5,
        end=token_end * 5,
        rule_id=rule_id,
        message=rule_id,
        token_start=token_start,
        token_end=token_end,
        priority=priority,
        rule_order=rule_order,
        **kwargs,
    )


def rule(rule_id, **kwargs):
    return RuleDefinition(id=rule_id, message="m", matchers=(), **kwargs)


class TestPriorityTable:
    """Lookup order of rule priorities."""

    def test_default_is_zero(self):
        assert PriorityTable().rule_priority(rule("A")) == 0

    def test_explicit_rule_priority(self):
        assert PriorityTable().rule_priority(rule("A", priority=7)) == 7

    def test_id_override_beats_rule_priority(self):
        table = PriorityTable(id_priorities={"A": 3})
        assert table.rule_priority(rule("A", priority=7)) == 3

    def test_full_id_override_beats_id(self):
        table = PriorityTable(id_priorities={"A": 3, "A[2]": 9})
        assert table.rule_priority(rule("A", sub_id="2")) == 9
        assert table.rule_priority(rule("A", sub_id="1")) == 3

    def test_category_priority(self):
        table = PriorityTable(category_priorities={"TYPOS": 4})
        assert table.rule_priority(rule("A", category="TYPOS")) == 4
        # An explicit priority is more specific than the category
        assert table.rule_priority(rule("A", category="TYPOS", priority=1)) == 1

    def test_style_default(self):
        table = PriorityTable(default_style_priority=-10)
        assert table.rule_priority(rule("A", issue_type=IssueType.STYLE)) == -10
        assert table.rule_priority(rule("A")) == 0

    def test_builtin_ids(self):
        table = PriorityTable()
        assert table.priority_for_id("TOO_LONG_SENTENCE") == -101
        assert table.priority_for_id("REPETITIONS_STYLE") == -55
        assert table.priority_for_id("PASSIVE_STYLE_CHECK") == -50
        assert table.priority_for_id("MORFOLOGIK_RULE") is None

    def test_builtin_policy_applies_to_category_ids(self):
        table = PriorityTable()
        assert table.rule_priority(rule("WORD_REPEAT", category="REPETITIONS_STYLE")) == -55
        assert table.rule_priority(rule("PASSIVE_VOICE", category="STYLE")) == -50
        assert table.rule_priority(rule("TYPO", category="TYPOS")) == 0
        # A priority given by the rule itself still comes first
        assert table.rule_priority(rule("A", category="STYLE", priority=3)) == 3

    def test_configured_category_beats_builtin_category_policy(self):
        table = PriorityTable(category_priorities={"STYLE": 2})
        assert table.rule_priority(rule("PASSIVE_VOICE", category="STYLE")) == 2

    def test_too_long_sentence_ignores_case(self):
        assert PriorityTable().priority_for_id("Too_Long_Sentence") == -101

    def test_builtin_ids_can_be_overridden_or_disabled(self):
        assert PriorityTable(id_priorities={"TOO_LONG_SENTENCE": 0}).priority_for_id(
            "TOO_LONG_SENTENCE"
        ) == 0
        assert PriorityTable(use_builtin=False).priority_for_id("SOME_STYLE") is None

    @pytest.mark.parametrize("bad", ["high", 1.5, True, None])
    def test_non_integer_priority_rejected(self, bad):
        with pytest.raises(ConfigurationError):
            PriorityTable(id_priorities={"A": bad})

    def test_non_integer_style_default_rejected(self):
        with pytest.raises(ConfigurationError):
            PriorityTable(default_style_priority="low")


class TestOverlapResolution:
    """Overlap resolution with tie-breaking rules."""

    def test_empty_input(self):
        assert resolve_overlaps([]) == []

    def test_higher_priority_wins(self):
        a = rule_match("A", 1, 3, priority=-5, rule_order=0)
        b = rule_match("B", 2, 4, priority=5, rule_order=1)
        assert resolve_overlaps([a, b]) == [b]

    def test_tie_goes_to_earlier_rule(self):
        a = rule_match("A", 2, 4, rule_order=1)
        b = rule_match("B", 1, 3, rule_order=0)
        assert resolve_overlaps([a, b]) == [b]

    def test_same_rule_prefers_earlier_then_longer_span(self):
        short = rule_match("A", 1, 2)
        long = rule_match("A", 1, 4)
        later = rule_match("A", 3, 5)
        assert resolve_overlaps([later, short, long]) == [long]

    def test_adjacent_spans_do_not_overlap(self):
        a = rule_match("A", 1, 3, priority=1)
        b = rule_match("B", 3, 5)
        assert resolve_overlaps([b, a]) == [a, b]

    def test_compatible_rules_coexist(self):
        a = rule_match("A", 1, 3, priority=1, compatible_with=("B",))
        b = rule_match("B", 2, 4)
        assert resolve_overlaps([a, b]) == [a, b]

    def test_compatibility_by_full_id(self):
        a = rule_match("A", 1, 3, priority=1)
        b = rule_match("B", 2, 4, sub_id="1", compatible_with=("A",))
        c = rule_match("C", 2, 4, compatible_with=("B[2]",))
        result = resolve_overlaps([a, b, c])
        assert a in result and b in result and c not in result

    def test_different_sentences_never_overlap(self):
        a = rule_match("A", 1, 3, sentence_index=0)
        b = rule_match("B", 1, 3, sentence_index=1, priority=10)
        assert resolve_overlaps([b, a]) == [a, b]

    def test_low_priority_rule_does_not_mask_spelling(self):
        table = PriorityTable()
        too_long = rule_match(
            "TOO_LONG_SENTENCE",
            1,
            20,
            priority=table.priority_for_id("TOO_LONG_SENTENCE"),
            rule_order=0,
        )
        spelling = rule_match("SPELLING", 4, 5, rule_order=1)
        assert resolve_overlaps([too_long, spelling]) == [spelling]

    def test_character_offsets_without_token_spans(self):
        a = RuleMatch(start=0, end=10, rule_id="A", message="a", priority=5)
        b = RuleMatch(start=3, end=8, rule_id="B", message="b", priority=-5)
        c = RuleMatch(start=10, end=12, rule_id="C", message="c")
        assert resolve_overlaps([b, c, a]) == [a, c]

    def test_mixed_spans_fall_back_to_character_offsets(self):
        engine = rule_match("A", 1, 3)
        external = RuleMatch(start=7, end=9, rule_id="EXT", message="e", priority=1)
        assert resolve_overlaps([engine, external]) == [external]

    def test_result_does_not_depend_on_input_order(self):
        matches = [
            rule_match("A", 1, 3, rule_order=0),
            rule_match("B", 2, 5, rule_order=1, priority=2),
            rule_match("C", 4, 6, rule_order=2),
            rule_match("D", 6, 8, rule_order=3),
        ]
        expected = resolve_overlaps(matches)
        assert resolve_overlaps(list(reversed(matches))) == expected
        assert [m.rule_id for m in expected] == ["B", "D"]

    def test_static_entry_point(self):
        a = rule_match("A", 1, 3)
        assert OverlapResolver.resolve_overlaps([a]) == [a]
