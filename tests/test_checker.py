"""
End-to-end tests of the checking pipeline.

This module tests:
1. Sentence analysis with the default strategies
2. Pattern, replace-list and spelling rules running together
3. Rule switches and the per-call time budget
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from grm import Checker, MatchTimeout, Reading, RuleMatch
from grm.language import DictionaryTagger, Language, LanguageRegistry
from grm.replace_rule import ReplaceListRule

RULES = r"""
version 1.0

rule WORD_REPEAT
    category TYPOS
    pattern ["is"] ["is"]
    message "Possible typo: you repeated a word"
    suggest "is"
end

rule HE_GO
    pattern [lemma="he"] [pos=/VB/]
    message "Use \"goes\" after \"\1\""
    suggest "\1 goes"
end

rule OFF_RULE
    pattern ["home"]
    message "Disabled by default"
    off
end
"""

LEXICON = {
    "he": [Reading(lemma="he", pos_tag="PRP")],
    "go": [Reading(lemma="go", pos_tag="VB")],
    "is": [Reading(lemma="be", pos_tag="VBZ")],
}


class UnknownWordSpeller:
    """Flags words the tagger does not know."""

    rule_id = "SPELLER"

    def match(self, sentence):
        return [
            RuleMatch(
                start=t.start,
                end=t.end,
                rule_id=self.rule_id,
                message="Unknown word",
                token_start=i,
                token_end=i + 1,
            )
            for i, t in enumerate(sentence.tokens)
            if not t.is_sentence_start and t.text == "Thsi"
        ]


@pytest.fixture
def rule_file(tmp_path):
    path = tmp_path / "rules.grm"
    path.write_text(RULES, encoding="utf-8")
    return str(path)


def english(rule_file, **kwargs):
    return Language(
        "en",
        "English",
        countries=("US",),
        extra_rule_files=(rule_file,),
        tagger_factory=lambda language: DictionaryTagger(LEXICON),
        **kwargs,
    )


def test_analyze_sentences(rule_file):
    checker = Checker(english(rule_file))
    sentences = checker.analyze("This is is a test. He go home.")
    assert len(sentences) == 2
    first, second = sentences
    assert [t.text for t in first.word_tokens] == ["This", "is", "is", "a", "test", "."]
    assert first.tokens[0].is_sentence_start
    assert second.index == 1
    he = second.word_tokens[0]
    assert (he.start, he.end) == (19, 21)
    assert he.readings == (Reading(lemma="he", pos_tag="PRP"),)
    # Unknown words carry a single untagged reading
    assert second.word_tokens[2].readings == (Reading(lemma=None, pos_tag=None),)
    assert second.word_tokens[1].whitespace_before
    assert not second.word_tokens[3].whitespace_before


def test_check_finds_matches_in_document_order(rule_file):
    checker = Checker(english(rule_file))
    matches = checker.check("This is is a test. He go home.")
    assert [m.rule_id for m in matches] == ["WORD_REPEAT", "HE_GO"]
    repeat, he_go = matches
    assert (repeat.start, repeat.end) == (5, 10)
    assert repeat.category_id == "TYPOS"
    assert (he_go.start, he_go.end) == (19, 24)
    assert he_go.sentence_index == 1
    assert he_go.message == "Use “goes” after “He”"
    assert he_go.suggestions == ("He goes",)


def test_disabled_rule(rule_file):
    checker = Checker(english(rule_file), disabled_rules={"WORD_REPEAT"})
    assert [m.rule_id for m in checker.check("This is is a test.")] == []


def test_rule_off_by_default_can_be_enabled(rule_file):
    text = "Go home."
    assert Checker(english(rule_file)).check(text) == []
    enabled = Checker(english(rule_file), enabled_rules={"OFF_RULE"}).check(text)
    assert [m.rule_id for m in enabled] == ["OFF_RULE"]


def test_replace_rules_run_with_pattern_rules(rule_file):
    with ReplaceListRule(
        "EN_REPLACE",
        [("alot", ("a lot",))],
        "Did you mean <suggestion>$suggestions</suggestion>?",
        locale="en",
    ) as replace_rule:
        checker = Checker(english(rule_file), replace_rules=[replace_rule])
        matches = checker.check("It is is alot.")
        assert [m.full_rule_id for m in matches] == [
            "WORD_REPEAT",
            "EN_REPLACE[EN_REPLACE_ALOT]",
        ]
        assert matches[1].message == "Did you mean “a lot”?"
        assert matches[1].rule_order == 3

        disabled = Checker(
            english(rule_file),
            replace_rules=[replace_rule],
            disabled_rules={"EN_REPLACE[EN_REPLACE_ALOT]"},
        )
        assert [m.rule_id for m in disabled.check("It is alot.")] == []


def test_spelling_rule_from_registry(rule_file):
    calls = []

    def factory(language):
        calls.append(language)
        return UnknownWordSpeller()

    language = english(rule_file, spelling_rule_factory=factory)
    registry = LanguageRegistry([language])
    checker = Checker(language, registry=registry)
    matches = checker.check("Thsi is fine. Thsi too.")
    assert [(m.rule_id, m.sentence_index) for m in matches] == [
        ("SPELLER", 0),
        ("SPELLER", 1),
    ]
    # The registry builds the speller once and shares it between checkers
    Checker(language, registry=registry).check("Thsi")
    assert len(calls) == 1


def test_spelling_rule_without_registry(rule_file):
    language = english(rule_file, spelling_rule_factory=lambda lang: UnknownWordSpeller())
    checker = Checker(language, disabled_rules={"SPELLER"})
    assert checker.check("Thsi") == []
    assert [m.rule_id for m in Checker(language).check("Thsi")] == ["SPELLER"]


def test_time_budget_exceeded_returns_partial_results(rule_file):
    ticks = iter([0.0, 0.0, 5.0])
    checker = Checker(english(rule_file), time_budget=1.0, clock=lambda: next(ticks))
    with pytest.raises(MatchTimeout) as excinfo:
        checker.check("This is is a test. He go home.")
    partial = excinfo.value.partial_matches
    assert [m.rule_id for m in partial] == ["WORD_REPEAT"]
    assert isinstance(excinfo.value, TimeoutError)


def test_empty_text(rule_file):
    assert Checker(english(rule_file)).check("") == []


def test_rule_switches_can_change_between_checks(rule_file):
    checker = Checker(english(rule_file))
    text = "This is is a test."
    assert [m.rule_id for m in checker.check(text)] == ["WORD_REPEAT"]
    checker.disabled_rules.add("WORD_REPEAT")
    assert checker.check(text) == []
    checker.disabled_rules.clear()
    assert [m.rule_id for m in checker.check(text)] == ["WORD_REPEAT"]
