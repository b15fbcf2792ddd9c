import os
import sys
import threading

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from grm.grm_errors import ConfigurationError, LoadError
from grm.language import (
    Chunker,
    PassThroughDisambiguator,
    Disambiguator,
    Language,
    LanguageRegistry,
    NoopChunker,
    RuleFileResolver,
    SentenceTokenizer,
    Tagger,
    Tokenizer,
    WordTokenizer,
    to_advanced_typography,
)

SIMPLE_RULES = """
version 1.0
rule {name}
    pattern ["{word}"]
    message "Check {word}"
end
"""


def write_rules(path, name, word="foo"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(SIMPLE_RULES.format(name=name, word=word), encoding="utf-8")


class TestRuleFileResolver:
    def test_short_code_only(self):
        resolver = RuleFileResolver("/rules", exists=lambda p: True)
        assert resolver.rule_files("de", "de") == [
            os.path.join("/rules", "de", "grammar.grm"),
            os.path.join("/rules", "de", "style.grm"),
            os.path.join("/rules", "de", "grammar-custom.grm"),
        ]

    def test_variant_files_follow_language_files(self):
        resolver = RuleFileResolver("/rules", exists=lambda p: True)
        files = resolver.rule_files("pt", "pt-PT")
        assert files[3:] == [
            os.path.join("/rules", "pt", "pt-PT", "grammar.grm"),
            os.path.join("/rules", "pt", "pt-PT", "style.grm"),
            os.path.join("/rules", "pt", "pt-PT", "grammar-premium.grm"),
        ]

    def test_optional_files_need_to_exist(self):
        resolver = RuleFileResolver("/rules", exists=lambda p: False)
        assert resolver.rule_files("pt", "pt-PT") == [
            os.path.join("/rules", "pt", "grammar.grm")
        ]


class TestLanguageCodes:
    def test_full_code(self):
        assert Language("de", "German").short_code_with_country_and_variant == "de"
        assert (
            Language("de", "German", countries=("DE",)).short_code_with_country_and_variant
            == "de-DE"
        )
        assert (
            Language(
                "ca", "Catalan", countries=("ES",), variant="valencia"
            ).short_code_with_country_and_variant
            == "ca-ES-valencia"
        )

    def test_locale(self):
        assert Language("pt", "Portuguese", countries=("PT",)).locale == ("pt", "PT", None)

    def test_equals_consider_variants_if_specified(self):
        de = Language("de", "German")
        de_de = Language("de", "German", countries=("DE",))
        de_at = Language("de", "German", countries=("AT",))
        en = Language("en", "English")
        assert de.equals_consider_variants_if_specified(de_de)
        assert de_de.equals_consider_variants_if_specified(de)
        assert not de_de.equals_consider_variants_if_specified(de_at)
        assert not de.equals_consider_variants_if_specified(en)

    def test_typography(self):
        lang = Language("de", "German", opening_double_quote="„", closing_double_quote="“")
        assert (
            lang.to_advanced_typography("Meinten Sie <suggestion>das</suggestion>...")
            == "Meinten Sie „das“…"
        )
        plain = Language("en", "English", advanced_typography=False)
        assert plain.to_advanced_typography('say "hi"') == 'say "hi"'


def test_to_advanced_typography_defaults():
    assert (
        to_advanced_typography("Don't write \"foo\" - write 'bar'")
        == "Don’t write “foo” – write ‘bar’"
    )


class TestLazyStrategies:
    def test_defaults(self):
        lang = Language("en", "English")
        assert isinstance(lang.get_tokenizer(), WordTokenizer)
        assert isinstance(lang.get_disambiguator(), PassThroughDisambiguator)
        assert lang.get_chunker() is None
        assert lang.get_synthesizer() is None

    def test_defaults_implement_strategies(self):
        lang = Language("en", "English", chunker_factory=lambda language: NoopChunker())
        assert isinstance(lang.get_sentence_tokenizer(), SentenceTokenizer)
        assert isinstance(lang.get_tokenizer(), Tokenizer)
        assert isinstance(lang.get_tagger(), Tagger)
        assert isinstance(lang.get_disambiguator(), Disambiguator)
        assert isinstance(lang.get_chunker(), Chunker)

    def test_sentence_tokenizer_keeps_text(self):
        text = "One. Two!  Three? four"
        sentences = Language("en", "English").get_sentence_tokenizer().tokenize(text)
        assert sentences == ["One. ", "Two!  ", "Three? ", "four"]
        assert "".join(sentences) == text

    def test_factory_called_once_under_concurrency(self):
        calls = []
        barrier = threading.Barrier(10)

        def factory(language):
            calls.append(language)
            return object()

        lang = Language("en", "English", tagger_factory=factory)
        results = []

        def worker():
            barrier.wait()
            results.append(lang.get_tagger())

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert calls == [lang]
        assert all(r is results[0] for r in results)

    def test_factory_may_use_other_strategies(self):
        lang = Language(
            "en", "English", tagger_factory=lambda language: language.get_tokenizer()
        )
        assert lang.get_tagger() is lang.get_tokenizer()


class TestPatternRules:
    def test_loads_all_files_in_order(self, tmp_path):
        write_rules(tmp_path / "pt" / "grammar.grm", "A", "a")
        write_rules(tmp_path / "pt" / "style.grm", "B", "b")
        write_rules(tmp_path / "pt" / "pt-PT" / "grammar.grm", "C", "c")
        lang = Language("pt", "Portuguese", countries=("PT",), rules_dir=str(tmp_path))
        rules = lang.pattern_rules()
        assert [r.id for r in rules] == ["A", "B", "C"]
        assert lang.pattern_rules() is rules

    def test_missing_mandatory_file(self, tmp_path):
        lang = Language("pt", "Portuguese", rules_dir=str(tmp_path))
        with pytest.raises(LoadError, match="Mandatory rule file not found"):
            lang.pattern_rules()

    def test_broken_optional_file_is_skipped(self, tmp_path):
        write_rules(tmp_path / "pt" / "grammar.grm", "A")
        (tmp_path / "pt" / "style.grm").write_text("version 1.0\nrule", encoding="utf-8")
        lang = Language("pt", "Portuguese", rules_dir=str(tmp_path))
        assert [r.id for r in lang.pattern_rules()] == ["A"]
        assert len(lang.load_errors) == 1

    def test_no_usable_rules(self, tmp_path):
        (tmp_path / "pt").mkdir()
        (tmp_path / "pt" / "grammar.grm").write_text("version 2.0\n", encoding="utf-8")
        lang = Language("pt", "Portuguese", rules_dir=str(tmp_path))
        with pytest.raises(ConfigurationError, match="No usable rules"):
            lang.pattern_rules()

    def test_duplicate_id_across_files(self, tmp_path):
        write_rules(tmp_path / "pt" / "grammar.grm", "A", "a")
        write_rules(tmp_path / "pt" / "style.grm", "A", "b")
        lang = Language("pt", "Portuguese", rules_dir=str(tmp_path))
        with pytest.raises(ConfigurationError, match="defined in both"):
            lang.pattern_rules()

    def test_extra_rule_files(self, tmp_path):
        extra = tmp_path / "extra.grm"
        write_rules(extra, "X")
        lang = Language("en", "English", extra_rule_files=(str(extra),))
        assert [r.id for r in lang.pattern_rules()] == ["X"]


class TestLanguageRegistry:
    @pytest.fixture
    def registry(self):
        return LanguageRegistry(
            [
                Language("de", "German", default_variant="de-DE"),
                Language("de", "German", countries=("DE",), parent_code="de"),
                Language("de", "German", countries=("AT",), parent_code="de"),
            ]
        )

    def test_get(self, registry):
        assert registry.get("de-AT").short_code_with_country_and_variant == "de-AT"
        assert registry.get("de").short_code_with_country_and_variant == "de"
        assert registry.get("fr") is None
        assert "de-DE" in registry
        assert len(registry) == 3

    def test_short_code_resolves_to_default_variant(self):
        registry = LanguageRegistry(
            [
                Language("pt", "Portuguese", countries=("PT",), default_variant="pt-PT"),
                Language("pt", "Portuguese", countries=("BR",)),
            ]
        )
        assert registry.get("pt").short_code_with_country_and_variant == "pt-PT"

    def test_duplicate_registration(self, registry):
        with pytest.raises(ConfigurationError):
            registry.register(Language("de", "German", countries=("AT",)))

    def test_variant_queries(self, registry):
        de = registry.get("de")
        de_at = registry.get("de-AT")
        assert registry.is_variant(de_at)
        assert not registry.is_variant(de)
        assert registry.has_variant(de)
        assert not registry.has_variant(de_at)
        assert [v.short_code_with_country_and_variant for v in registry.variants_of(de)] == [
            "de-DE",
            "de-AT",
        ]
        assert registry.default_variant(de) is registry.get("de-DE")

    def test_lone_language_has_no_variants(self):
        orphan = Language("de", "German", countries=("CH",), parent_code="de")
        registry = LanguageRegistry([orphan])
        assert not registry.is_variant(orphan)
        assert not registry.has_variant(orphan)
        assert registry.default_variant(orphan) is None

    def test_spelling_rule_cached(self):
        calls = []

        def factory(language):
            calls.append(language)
            return "speller"

        lang = Language("en", "English", spelling_rule_factory=factory)
        registry = LanguageRegistry([lang])
        assert registry.spelling_rule(lang) == "speller"
        assert registry.spelling_rule(lang) == "speller"
        assert len(calls) == 1
        registry.clear_spelling_rules()
        registry.spelling_rule(lang)
        assert len(calls) == 2

    def test_language_without_spelling_rule(self):
        lang = Language("en", "English")
        assert LanguageRegistry([lang]).spelling_rule(lang) is None
