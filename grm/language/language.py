"""
Language descriptor.

A Language is a configuration record: codes, priorities, unifier
configurations, quote characters and where its rule files live. Tokenizers,
tagger, disambiguator, chunkers and synthesizer are injected as factories
and built lazily, once, the first time they are asked for.
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..filters.base import FilterRegistry
from ..grm_compiler import PatternCompiler, RuleDefinition, is_test_fixture, load_rule_file
from ..grm_errors import ConfigurationError, LoadError
from ..grm_unifier import UnifierConfiguration
from ..resolver.priority import PriorityTable
from .defaults import (
    PassThroughDisambiguator,
    DictionaryTagger,
    SimpleSentenceTokenizer,
    WordTokenizer,
)
from .rule_files import RuleFileResolver
from .strategies import (
    Chunker,
    Disambiguator,
    SentenceTokenizer,
    Synthesizer,
    Tagger,
    Tokenizer,
)
from .typography import to_advanced_typography

logger = logging.getLogger(__name__)

Factory = Callable[["Language"], Any]


@dataclass(eq=False)
class Language:  # pylint: disable=too-many-instance-attributes
    """
    One language or language variant.

    Factories receive the Language and return the strategy object; a
    missing tokenizer, sentence tokenizer, tagger or disambiguator factory
    falls back to the simple defaults, a missing chunker or synthesizer
    factory means the language has none.
    """

    short_code: str
    name: str
    countries: Tuple[str, ...] = ()
    variant: Optional[str] = None
    parent_code: Optional[str] = None
    default_variant: Optional[str] = None
    priorities: PriorityTable = field(default_factory=PriorityTable)
    unifier_config: UnifierConfiguration = field(default_factory=UnifierConfiguration)
    disambiguation_unifier_config: UnifierConfiguration = field(
        default_factory=UnifierConfiguration
    )
    filters: FilterRegistry = field(default_factory=FilterRegistry)
    rules_dir: Optional[str] = None
    rule_exists: Optional[Callable[[str], bool]] = None
    extra_rule_files: Tuple[str, ...] = ()
    opening_double_quote: str = "“"
    closing_double_quote: str = "”"
    opening_single_quote: str = "‘"
    closing_single_quote: str = "’"
    advanced_typography: bool = True
    sentence_tokenizer_factory: Optional[Factory] = None
    tokenizer_factory: Optional[Factory] = None
    tagger_factory: Optional[Factory] = None
    disambiguator_factory: Optional[Factory] = None
    chunker_factory: Optional[Factory] = None
    post_disambiguation_chunker_factory: Optional[Factory] = None
    synthesizer_factory: Optional[Factory] = None
    spelling_rule_factory: Optional[Factory] = None

    _lock: Any = field(default_factory=threading.RLock, init=False, repr=False)
    _instances: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _full_code: Optional[str] = field(default=None, init=False, repr=False)
    _pattern_rules: Optional[List[RuleDefinition]] = field(
        default=None, init=False, repr=False
    )
    load_errors: List[LoadError] = field(default_factory=list, init=False, repr=False)

    # === Codes ===

    @property
    def short_code_with_country_and_variant(self) -> str:
        """``xx``, ``xx-YY`` or ``xx-YY-variant``; computed once."""
        if self._full_code is None:
            with self._lock:
                if self._full_code is None:
                    code = self.short_code
                    if self.countries:
                        code += "-" + self.countries[0]
                        if self.variant:
                            code += "-" + self.variant
                    self._full_code = code
        return self._full_code

    @property
    def locale(self) -> Tuple[str, Optional[str], Optional[str]]:
        country = self.countries[0] if self.countries else None
        return (self.short_code, country, self.variant)

    def equals_consider_variants_if_specified(self, other: "Language") -> bool:
        """
        Same short code, and same country unless either side has none.
        """
        if self.short_code != other.short_code:
            return False
        if not self.countries or not other.countries:
            return True
        return (
            self.short_code_with_country_and_variant
            == other.short_code_with_country_and_variant
        )

    # === Lazy strategies ===

    def _singleton(self, key: str, factory: Optional[Factory], default=None):
        if key not in self._instances:
            with self._lock:
                if key not in self._instances:
                    if factory is not None:
                        instance = factory(self)
                    elif default is not None:
                        instance = default()
                    else:
                        instance = None
                    logger.debug("Created %s for %s", key, self.short_code)
                    self._instances[key] = instance
        return self._instances[key]

    def get_sentence_tokenizer(self) -> SentenceTokenizer:
        return self._singleton(
            "sentence_tokenizer", self.sentence_tokenizer_factory, SimpleSentenceTokenizer
        )

    def get_tokenizer(self) -> Tokenizer:
        return self._singleton("tokenizer", self.tokenizer_factory, WordTokenizer)

    def get_tagger(self) -> Tagger:
        return self._singleton("tagger", self.tagger_factory, DictionaryTagger)

    def get_disambiguator(self) -> Disambiguator:
        return self._singleton(
            "disambiguator", self.disambiguator_factory, PassThroughDisambiguator
        )

    def get_chunker(self) -> Optional[Chunker]:
        return self._singleton("chunker", self.chunker_factory)

    def get_post_disambiguation_chunker(self) -> Optional[Chunker]:
        return self._singleton(
            "post_disambiguation_chunker", self.post_disambiguation_chunker_factory
        )

    def get_synthesizer(self) -> Optional[Synthesizer]:
        return self._singleton("synthesizer", self.synthesizer_factory)

    # === Rules ===

    def rule_files(self) -> List[str]:
        if self.rules_dir is None:
            return list(self.extra_rule_files)
        resolver = RuleFileResolver(self.rules_dir, self.rule_exists)
        files = resolver.rule_files(
            self.short_code, self.short_code_with_country_and_variant
        )
        return files + list(self.extra_rule_files)

    def pattern_compiler(self) -> PatternCompiler:
        return PatternCompiler(
            unifier_config=self.unifier_config,
            filters=self.filters,
            locale=self.short_code,
        )

    def pattern_rules(self) -> List[RuleDefinition]:
        """Compiled pattern rules of all rule files; assembled once."""
        if self._pattern_rules is None:
            with self._lock:
                if self._pattern_rules is None:
                    self._pattern_rules = self._load_pattern_rules()
        return self._pattern_rules

    def _load_pattern_rules(self) -> List[RuleDefinition]:
        compiler = self.pattern_compiler()
        exists = self.rule_exists or os.path.isfile
        files = self.rule_files()
        rules: List[RuleDefinition] = []
        origin: Dict[Tuple[str, Optional[str]], str] = {}
        self.load_errors = []
        for index, path in enumerate(files):
            if index == 0 and self.rules_dir is not None and not exists(path):
                if is_test_fixture(path):
                    continue
                raise LoadError("Mandatory rule file not found", path=path)
            try:
                loaded = load_rule_file(path, compiler)
            except LoadError as e:
                logger.error("Skipping rule file: %s", e)
                self.load_errors.append(e)
                continue
            for rule in loaded:
                key = (rule.id, rule.sub_id)
                if key in origin:
                    raise ConfigurationError(
                        f"Rule id {rule.full_id} defined in both {origin[key]} and {path}"
                    )
                origin[key] = path
                rules.append(rule)
        if not rules and self.load_errors:
            raise ConfigurationError(
                f"No usable rules for {self.short_code_with_country_and_variant}: "
                f"{len(self.load_errors)} rule file(s) failed to load"
            )
        logger.info(
            "Loaded %s pattern rules for %s from %s files",
            len(rules),
            self.short_code_with_country_and_variant,
            len(files),
        )
        return rules

    # === Messages ===

    def to_advanced_typography(self, text: str) -> str:
        if not self.advanced_typography:
            return text
        return to_advanced_typography(
            text,
            self.opening_double_quote,
            self.closing_double_quote,
            self.opening_single_quote,
            self.closing_single_quote,
        )

    def __repr__(self):
        return f"Language({self.short_code_with_country_and_variant})"
