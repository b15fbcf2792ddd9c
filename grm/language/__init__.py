"""
Language support package.

- language: Language descriptor with lazily built strategies and rules
- registry: Explicit LanguageRegistry with variant queries
- rule_files: Rule-file resolution per language and variant
- strategies: Protocols for the pluggable pipeline stages
- defaults: Simple built-in strategies
- typography: Typographic quotes and dashes for messages
"""

from .defaults import (
    PassThroughDisambiguator,
    DictionaryTagger,
    NoopChunker,
    SimpleSentenceTokenizer,
    WordTokenizer,
)
from .language import Language
from .registry import LanguageRegistry
from .rule_files import RuleFileResolver
from .strategies import (
    Chunker,
    Disambiguator,
    SentenceTokenizer,
    SpellingRule,
    Synthesizer,
    Tagger,
    Tokenizer,
)
from .typography import to_advanced_typography

__all__ = [
    "Language",
    "LanguageRegistry",
    "RuleFileResolver",
    "SimpleSentenceTokenizer",
    "WordTokenizer",
    "DictionaryTagger",
    "PassThroughDisambiguator",
    "NoopChunker",
    "to_advanced_typography",
    "SentenceTokenizer",
    "Tokenizer",
    "Tagger",
    "Disambiguator",
    "Chunker",
    "Synthesizer",
    "SpellingRule",
]
