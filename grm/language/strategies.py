"""Strategy interfaces a language plugs into the checking pipeline."""

from typing import List, Protocol, Sequence, runtime_checkable

from ..grm_ast import RuleMatch
from ..grm_tokens import AnalyzedSentence, Reading, Token


@runtime_checkable
class SentenceTokenizer(Protocol):
    """Splits raw text into sentences."""

    def tokenize(self, text: str) -> List[str]:
        """Return the sentences of ``text``; joined they reproduce ``text``."""
        ...


@runtime_checkable
class Tokenizer(Protocol):
    """Splits one sentence into surface tokens."""

    def tokenize(self, sentence: str) -> List[str]:
        """Return tokens, whitespace included, in order."""
        ...


@runtime_checkable
class Tagger(Protocol):
    """Attaches readings to tokens."""

    def tag(self, words: Sequence[str]) -> List[List[Reading]]:
        """Return the readings of each word; an empty list means untagged."""
        ...


@runtime_checkable
class Disambiguator(Protocol):
    """Narrows readings; must never leave a token without readings."""

    def disambiguate(self, sentence: AnalyzedSentence) -> AnalyzedSentence:
        ...


@runtime_checkable
class Chunker(Protocol):
    """Adds chunk tags to tokens."""

    def add_chunk_tags(self, tokens: Sequence[Token]) -> List[Token]:
        ...


@runtime_checkable
class Synthesizer(Protocol):
    """Generates inflected forms."""

    def synthesize(self, lemma: str, pos_tag: str) -> List[str]:
        ...


@runtime_checkable
class SpellingRule(Protocol):
    """A language's speller, run after the pattern rules."""

    rule_id: str

    def match(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        ...
