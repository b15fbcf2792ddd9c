"""
Token and analysis model.

Sentences reach the matcher as immutable ``AnalyzedSentence`` objects. Each
token carries one or more readings (lemma plus POS tag); a disambiguator may
narrow readings by building a new token, never by mutating one.
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence

SENT_START_TAG = "SENT_START"


@dataclass(frozen=True)
class Reading:
    """One morphological interpretation of a token."""

    lemma: Optional[str] = None
    pos_tag: Optional[str] = None

    @property
    def is_untagged(self) -> bool:
        return self.pos_tag is None


@dataclass(frozen=True)
class Token:
    """A surface token with its offsets and readings."""

    text: str
    start: int
    end: int
    readings: tuple[Reading, ...]
    whitespace_before: bool = False
    chunk_tags: tuple[str, ...] = field(default_factory=tuple)
    immunized: bool = False
    is_sentence_start: bool = False

    def __post_init__(self):
        if not self.readings:
            raise ValueError(f"Token '{self.text}' at {self.start} has no readings")
        if not isinstance(self.readings, tuple):
            object.__setattr__(self, "readings", tuple(self.readings))
        if not isinstance(self.chunk_tags, tuple):
            object.__setattr__(self, "chunk_tags", tuple(self.chunk_tags))

    @classmethod
    def untagged(cls, text: str, start: int, whitespace_before: bool = False):
        """Build a token with a single null-tag reading."""
        return cls(
            text=text,
            start=start,
            end=start + len(text),
            readings=(Reading(lemma=None, pos_tag=None),),
            whitespace_before=whitespace_before,
        )

    def with_readings(self, readings: Iterable[Reading]) -> "Token":
        """Return a copy of this token carrying ``readings``."""
        return replace(self, readings=tuple(readings))

    def with_chunk_tags(self, chunk_tags: Iterable[str]) -> "Token":
        return replace(self, chunk_tags=tuple(chunk_tags))

    def immunize(self) -> "Token":
        return replace(self, immunized=True)

    def has_pos_tag(self, tag: str) -> bool:
        return any(r.pos_tag == tag for r in self.readings)


@dataclass(frozen=True)
class AnalyzedSentence:
    """
    A tagged sentence. Index 0 is always the sentence-start marker, a
    zero-width token whose only reading carries the SENT_START tag.
    """

    tokens: tuple[Token, ...]
    index: int = 0
    text: str = ""

    def __post_init__(self):
        if not self.tokens or not self.tokens[0].is_sentence_start:
            raise ValueError("AnalyzedSentence must begin with a sentence-start token")

    @classmethod
    def build(
        cls, tokens: Sequence[Token], index: int = 0, text: Optional[str] = None
    ) -> "AnalyzedSentence":
        """Prepend the sentence-start marker to ``tokens``."""
        offset = tokens[0].start if tokens else 0
        marker = Token(
            text="",
            start=offset,
            end=offset,
            readings=(Reading(lemma=None, pos_tag=SENT_START_TAG),),
            is_sentence_start=True,
        )
        if text is None:
            text = "".join(
                (" " if t.whitespace_before and i else "") + t.text
                for i, t in enumerate(tokens)
            )
        return cls(tokens=(marker,) + tuple(tokens), index=index, text=text)

    @property
    def word_tokens(self) -> tuple[Token, ...]:
        """Tokens without the sentence-start marker."""
        return self.tokens[1:]

    def with_tokens(self, tokens: Sequence[Token]) -> "AnalyzedSentence":
        return replace(self, tokens=tuple(tokens))

    def __len__(self):
        return len(self.tokens)
