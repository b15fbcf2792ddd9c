"""
Minimal strategies used when a language supplies none.

They cover the needs of rule development and tests: regex sentence and word
splitting, a dictionary tagger, and pass-through disambiguation.
"""

import re
from typing import Dict, List, Mapping, Optional, Sequence

from ..grm_tokens import AnalyzedSentence, Reading, Token

RE_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
RE_WORD = re.compile(r"\s+|\w+(?:[-']\w+)*|[^\w\s]", re.UNICODE)


class SimpleSentenceTokenizer:
    """Splits after ., ! or ? followed by whitespace, keeping the whitespace."""

    def tokenize(self, text: str) -> List[str]:
        sentences = []
        last = 0
        for m in RE_SENTENCE_END.finditer(text):
            sentences.append(text[last : m.end()])
            last = m.end()
        if last < len(text):
            sentences.append(text[last:])
        return sentences


class WordTokenizer:
    """Words, single punctuation marks and whitespace runs."""

    def tokenize(self, sentence: str) -> List[str]:
        return RE_WORD.findall(sentence)


class DictionaryTagger:
    """
    Looks words up in a word -> readings table.

    Lookup tries the word, then its lower-cased form; unknown words get no
    readings and end up untagged.
    """

    def __init__(self, lexicon: Optional[Mapping[str, Sequence[Reading]]] = None):
        self.lexicon: Dict[str, Sequence[Reading]] = dict(lexicon or {})

    def tag(self, words: Sequence[str]) -> List[List[Reading]]:
        result = []
        for word in words:
            readings = self.lexicon.get(word) or self.lexicon.get(word.lower()) or ()
            result.append(list(readings))
        return result


class PassThroughDisambiguator:
    """Returns sentences unchanged."""

    def disambiguate(self, sentence: AnalyzedSentence) -> AnalyzedSentence:
        return sentence


class NoopChunker:
    """Leaves chunk tags untouched."""

    def add_chunk_tags(self, tokens: Sequence[Token]) -> List[Token]:
        return list(tokens)
