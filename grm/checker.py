"""
Checking pipeline.

Runs a Language's strategies over raw text and collects the resolved
matches:

    sentences -> tokens -> readings -> chunks -> disambiguation
    -> pattern rules, replace-list rules, spelling rule
    -> overlap resolution -> typographic messages
"""

import logging
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .grm_ast import RuleMatch
from .grm_compiler import RuleDefinition
from .grm_errors import MatchTimeout
from .grm_evaluator import RuleEvaluator
from .grm_tokens import AnalyzedSentence, Reading, Token
from .language.language import Language
from .language.registry import LanguageRegistry
from .replace_rule import ReplaceListRule
from .resolver.overlap_resolver import resolve_overlaps

logger = logging.getLogger(__name__)


class Checker:  # pylint: disable=too-many-instance-attributes
    """
    Checks text in one language.

    Args:
        language: The language whose strategies and rules are used
        registry: Caller-owned registry holding the spelling-rule cache
        replace_rules: Replace-list rules run after the pattern rules
        enabled_rules: Rule ids (or full ids) switched on even when off by default
        disabled_rules: Rule ids (or full ids) switched off
        time_budget: Seconds allowed per ``check`` call, checked between
            sentences; None means no limit
        clock: Monotonic clock used for the budget
    """

    def __init__(
        self,
        language: Language,
        registry: Optional[LanguageRegistry] = None,
        replace_rules: Iterable[ReplaceListRule] = (),
        enabled_rules: Iterable[str] = (),
        disabled_rules: Iterable[str] = (),
        time_budget: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.language = language
        self.registry = registry
        self.replace_rules = list(replace_rules)
        self.enabled_rules = set(enabled_rules)
        self.disabled_rules = set(disabled_rules)
        self.time_budget = time_budget
        self.clock = clock
        self._evaluator: Optional[RuleEvaluator] = None
        self._rule_order: Dict[int, int] = {}
        self._speller = None
        self._speller_loaded = False

    # === Rule selection ===

    def is_enabled(self, rule: RuleDefinition) -> bool:
        ids = {rule.id, rule.full_id}
        if ids & self.disabled_rules:
            return False
        return rule.default_enabled or bool(ids & self.enabled_rules)

    def active_rules(self) -> List[RuleDefinition]:
        return [r for r in self.language.pattern_rules() if self.is_enabled(r)]

    def _get_evaluator(self) -> RuleEvaluator:
        if self._evaluator is None:
            ordered = list(self.language.pattern_rules())
            for replace_rule in self.replace_rules:
                ordered.extend(replace_rule.sub_rules)
            self._rule_order = {id(rule): order for order, rule in enumerate(ordered)}
            self._evaluator = RuleEvaluator(
                self.language.pattern_rules(),
                unifier_config=self.language.unifier_config,
                priorities=self.language.priorities,
            )
        return self._evaluator

    def _spelling_rule(self):
        if self.registry is not None:
            return self.registry.spelling_rule(self.language)
        if not self._speller_loaded:
            factory = self.language.spelling_rule_factory
            self._speller = factory(self.language) if factory else None
            self._speller_loaded = True
        return self._speller

    # === Analysis ===

    def analyze(self, text: str) -> List[AnalyzedSentence]:
        sentences = []
        offset = 0
        for index, sentence_text in enumerate(
            self.language.get_sentence_tokenizer().tokenize(text)
        ):
            analyzed = self.analyze_sentence(sentence_text, offset, index)
            offset += len(sentence_text)
            if analyzed is not None:
                sentences.append(analyzed)
        return sentences

    def analyze_sentence(
        self, sentence_text: str, offset: int = 0, index: int = 0
    ) -> Optional[AnalyzedSentence]:
        """Tokenize, tag, chunk and disambiguate one sentence."""
        words: List[str] = []
        starts: List[int] = []
        spaces: List[bool] = []
        pos = 0
        pending_space = False
        for piece in self.language.get_tokenizer().tokenize(sentence_text):
            found = sentence_text.find(piece, pos)
            if found >= 0:
                # Tokenizers that drop whitespace leave a gap instead
                pending_space = pending_space or found > pos
                pos = found
            if piece.isspace():
                pending_space = True
            else:
                words.append(piece)
                starts.append(offset + pos)
                spaces.append(pending_space)
                pending_space = False
            pos += len(piece)
        if not words:
            return None

        tagged = self.language.get_tagger().tag(words)
        tokens = []
        for word, start, space, readings in zip(words, starts, spaces, tagged):
            tokens.append(
                Token(
                    text=word,
                    start=start,
                    end=start + len(word),
                    readings=tuple(readings) or (Reading(lemma=None, pos_tag=None),),
                    whitespace_before=space,
                )
            )
        chunker = self.language.get_chunker()
        if chunker is not None:
            tokens = chunker.add_chunk_tags(tokens)

        sentence = AnalyzedSentence.build(tokens, index=index, text=sentence_text)
        sentence = self.language.get_disambiguator().disambiguate(sentence)

        post_chunker = self.language.get_post_disambiguation_chunker()
        if post_chunker is not None:
            chunked = post_chunker.add_chunk_tags(sentence.word_tokens)
            sentence = sentence.with_tokens((sentence.tokens[0],) + tuple(chunked))
        return sentence

    # === Matching ===

    def check_sentence(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        """Unresolved matches of every active rule in one sentence."""
        evaluator = self._get_evaluator()
        matches: List[RuleMatch] = []
        # Rule switches are read on every call
        for rule in self.active_rules():
            matches.extend(
                evaluator.evaluate_rule(rule, sentence, self._rule_order[id(rule)])
            )
        for replace_rule in self.replace_rules:
            for rule in replace_rule.candidate_rules(sentence):
                if self.is_enabled(rule):
                    matches.extend(
                        evaluator.evaluate_rule(
                            rule, sentence, self._rule_order[id(rule)]
                        )
                    )
        matches.extend(self._spelling_matches(sentence))
        matches.sort(key=lambda m: (m.token_start, m.token_end, m.rule_order))
        return matches

    def _spelling_matches(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        speller = self._spelling_rule()
        if speller is None or speller.rule_id in self.disabled_rules:
            return []
        prio = self.language.priorities.priority_for_id(speller.rule_id) or 0
        order = len(self._rule_order)
        return [
            replace(m, priority=prio, rule_order=order, sentence_index=sentence.index)
            for m in speller.match(sentence)
        ]

    def check(self, text: str) -> List[RuleMatch]:
        """Check ``text`` and return resolved matches in document order."""
        started = self.clock()
        matches: List[RuleMatch] = []
        for sentence in self.analyze(text):
            if self.time_budget is not None and self.clock() - started > self.time_budget:
                partial = self._finish(matches)
                raise MatchTimeout(
                    f"Checking stopped after {len(partial)} matches: "
                    f"time budget of {self.time_budget}s exceeded",
                    partial_matches=partial,
                )
            matches.extend(self.check_sentence(sentence))
        return self._finish(matches)

    def _finish(self, matches: Sequence[RuleMatch]) -> List[RuleMatch]:
        resolved = resolve_overlaps(matches)
        return [
            replace(m, message=self.language.to_advanced_typography(m.message))
            for m in resolved
        ]
