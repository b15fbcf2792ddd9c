"""
Disambiguation through unification.

Disambiguation rules are ordinary compiled rules. Wherever one matches, the
labelled tokens keep only the readings that agree with the residual
unification set of their group; everything else is dropped. The
disambiguation unifier configuration of the language is used, never the
matching one.
"""

import logging
from typing import Iterable, List, Optional

from .grm_compiler import PatternCompiler, RuleDefinition
from .grm_evaluator import RuleEvaluator
from .grm_tokens import AnalyzedSentence, Token
from .grm_unifier import UnifierConfiguration

logger = logging.getLogger(__name__)


class UnifyingDisambiguator:
    """Disambiguator that narrows readings with unification rules."""

    def __init__(
        self,
        rules: Iterable[RuleDefinition],
        unifier_config: UnifierConfiguration,
    ):
        self.rules = list(rules)
        self.evaluator = RuleEvaluator(self.rules, unifier_config=unifier_config)

    @classmethod
    def from_language(cls, language, rule_file: Optional[str] = None, code: str = ""):
        """
        Build from rule-file text or a rule file, compiled against the
        language's disambiguation unifier configuration.
        """
        config = language.disambiguation_unifier_config
        compiler = PatternCompiler(
            unifier_config=config, filters=language.filters, locale=language.short_code
        )
        if rule_file is not None:
            rules = compiler.compile_file(rule_file)
        else:
            rules = compiler.compile_string(code)
        return cls(rules, config)

    def disambiguate(self, sentence: AnalyzedSentence) -> AnalyzedSentence:
        tokens: List[Token] = list(sentence.tokens)
        changed = 0
        for rule in self.rules:
            if not rule.agreements:
                continue
            current = sentence.with_tokens(tokens)
            unifier = self.evaluator.unifier_for(rule)
            for attempt in self.evaluator.find_attempts(rule, current):
                for capture in attempt.captures:
                    label = rule.matchers[capture.matcher_index].unify
                    if label is None:
                        continue
                    keep = unifier.agreeing_readings(
                        attempt.binding, label, capture.readings
                    )
                    token = tokens[capture.token_index]
                    # Never leave a token without readings
                    if keep and len(keep) < len(token.readings):
                        tokens[capture.token_index] = token.with_readings(keep)
                        changed += 1
        if changed:
            logger.debug(
                "Disambiguation narrowed %s tokens in sentence %s", changed, sentence.index
            )
        return sentence.with_tokens(tokens)
