"""
Rule evaluator: the backtracking matching engine.

This module provides the RuleEvaluator class that runs compiled rules over
analyzed sentences. Matchers consume tokens left to right; quantifiers take
as many tokens as they can and give them back one at a time when the rest of
the pattern fails, skips try the fewest skipped tokens first, and every
labelled token narrows the unifier binding of its agreement group.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .casing import match_case
from .grm_ast import RuleMatch
from .grm_compiler import RE_TEMPLATE, RuleDefinition, TokenMatcher
from .grm_errors import ConfigurationError
from .grm_tokens import AnalyzedSentence, Reading, Token
from .grm_unifier import Unifier, UnifierBinding, UnifierConfiguration
from .resolver.priority import PriorityTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capture:
    """A token consumed by a matcher, with the readings that satisfied it."""

    matcher_index: int
    token_index: int
    readings: Tuple[Reading, ...]


@dataclass(frozen=True)
class MatchAttempt:
    """A complete, unification-accepted pattern match before filtering."""

    rule: RuleDefinition
    captures: Tuple[Capture, ...]
    binding: UnifierBinding

    @property
    def token_start(self) -> int:
        return self.captures[0].token_index

    @property
    def token_end(self) -> int:
        return self.captures[-1].token_index + 1

    def token_positions(self) -> Tuple[int, ...]:
        """Number of tokens consumed by each matcher."""
        counts = [0] * len(self.rule.matchers)
        for capture in self.captures:
            counts[capture.matcher_index] += 1
        return tuple(counts)

    def tokens_of(self, matcher_index: int) -> List[int]:
        return [c.token_index for c in self.captures if c.matcher_index == matcher_index]


def join_tokens(tokens: Sequence[Token]) -> str:
    """Surface text of consecutive tokens, keeping single inter-token spaces."""
    parts = []
    for i, token in enumerate(tokens):
        if i and token.whitespace_before:
            parts.append(" ")
        parts.append(token.text)
    return "".join(parts)


class RuleEvaluator:
    """
    Matching engine for compiled rules.

    Args:
        rules: Compiled rules in registration order; the position of a rule
            in this sequence is its rule_order for tie-breaking
        unifier_config: Feature definitions for rules with agreement groups
        priorities: Priority table; without one the explicit rule priority
            (or 0) is used
    """

    def __init__(
        self,
        rules: Iterable[RuleDefinition] = (),
        unifier_config: Optional[UnifierConfiguration] = None,
        priorities: Optional[PriorityTable] = None,
    ):
        self.rules = list(rules)
        self.unifier_config = unifier_config
        self.priorities = priorities
        self.filter_errors = 0
        self._unifiers: Dict[tuple, Unifier] = {}

    # === Public API ===

    def evaluate(self, sentence: AnalyzedSentence) -> List[RuleMatch]:
        """Run every rule over ``sentence``; matches come back in sentence order."""
        matches: List[RuleMatch] = []
        for order, rule in enumerate(self.rules):
            matches.extend(self.evaluate_rule(rule, sentence, rule_order=order))
        matches.sort(key=lambda m: (m.token_start, m.token_end, m.rule_order))
        return matches

    def evaluate_rule(
        self, rule: RuleDefinition, sentence: AnalyzedSentence, rule_order: int = 0
    ) -> List[RuleMatch]:
        """
        All accepted matches of one rule, leftmost first and non-overlapping.

        Scanning resumes after the end of an accepted match; a vetoed match
        lets the scan continue at the next token.
        """
        results = []
        tokens = sentence.tokens
        priority = self._priority(rule)
        pos = 0
        while pos < len(tokens):
            attempt = self.attempt_at(rule, tokens, pos)
            if attempt is None:
                pos += 1
                continue
            match = self._to_rule_match(attempt, sentence, priority, rule_order)
            if rule.filter is not None:
                match = self._apply_filter(attempt, match, tokens)
            if match is None:
                pos += 1
                continue
            results.append(match)
            pos = max(attempt.token_end, pos + 1)
        return results

    def find_attempts(
        self, rule: RuleDefinition, sentence: AnalyzedSentence
    ) -> List[MatchAttempt]:
        """Raw non-overlapping pattern matches, without filters or messages."""
        attempts = []
        tokens = sentence.tokens
        pos = 0
        while pos < len(tokens):
            attempt = self.attempt_at(rule, tokens, pos)
            if attempt is None:
                pos += 1
            else:
                attempts.append(attempt)
                pos = max(attempt.token_end, pos + 1)
        return attempts

    def attempt_at(
        self, rule: RuleDefinition, tokens: Sequence[Token], start: int
    ) -> Optional[MatchAttempt]:
        """The preferred match of ``rule`` starting its scan at ``start``."""
        if not rule.matchers:
            raise ValueError(f"Rule {rule.full_id} has an empty matcher sequence")
        unifier = self.unifier_for(rule)
        found = self._search(
            rule.matchers, unifier, tokens, 0, start, Unifier.start(), ()
        )
        if found is None:
            return None
        captures, binding = found
        # The sentence-start marker never becomes part of a reported span
        captures = tuple(c for c in captures if not tokens[c.token_index].is_sentence_start)
        return MatchAttempt(rule=rule, captures=captures, binding=binding)

    # === Search ===

    # pylint: disable=too-many-arguments,too-many-locals
    def _search(
        self,
        matchers: Sequence[TokenMatcher],
        unifier: Optional[Unifier],
        tokens: Sequence[Token],
        m_idx: int,
        pos: int,
        binding: UnifierBinding,
        captures: Tuple[Capture, ...],
    ) -> Optional[Tuple[Tuple[Capture, ...], UnifierBinding]]:
        if m_idx == len(matchers):
            if any(not tokens[c.token_index].is_sentence_start for c in captures):
                return captures, binding
            return None

        matcher = matchers[m_idx]
        max_skip = matcher.skip if m_idx else 0
        for skipped in range(max_skip + 1):
            start = pos + skipped
            if start > len(tokens):
                break

            # Longest run of acceptable tokens, up to the quantifier maximum
            run: List[Tuple[Reading, ...]] = []
            i = start
            while len(run) < matcher.max and i < len(tokens):
                readings = matcher.accepted_readings(tokens, i)
                if readings is None:
                    break
                run.append(readings)
                i += 1
            if len(run) < matcher.min:
                continue

            # Bindings after 0..n tokens; a failed intersection caps the count
            bindings = [binding]
            for readings in run:
                if matcher.unify is None:
                    bindings.append(binding)
                    continue
                bound = unifier.bind(bindings[-1], matcher.unify, readings)
                if bound is None:
                    break
                bindings.append(bound)

            # Greedy first, then give tokens back one at a time
            for count in range(len(bindings) - 1, matcher.min - 1, -1):
                if count == 0 and skipped:
                    continue
                consumed = tuple(
                    Capture(m_idx, start + k, run[k]) for k in range(count)
                )
                found = self._search(
                    matchers,
                    unifier,
                    tokens,
                    m_idx + 1,
                    start + count,
                    bindings[count],
                    captures + consumed,
                )
                if found is not None:
                    return found
        return None

    # === Match construction ===

    def _to_rule_match(
        self,
        attempt: MatchAttempt,
        sentence: AnalyzedSentence,
        priority: int,
        rule_order: int,
    ) -> RuleMatch:
        rule = attempt.rule
        tokens = sentence.tokens
        first = tokens[attempt.token_start]
        last = tokens[attempt.token_end - 1]
        matched_text = join_tokens(tokens[attempt.token_start : attempt.token_end])

        suggestions: List[str] = []
        for template in rule.suggestions:
            suggestion = self.expand_template(template, attempt, tokens)
            if rule.preserve_case:
                suggestion = match_case(matched_text, suggestion, rule.locale)
            if suggestion and suggestion not in suggestions:
                suggestions.append(suggestion)

        short_message = None
        if rule.short_message:
            short_message = self.expand_template(rule.short_message, attempt, tokens)

        return RuleMatch(
            start=first.start,
            end=last.end,
            rule_id=rule.id,
            sub_id=rule.sub_id,
            message=self.expand_template(rule.message, attempt, tokens),
            short_message=short_message,
            suggestions=tuple(suggestions),
            sentence_index=sentence.index,
            token_start=attempt.token_start,
            token_end=attempt.token_end,
            priority=priority,
            rule_order=rule_order,
            category_id=rule.category,
            issue_type=rule.issue_type.value,
            compatible_with=rule.compatible_with,
        )

    @staticmethod
    def expand_template(
        template: str, attempt: MatchAttempt, tokens: Sequence[Token]
    ) -> str:
        """
        Replace ``\\N`` with matcher N's text and ``{label}`` with residual values.

        ``\\\\`` and ``\\{`` stand for a literal backslash and brace.
        """

        def expand(m):
            ref, escaped, label = m.groups()
            if ref is not None:
                indexes = attempt.tokens_of(int(ref) - 1)
                return join_tokens([tokens[i] for i in indexes])
            if escaped is not None:
                return escaped
            return attempt.binding.describe(label)

        return RE_TEMPLATE.sub(expand, template)

    def _apply_filter(
        self, attempt: MatchAttempt, match: RuleMatch, tokens: Sequence[Token]
    ) -> Optional[RuleMatch]:
        binding = attempt.rule.filter
        arguments = {
            key: self.expand_template(value, attempt, tokens)
            for key, value in binding.args
        }
        try:
            result = binding.impl.accept_rule_match(
                match,
                arguments,
                attempt.token_start,
                tuple(tokens[attempt.token_start : attempt.token_end]),
                attempt.token_positions(),
            )
        except Exception as e:  # pylint: disable=broad-except
            self.filter_errors += 1
            logger.warning(
                "Filter %s failed for rule %s, dropping match: %s",
                binding.name,
                attempt.rule.full_id,
                e,
            )
            return None
        if result is None:
            return None
        if (result.start, result.end, result.token_start, result.token_end) != (
            match.start,
            match.end,
            match.token_start,
            match.token_end,
        ):
            logger.warning(
                "Filter %s tried to move the span of %s; keeping the original span",
                binding.name,
                attempt.rule.full_id,
            )
            result = replace(
                result,
                start=match.start,
                end=match.end,
                token_start=match.token_start,
                token_end=match.token_end,
            )
        return result

    # === Helpers ===

    def _priority(self, rule: RuleDefinition) -> int:
        if self.priorities is not None:
            return self.priorities.rule_priority(rule)
        return rule.priority if rule.priority is not None else 0

    def unifier_for(self, rule: RuleDefinition) -> Optional[Unifier]:
        if not rule.agreements:
            return None
        key = rule.agreements
        unifier = self._unifiers.get(key)
        if unifier is None:
            if self.unifier_config is None:
                raise ConfigurationError(
                    f"Rule {rule.full_id} uses unification but no unifier "
                    "configuration was supplied"
                )
            for _label, features in rule.agreements:
                for feature in features:
                    if not self.unifier_config.has_feature(feature):
                        raise ConfigurationError(
                            f"Rule {rule.full_id} needs unknown feature '{feature}'"
                        )
            unifier = Unifier(self.unifier_config, rule.agreement_map)
            self._unifiers[key] = unifier
        return unifier


def match(
    sentence: AnalyzedSentence,
    rules: Sequence[RuleDefinition],
    *,
    unifier_config: Optional[UnifierConfiguration] = None,
    priorities: Optional[PriorityTable] = None,
) -> List[RuleMatch]:
    """Match ``rules`` against one sentence; see RuleEvaluator.evaluate."""
    evaluator = RuleEvaluator(rules, unifier_config=unifier_config, priorities=priorities)
    return evaluator.evaluate(sentence)
