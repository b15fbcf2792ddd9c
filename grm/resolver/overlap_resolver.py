"""
Overlap resolution for rule matches.

Two matches of the same sentence overlap when their token spans intersect,
or their character spans when either match carries no token span.
Of any overlapping pair only the higher-priority match is kept unless one of
the two rules declares the other compatible.
"""

import logging
from itertools import groupby
from typing import Iterable, List

from ..grm_ast import RuleMatch

logger = logging.getLogger(__name__)


def _has_token_span(m: RuleMatch) -> bool:
    return m.token_end > m.token_start


def _overlaps(a: RuleMatch, b: RuleMatch) -> bool:
    if _has_token_span(a) and _has_token_span(b):
        return a.token_start < b.token_end and b.token_start < a.token_end
    # Matches gathered without token positions are compared by character offsets
    return a.start < b.end and b.start < a.end


def _compatible(a: RuleMatch, b: RuleMatch) -> bool:
    return (
        b.rule_id in a.compatible_with
        or b.full_rule_id in a.compatible_with
        or a.rule_id in b.compatible_with
        or a.full_rule_id in b.compatible_with
    )


class OverlapResolver:
    """
    Resolves overlapping matches by rule priority.

    Ties go to the rule registered earlier (lower rule_order), then to the
    earlier span, so the outcome never depends on input order.
    """

    @staticmethod
    def resolve_overlaps(matches: Iterable[RuleMatch]) -> List[RuleMatch]:
        """
        Resolve overlapping matches using the priority rules.

        Priority rules (highest to lowest):
        1. Rule priority (higher wins)
        2. Rule order (earlier registered wins)
        3. Offset (earlier wins)
        4. Span length (longer wins)

        Args:
            matches: RuleMatch objects, possibly from several sentences

        Returns:
            Non-overlapping matches in document order
        """
        matches = list(matches)
        if not matches:
            return []

        # Step 1: Group by sentence; spans of different sentences never overlap
        by_sentence = sorted(matches, key=lambda m: m.sentence_index)
        result: List[RuleMatch] = []
        for _index, group in groupby(by_sentence, key=lambda m: m.sentence_index):
            # Step 2: Visit candidates from strongest to weakest
            ranked = sorted(
                group,
                key=lambda m: (
                    -m.priority,
                    m.rule_order,
                    m.start,
                    -m.length,
                    m.token_start,
                    -(m.token_end - m.token_start),
                    m.full_rule_id,
                ),
            )
            kept: List[RuleMatch] = []
            for match in ranked:
                if all(
                    not _overlaps(match, other) or _compatible(match, other)
                    for other in kept
                ):
                    kept.append(match)
            result.extend(kept)

        # Step 3: Back to document order
        result.sort(
            key=lambda m: (m.sentence_index, m.start, m.end, m.rule_order, m.full_rule_id)
        )
        logger.info("Overlap resolution: %s -> %s matches", len(matches), len(result))
        return result


def resolve_overlaps(matches: Iterable[RuleMatch]) -> List[RuleMatch]:
    """Module-level entry point; see OverlapResolver.resolve_overlaps."""
    return OverlapResolver.resolve_overlaps(matches)
