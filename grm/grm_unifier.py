"""
Feature unification across pattern tokens.

A UnifierConfiguration maps each feature (gender, number, case, ...) to the
values it can take and, for each value, a regular expression over POS tags.
A reading contributes every combination of values its tag admits; tokens
sharing a unification label must keep a non-empty intersection of their
contributions for the match to stand.
"""

import itertools
import logging
import re
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from .grm_errors import ConfigurationError
from .grm_tokens import Reading

logger = logging.getLogger(__name__)

ValueTuple = Tuple[str, ...]


class UnifierConfiguration:
    """
    Feature definitions used by the Unifier.

    Each instance owns its own lookup cache, so the matching and the
    disambiguation configurations of a language never share cached state.
    """

    def __init__(self, features: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._features: Dict[str, Dict[str, re.Pattern]] = {}
        for feature, values in (features or {}).items():
            compiled = {}
            for value, pattern in values.items():
                try:
                    compiled[value] = re.compile(pattern)
                except re.error as e:
                    raise ConfigurationError(
                        f"Invalid tag pattern for {feature}={value}: {e}"
                    ) from e
            self._features[feature] = compiled
        self._values_for_tag = lru_cache(maxsize=4096)(self._compute_values)

    @property
    def features(self) -> Tuple[str, ...]:
        return tuple(self._features)

    def has_feature(self, feature: str) -> bool:
        return feature in self._features

    def values_for_tag(
        self, pos_tag: Optional[str], features: Tuple[str, ...]
    ) -> FrozenSet[ValueTuple]:
        """
        Value combinations that ``pos_tag`` admits for ``features``.

        A tag that fits no value of some feature admits nothing.
        """
        if pos_tag is None:
            return frozenset()
        return self._values_for_tag(pos_tag, features)

    def _compute_values(
        self, pos_tag: str, features: Tuple[str, ...]
    ) -> FrozenSet[ValueTuple]:
        per_feature: List[List[str]] = []
        for feature in features:
            values = self._features.get(feature)
            if values is None:
                raise ConfigurationError(f"Unknown unification feature: {feature}")
            matching = [v for v, rx in values.items() if rx.fullmatch(pos_tag)]
            if not matching:
                return frozenset()
            per_feature.append(matching)
        return frozenset(itertools.product(*per_feature))

    def values_for_readings(
        self, readings: Iterable[Reading], features: Tuple[str, ...]
    ) -> FrozenSet[ValueTuple]:
        """Union of the contributions of ``readings``."""
        result: FrozenSet[ValueTuple] = frozenset()
        for reading in readings:
            result |= self.values_for_tag(reading.pos_tag, features)
        return result

    def cache_info(self):
        return self._values_for_tag.cache_info()


class UnifierBinding(Mapping[str, FrozenSet[ValueTuple]]):
    """Immutable label -> residual value set mapping for one match attempt."""

    __slots__ = ("_sets",)

    def __init__(self, sets: Optional[Mapping[str, FrozenSet[ValueTuple]]] = None):
        self._sets = dict(sets or {})

    def __getitem__(self, label: str) -> FrozenSet[ValueTuple]:
        return self._sets[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sets)

    def __len__(self) -> int:
        return len(self._sets)

    def updated(self, label: str, values: FrozenSet[ValueTuple]) -> "UnifierBinding":
        sets = dict(self._sets)
        sets[label] = values
        return UnifierBinding(sets)

    def describe(self, label: str) -> str:
        """Human readable residual values of ``label``, e.g. ``masc`` or ``fem/neut``."""
        values = self._sets.get(label)
        if not values:
            return ""
        return "/".join(sorted(",".join(v) for v in values))

    def __repr__(self):
        return f"UnifierBinding({self._sets!r})"


class Unifier:
    """
    Stateless unification over a fixed set of agreement groups.

    Every attempt starts from ``start()``; ``bind`` returns a new binding or
    None when the intersection becomes empty, so callers simply try the
    next alternative.
    """

    def __init__(
        self, config: UnifierConfiguration, agreements: Mapping[str, Tuple[str, ...]]
    ):
        self.config = config
        self.agreements = dict(agreements)

    @staticmethod
    def start() -> UnifierBinding:
        return UnifierBinding()

    def contribution(
        self, label: str, readings: Iterable[Reading]
    ) -> FrozenSet[ValueTuple]:
        return self.config.values_for_readings(readings, self.agreements[label])

    def bind(
        self, binding: UnifierBinding, label: str, readings: Iterable[Reading]
    ) -> Optional[UnifierBinding]:
        """Intersect the running set of ``label`` with the token's contribution."""
        contributed = self.contribution(label, readings)
        current = binding.get(label)
        values = contributed if current is None else current & contributed
        if not values:
            logger.debug("Unification of %s failed", label)
            return None
        return binding.updated(label, values)

    def agreeing_readings(
        self, binding: UnifierBinding, label: str, readings: Iterable[Reading]
    ) -> List[Reading]:
        """Readings whose values survive in the residual set of ``label``."""
        residual = binding.get(label, frozenset())
        features = self.agreements[label]
        return [
            r
            for r in readings
            if self.config.values_for_tag(r.pos_tag, features) & residual
        ]
