"""
Pattern compiler: rule AST to executable rule definitions.

This module turns parsed rule files into immutable RuleDefinition objects
whose TokenMatchers the evaluator runs. Every structural problem is reported
as a LoadError carrying the file and line of the offending rule; a failed
file never takes the rest of a language's rules down with it.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from . import grm_ast as ast
from .casing import locale_lower
from .filters.base import FilterRegistry, RuleFilter
from .grm_errors import LoadError
from .grm_parser import parse_file, parse_string
from .grm_tokens import Reading, Token
from .grm_unifier import UnifierConfiguration

logger = logging.getLogger(__name__)

TEST_FIXTURE_MARKER = "-test-"

# \N back-references, \\ and \{ escapes, and {label} placeholders in messages
# and suggestions
RE_TEMPLATE = re.compile(
    r"\\([0-9]+)|\\([\\{])|\{([A-Za-z_][A-Za-z0-9_]*)\}"
)


def escape_template(text: str) -> str:
    """Return a template that expands to ``text`` unchanged."""
    return text.replace("\\", "\\\\").replace("{", "\\{")


class IssueType(Enum):
    """Kind of problem a rule reports."""

    GRAMMAR = "grammar"
    STYLE = "style"
    MISSPELLING = "misspelling"
    TYPOGRAPHICAL = "typographical"
    LOCALE_VIOLATION = "locale_violation"
    PUNCTUATION = "punctuation"
    DUPLICATION = "duplication"
    UNCATEGORIZED = "uncategorized"

    @classmethod
    def parse(cls, value: Optional[str]) -> "IssueType":
        if value is None:
            return cls.GRAMMAR
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown issue type: {value}") from None


# === Compiled token tests ===


class StringTest:
    """Exact or regular-expression test over a string attribute."""

    def __init__(
        self, value: ast.MatchValue, case_sensitive: bool, locale: Optional[str] = None
    ):
        self.value = value
        self.case_sensitive = case_sensitive
        self.locale = locale
        if value.is_regex:
            flags = 0 if case_sensitive else re.IGNORECASE
            self._regex = re.compile(value.value, flags)
            self._literal = None
        else:
            self._regex = None
            self._literal = value.value if case_sensitive else self._fold(value.value)

    def _fold(self, text: str) -> str:
        return locale_lower(text, self.locale)

    def __call__(self, candidate: Optional[str]) -> bool:
        if candidate is None:
            return False
        if self._regex is not None:
            return self._regex.fullmatch(candidate) is not None
        if self.case_sensitive:
            return candidate == self._literal
        return self._fold(candidate) == self._literal


class TokenPredicate:
    """All attribute tests of one bracketed token spec, evaluated per reading."""

    def __init__(self, test: ast.TokenTest, locale: Optional[str] = None):
        cs = test.case_sensitive
        self.text = StringTest(test.text, cs, locale) if test.text else None
        self.lemma = StringTest(test.lemma, cs, locale) if test.lemma else None
        self.chunk = StringTest(test.chunk, True) if test.chunk else None
        self.pos = None
        if test.pos is not None:
            pattern = test.pos.value if test.pos.is_regex else re.escape(test.pos.value)
            self.pos = re.compile(pattern)

    @property
    def is_empty(self) -> bool:
        return not (self.text or self.lemma or self.chunk or self.pos)

    def matches(self, token: Token, reading: Reading) -> bool:
        if self.text is not None and not self.text(token.text):
            return False
        if self.pos is not None:
            if reading.pos_tag is None or not self.pos.fullmatch(reading.pos_tag):
                return False
        if self.lemma is not None:
            lemma = reading.lemma if reading.lemma is not None else token.text
            if not self.lemma(lemma):
                return False
        if self.chunk is not None and not any(self.chunk(c) for c in token.chunk_tags):
            return False
        return True

    def any_reading(self, token: Token) -> bool:
        return any(self.matches(token, r) for r in token.readings)


@dataclass(frozen=True)
class MatcherException:
    """A compiled exception; scope selects the token it inspects."""

    predicate: TokenPredicate
    mode: str = "veto"
    scope: str = "current"
    negate: bool = False

    def applies(self, tokens: Sequence[Token], index: int) -> bool:
        if self.scope == "previous":
            index -= 1
        elif self.scope == "next":
            index += 1
        if index < 0 or index >= len(tokens):
            return False
        return self.predicate.any_reading(tokens[index]) != self.negate


@dataclass(frozen=True)
class TokenMatcher:
    """Compiled matcher for one pattern position."""

    predicate: TokenPredicate
    negate: bool = False
    min: int = 1
    max: int = 1
    skip: int = 0
    unify: Optional[str] = None
    exceptions: Tuple[MatcherException, ...] = field(default_factory=tuple)

    def accepted_readings(
        self, tokens: Sequence[Token], index: int
    ) -> Optional[Tuple[Reading, ...]]:
        """
        Readings of ``tokens[index]`` that satisfy this matcher.

        Returns None when the token does not fill the slot. A negated
        matcher accepts a token none of whose readings pass the inner test,
        and then hands every reading on to unification.
        """
        token = tokens[index]
        if token.immunized:
            return None
        if self.negate:
            readings = () if self.predicate.any_reading(token) else token.readings
        else:
            readings = tuple(r for r in token.readings if self.predicate.matches(token, r))
        if not readings:
            if not any(
                e.mode == "satisfy" and e.applies(tokens, index) for e in self.exceptions
            ):
                return None
            readings = token.readings
        for exc in self.exceptions:
            if exc.mode == "veto" and exc.applies(tokens, index):
                return None
        return readings


@dataclass(frozen=True)
class FilterBinding:
    """A filter instance with the arguments a rule passes to it."""

    name: str
    impl: RuleFilter
    args: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RuleDefinition:  # pylint: disable=too-many-instance-attributes
    """A compiled, immutable rule."""

    id: str
    message: str
    matchers: Tuple[TokenMatcher, ...]
    sub_id: Optional[str] = None
    source: Optional[str] = None
    line: int = 0
    category: Optional[str] = None
    issue_type: IssueType = IssueType.GRAMMAR
    priority: Optional[int] = None
    short_message: Optional[str] = None
    suggestions: Tuple[str, ...] = field(default_factory=tuple)
    agreements: Tuple[Tuple[str, Tuple[str, ...]], ...] = field(default_factory=tuple)
    filter: Optional[FilterBinding] = None
    compatible_with: Tuple[str, ...] = field(default_factory=tuple)
    default_enabled: bool = True
    preserve_case: bool = False
    locale: Optional[str] = None

    @property
    def full_id(self) -> str:
        if self.sub_id:
            return f"{self.id}[{self.sub_id}]"
        return self.id

    @property
    def agreement_map(self) -> Dict[str, Tuple[str, ...]]:
        return dict(self.agreements)


# === Compiler ===


class PatternCompiler:
    """
    Compiles rule ASTs into RuleDefinitions.

    Args:
        unifier_config: When given, features named by ``agree`` clauses
            must exist in it
        filters: Registry that resolves ``filter`` clauses
        locale: Language code used for case-insensitive comparisons
    """

    def __init__(
        self,
        unifier_config: Optional[UnifierConfiguration] = None,
        filters: Optional[FilterRegistry] = None,
        locale: Optional[str] = None,
    ):
        self.unifier_config = unifier_config
        self.filters = filters or FilterRegistry()
        self.locale = locale

    def compile_string(self, code: str, source_path: Optional[str] = None):
        return self.compile_root(parse_string(code, source_path=source_path))

    def compile_file(self, path) -> List[RuleDefinition]:
        return self.compile_root(parse_file(path))

    def compile_root(self, root: ast.Root) -> List[RuleDefinition]:
        """Compile every rule of a file, rejecting duplicate identifiers."""
        seen: Dict[Tuple[str, Optional[str]], int] = {}
        compiled = []
        for rule in root.rules:
            key = (rule.name, rule.sub_id)
            if key in seen:
                raise LoadError(
                    f"Duplicate rule id '{rule.name}' (first defined on line {seen[key]})",
                    path=root.source_path,
                    line=rule.line,
                )
            seen[key] = rule.line
            compiled.append(self.compile_rule(rule, root.source_path))
        logger.debug("Compiled %s rules from %s", len(compiled), root.source_path)
        return compiled

    def compile_rule(
        self, rule: ast.RuleDef, source: Optional[str] = None
    ) -> RuleDefinition:
        """Validate and compile a single rule."""

        def fail(message: str, line: Optional[int] = None):
            return LoadError(
                f"Rule '{rule.name}': {message}", path=source, line=line or rule.line
            )

        if not rule.pattern:
            raise fail("empty pattern")

        agreements = self._compile_agreements(rule, fail)
        matchers = tuple(
            self._compile_matcher(spec, agreements, fail) for spec in rule.pattern
        )
        for label in agreements:
            if not any(m.unify == label for m in matchers):
                logger.warning(
                    "%s:%s: rule %s declares unused agreement label %s",
                    source,
                    rule.line,
                    rule.name,
                    label,
                )

        templates = [rule.message] + list(rule.suggestions)
        if rule.short_message:
            templates.append(rule.short_message)
        for template in templates:
            self._check_template(template, len(matchers), agreements, fail)

        try:
            issue_type = IssueType.parse(rule.issue_type)
        except ValueError as e:
            raise fail(str(e)) from e

        return RuleDefinition(
            id=rule.name,
            sub_id=rule.sub_id,
            message=rule.message,
            matchers=matchers,
            source=source,
            line=rule.line,
            category=rule.category,
            issue_type=issue_type,
            priority=rule.priority,
            short_message=rule.short_message,
            suggestions=rule.suggestions,
            agreements=tuple(agreements.items()),
            filter=self._bind_filter(rule, len(matchers), fail),
            compatible_with=rule.compatible_with,
            default_enabled=rule.default_enabled,
            locale=self.locale,
        )

    def _compile_agreements(self, rule: ast.RuleDef, fail) -> Dict[str, Tuple[str, ...]]:
        agreements: Dict[str, Tuple[str, ...]] = {}
        for clause in rule.agreements:
            previous = agreements.get(clause.label)
            if previous is not None and previous != clause.features:
                raise fail(
                    f"agreement '{clause.label}' declared with features "
                    f"{', '.join(previous)} and {', '.join(clause.features)}",
                    clause.line,
                )
            if self.unifier_config is not None:
                for feature in clause.features:
                    if not self.unifier_config.has_feature(feature):
                        raise fail(
                            f"unknown unification feature '{feature}'", clause.line
                        )
            agreements[clause.label] = clause.features
        return agreements

    def _compile_matcher(
        self, spec: ast.TokenSpec, agreements: Mapping[str, Tuple[str, ...]], fail
    ) -> TokenMatcher:
        quant = spec.quant
        if quant.max is None:
            raise fail(
                "Unbounded quantifiers (* or +) are not supported; please use bounded {m,n}."
            )
        if quant.min < 0 or quant.min > quant.max:
            raise fail(f"malformed quantifier {{{quant.min},{quant.max}}}")
        if quant.max == 0:
            raise fail("quantifier maximum must be at least 1")
        if spec.skip < 0:
            raise fail("skip must not be negative")
        if spec.unify is not None and spec.unify not in agreements:
            raise fail(f"undeclared unification label '{spec.unify}'")
        try:
            predicate = TokenPredicate(spec.test, self.locale)
            exceptions = tuple(
                MatcherException(
                    predicate=TokenPredicate(e.test, self.locale),
                    mode=e.mode,
                    scope=e.scope,
                    negate=e.negate,
                )
                for e in spec.exceptions
            )
        except re.error as e:
            raise fail(f"invalid regular expression: {e}") from e
        return TokenMatcher(
            predicate=predicate,
            negate=spec.negate,
            min=quant.min,
            max=quant.max,
            skip=spec.skip,
            unify=spec.unify,
            exceptions=exceptions,
        )

    @staticmethod
    def _check_template(template: str, matcher_count: int, agreements, fail) -> None:
        for m in RE_TEMPLATE.finditer(template):
            ref, _escaped, label = m.groups()
            if ref is not None:
                n = int(ref)
                if n < 1 or n > matcher_count:
                    raise fail(f"back-reference \\{n} out of range 1..{matcher_count}")
            elif label is not None and label not in agreements:
                raise fail(f"placeholder {{{label}}} names no agreement")

    def _bind_filter(
        self, rule: ast.RuleDef, matcher_count: int, fail
    ) -> Optional[FilterBinding]:
        if rule.filter is None:
            return None
        impl = self.filters.get(rule.filter.name)
        if impl is None:
            raise fail(f"unknown filter '{rule.filter.name}'")
        for _key, value in rule.filter.args:
            self._check_template(value, matcher_count, {}, fail)
        return FilterBinding(name=rule.filter.name, impl=impl, args=rule.filter.args)


def is_test_fixture(path) -> bool:
    return TEST_FIXTURE_MARKER in os.path.basename(str(path))


def load_rule_file(path, compiler: PatternCompiler) -> List[RuleDefinition]:
    """
    Compile one rule file.

    Failures propagate as LoadError, except for designated test fixtures
    (file names containing ``-test-``) whose failures are logged and yield
    no rules.
    """
    try:
        return compiler.compile_file(path)
    except (OSError, LoadError) as e:
        if is_test_fixture(path):
            logger.debug("Ignoring failed test fixture %s: %s", path, e)
            return []
        if isinstance(e, OSError):
            raise LoadError(f"Cannot read rule file: {e}", path=str(path)) from e
        raise
