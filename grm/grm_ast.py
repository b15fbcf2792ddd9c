from dataclasses import dataclass, field
from typing import Optional

# === Top-Level Nodes ===


@dataclass(frozen=True)
class Version:
    """Represents the rule-file format version."""

    value: str


@dataclass(frozen=True)
class CategoryDef:
    """Declares a rule category with its display name."""

    name: str
    title: str
    line: int = 0


@dataclass(frozen=True)
class Root:
    """Represents the root of a parsed rule file."""

    version: Version
    categories: tuple[CategoryDef, ...]
    rules: tuple["RuleDef", ...]
    source_path: Optional[str] = None


# === Pattern Nodes ===


@dataclass(frozen=True)
class MatchValue:
    """A literal or a /regex/ value of a token attribute."""

    value: str
    is_regex: bool = False


@dataclass(frozen=True)
class Quantifier:
    """Represents a quantifier for a token spec (e.g., {1,4}, ?)."""

    min: int
    max: Optional[int]


@dataclass(frozen=True)
class TokenTest:
    """The attribute tests of one bracketed token spec."""

    text: Optional[MatchValue] = None
    lemma: Optional[MatchValue] = None
    pos: Optional[MatchValue] = None
    chunk: Optional[MatchValue] = None
    case_sensitive: bool = False


@dataclass(frozen=True)
class ExceptionSpec:
    """
    An exception attached to a token spec.

    mode is "veto" (an otherwise matching token is rejected) or "satisfy"
    (the slot is filled even though the main test fails). scope is
    "current", "previous" or "next".
    """

    test: TokenTest
    mode: str = "veto"
    scope: str = "current"
    negate: bool = False


@dataclass(frozen=True)
class TokenSpec:
    """One position of a rule pattern."""

    test: TokenTest
    negate: bool = False
    unify: Optional[str] = None
    skip: int = 0
    exceptions: tuple[ExceptionSpec, ...] = field(default_factory=tuple)
    quant: Quantifier = Quantifier(min=1, max=1)


# === Rule Clauses ===


@dataclass(frozen=True)
class AgreeClause:
    """Unification constraint: tokens labelled ``label`` agree on ``features``."""

    label: str
    features: tuple[str, ...]
    line: int = 0


@dataclass(frozen=True)
class FilterCall:
    """Filter reference with its name=value arguments."""

    name: str
    args: tuple[tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RuleDef:
    """Represents a rule definition in a rule file."""

    name: str
    pattern: tuple[TokenSpec, ...]
    message: str
    line: int = 0
    category: Optional[str] = None
    issue_type: Optional[str] = None
    priority: Optional[int] = None
    short_message: Optional[str] = None
    suggestions: tuple[str, ...] = field(default_factory=tuple)
    agreements: tuple[AgreeClause, ...] = field(default_factory=tuple)
    filter: Optional[FilterCall] = None
    compatible_with: tuple[str, ...] = field(default_factory=tuple)
    default_enabled: bool = True
    sub_id: Optional[str] = None


# === Match Output ===


@dataclass(frozen=True)
class RuleMatch:
    """
    A detected issue.

    start/end are document character offsets; token_start/token_end are
    positions in the analyzed sentence (end exclusive).
    """

    start: int
    end: int
    rule_id: str
    message: str
    suggestions: tuple[str, ...] = field(default_factory=tuple)
    sub_id: Optional[str] = None
    short_message: Optional[str] = None
    sentence_index: int = 0
    token_start: int = 0
    token_end: int = 0
    priority: int = 0
    rule_order: int = 0
    category_id: Optional[str] = None
    issue_type: Optional[str] = None
    compatible_with: tuple[str, ...] = field(default_factory=tuple)

    @property
    def full_rule_id(self) -> str:
        if self.sub_id:
            return f"{self.rule_id}[{self.sub_id}]"
        return self.rule_id

    @property
    def length(self) -> int:
        return self.end - self.start
