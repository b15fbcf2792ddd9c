"""
grm: rule matching and linguistic unification engine for grammar checking.

Entry points:

- match(sentence, rules): run compiled rules over one analyzed sentence
- resolve_overlaps(matches): keep the highest-priority non-overlapping matches
- Checker: the full pipeline for a Language
"""

from .grm_ast import RuleMatch
from .grm_compiler import IssueType, PatternCompiler, RuleDefinition, load_rule_file
from .grm_errors import (
    ConfigurationError,
    FilterError,
    GrmError,
    LoadError,
    MatchTimeout,
)
from .grm_evaluator import RuleEvaluator, match
from .grm_parser import parse_file, parse_string
from .grm_tokens import AnalyzedSentence, Reading, Token
from .grm_unifier import Unifier, UnifierBinding, UnifierConfiguration
from .resolver import OverlapResolver, PriorityTable, resolve_overlaps
from .checker import Checker

__all__ = [
    "AnalyzedSentence",
    "Checker",
    "ConfigurationError",
    "FilterError",
    "GrmError",
    "IssueType",
    "LoadError",
    "MatchTimeout",
    "OverlapResolver",
    "PatternCompiler",
    "PriorityTable",
    "Reading",
    "RuleDefinition",
    "RuleEvaluator",
    "RuleMatch",
    "Token",
    "Unifier",
    "UnifierBinding",
    "UnifierConfiguration",
    "load_rule_file",
    "match",
    "parse_file",
    "parse_string",
    "resolve_overlaps",
]
