"""
Replace-list rules.

A replace-list rule turns a list of (bad form -> suggestions) entries into
one sub-rule per bad form. All sub-rules share the umbrella id, carry their
own sub id and can be switched off one by one. Before the sub-rules run, the
sentence is scanned once with an omega_match compiled phrase index so only
the sub-rules whose phrase actually occurs are evaluated.
"""

import logging
import os
import re
import tempfile
import weakref
from typing import Dict, Iterable, List, Optional, Set, Tuple

from omega_match.omega_match import Compiler, Matcher

from . import grm_ast as ast
from .casing import locale_lower
from .grm_compiler import (
    IssueType,
    MatcherException,
    RuleDefinition,
    TokenMatcher,
    TokenPredicate,
    escape_template,
)
from .grm_errors import LoadError
from .grm_evaluator import join_tokens
from .grm_tokens import AnalyzedSentence

logger = logging.getLogger(__name__)

RE_NON_ID = re.compile(r"[^0-9A-Za-z]+")

ReplaceEntry = Tuple[str, Tuple[str, ...]]


def load_replace_list(path: str) -> List[ReplaceEntry]:
    """
    Read a replace list: ``bad1|bad2=suggestion1|suggestion2`` per line.

    Every bad form becomes its own entry. Blank lines and ``#`` comments are
    skipped; a line without ``=`` is a LoadError.
    """
    entries: List[ReplaceEntry] = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, raw in enumerate(f, 1):
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            if "=" not in line:
                raise LoadError(
                    f"Expected 'bad=suggestion', got '{line}'", path=path, line=line_no
                )
            bad_part, sugg_part = line.split("=", 1)
            suggestions = tuple(s.strip() for s in sugg_part.split("|") if s.strip())
            for bad in bad_part.split("|"):
                bad = bad.strip()
                if bad:
                    entries.append((bad, suggestions))
    return entries


def _remove_file(path: Optional[str]) -> None:
    if path and os.path.exists(path):
        try:
            os.unlink(path)
        except OSError:
            pass  # Ignore cleanup errors


class ReplaceListRule:  # pylint: disable=too-many-instance-attributes
    """
    Expands replace-list entries into individually switchable sub-rules.

    Args:
        rule_id: Umbrella id shared by every sub-rule
        entries: (bad form, suggestions) pairs
        message: Message template; ``$match`` is replaced by the matched
            text and ``$suggestions`` by the suggestions joined with
            ``separator``
        locale: Language code used for case folding
        exception_pos: Tokens with a reading whose tag matches this regex
            (e.g. proper nouns) are never replaced
    """

    def __init__(
        self,
        rule_id: str,
        entries: Iterable[ReplaceEntry],
        message: str,
        *,
        locale: Optional[str] = None,
        category: Optional[str] = None,
        issue_type: IssueType = IssueType.STYLE,
        short_message: Optional[str] = None,
        separator: str = ", ",
        exception_pos: Optional[str] = None,
        case_sensitive: bool = False,
        priority: Optional[int] = None,
        default_enabled: bool = True,
    ):
        self.id = rule_id
        self.locale = locale
        self.case_sensitive = case_sensitive
        self._disabled: Set[str] = set()
        self._phrase_rules: Dict[str, List[RuleDefinition]] = {}
        self.sub_rules: List[RuleDefinition] = []

        exceptions: Tuple[MatcherException, ...] = ()
        if exception_pos:
            exceptions = (
                MatcherException(
                    predicate=TokenPredicate(
                        ast.TokenTest(pos=ast.MatchValue(exception_pos, is_regex=True))
                    )
                ),
            )

        used_ids: Set[str] = set()
        for bad, suggestions in entries:
            words = bad.split()
            if not words:
                continue
            sub_id = self._sub_id(bad, used_ids)
            matchers = tuple(
                TokenMatcher(
                    predicate=TokenPredicate(
                        ast.TokenTest(
                            text=ast.MatchValue(word), case_sensitive=case_sensitive
                        ),
                        locale,
                    ),
                    exceptions=exceptions,
                )
                for word in words
            )
            match_ref = " ".join(f"\\{i}" for i in range(1, len(words) + 1))
            rule = RuleDefinition(
                id=rule_id,
                sub_id=sub_id,
                message=message.replace("$match", match_ref).replace(
                    "$suggestions", escape_template(separator.join(suggestions))
                ),
                short_message=short_message,
                matchers=matchers,
                category=category,
                issue_type=issue_type,
                priority=priority,
                suggestions=tuple(escape_template(s) for s in suggestions),
                default_enabled=default_enabled,
                preserve_case=not case_sensitive,
                locale=locale,
            )
            self.sub_rules.append(rule)
            self._phrase_rules.setdefault(self._fold(" ".join(words)), []).append(rule)

        self._compiled_path = self._compile_index()
        self._finalizer = weakref.finalize(self, _remove_file, self._compiled_path)
        logger.info("Replace rule %s: %s sub-rules", rule_id, len(self.sub_rules))

    def _fold(self, text: str) -> str:
        return text if self.case_sensitive else locale_lower(text, self.locale)

    def _sub_id(self, bad: str, used: Set[str]) -> str:
        base = f"{self.id}_{RE_NON_ID.sub('_', bad).strip('_').upper()}"
        sub_id = base
        n = 2
        while sub_id in used:
            sub_id = f"{base}_{n}"
            n += 1
        used.add(sub_id)
        return sub_id

    def _compile_index(self) -> Optional[str]:
        """Compile all phrases into an omega_match index file."""
        if not self._phrase_rules:
            return None
        with tempfile.NamedTemporaryFile(delete=False, suffix=".omc") as tmp:
            compiled_path = tmp.name
        patterns_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", delete=False, suffix=".txt"
            ) as patterns:
                patterns_path = patterns.name
                for phrase in self._phrase_rules:
                    patterns.write(phrase + "\n")
            Compiler.compile_from_filename(
                compiled_file=compiled_path,
                patterns_file=patterns_path,
                case_insensitive=False,
                ignore_punctuation=False,
                elide_whitespace=False,
            )
        except Exception as e:
            _remove_file(compiled_path)
            raise LoadError(f"Failed to compile replace list {self.id}: {e}") from e
        finally:  # Clean up the pattern file
            if patterns_path:
                _remove_file(patterns_path)
        return compiled_path

    # === Sub-rule switches ===

    @property
    def sub_rule_ids(self) -> List[str]:
        return [r.sub_id for r in self.sub_rules]

    def disable(self, sub_id: str) -> None:
        if sub_id not in self.sub_rule_ids:
            raise KeyError(sub_id)
        self._disabled.add(sub_id)

    def enable(self, sub_id: str) -> None:
        if sub_id not in self.sub_rule_ids:
            raise KeyError(sub_id)
        self._disabled.discard(sub_id)

    def is_enabled(self, sub_id: str) -> bool:
        return sub_id not in self._disabled

    def enabled_rules(self) -> List[RuleDefinition]:
        return [r for r in self.sub_rules if r.sub_id not in self._disabled]

    # === Matching ===

    def found_phrases(self, sentence: AnalyzedSentence) -> Set[str]:
        """Folded phrases of this list that occur in ``sentence``."""
        haystack = self._fold(join_tokens(sentence.word_tokens))
        if not haystack or not self._phrase_rules:
            return set()
        with Matcher(
            self._compiled_path,
            case_insensitive=False,
            ignore_punctuation=False,
            elide_whitespace=False,
        ) as matcher:
            results = matcher.match(
                haystack.encode("utf-8"),
                no_overlap=False,
                longest_only=False,
                word_boundary=True,
            )
        return {r.match.decode("utf-8") for r in results}

    def candidate_rules(self, sentence: AnalyzedSentence) -> List[RuleDefinition]:
        """Enabled sub-rules whose phrase occurs in ``sentence``, in list order."""
        found = self.found_phrases(sentence)
        candidates = {
            id(rule)
            for phrase in found
            for rule in self._phrase_rules.get(phrase, ())
        }
        return [
            r
            for r in self.sub_rules
            if id(r) in candidates and r.sub_id not in self._disabled
        ]

    def close(self) -> None:
        """Remove the compiled phrase index."""
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __len__(self):
        return len(self.sub_rules)
