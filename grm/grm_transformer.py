"""
Rule-file transformer: Lark parse tree to rule AST.

This module provides the RuleTransformer class that converts Lark parse trees
of rule files into the frozen dataclasses of grm_ast. Structural checks that
the grammar cannot express (single message, duplicate clauses, quantifier
bounds) are performed here and raised as LoadError with the line number.
"""

from typing import Optional

from lark import Token, Transformer, v_args

from grm import grm_ast as ast
from grm.grm_errors import LoadError

_SINGLE_CLAUSES = ("category", "issue_type", "priority", "message", "short_message", "filter")


def _unquote(token) -> str:
    return str(token)[1:-1].replace('\\"', '"')


@v_args(inline=True)  # This simplifies most method signatures
class RuleTransformer(Transformer):  # pylint: disable=too-many-public-methods
    """
    Transformer that converts Lark parse trees into rule AST structures.

    Handles versions, category declarations, rule clauses, token specs,
    exceptions and quantifiers.
    """

    def __init__(self, source_path: Optional[str] = None):
        super().__init__()
        self.source_path = source_path

    def root(self, version, *items):
        """Transform root node with version, categories and rules."""
        categories = [i for i in items if isinstance(i, ast.CategoryDef)]
        rules = [i for i in items if isinstance(i, ast.RuleDef)]
        return ast.Root(
            version=version,
            categories=tuple(categories),
            rules=tuple(rules),
            source_path=self.source_path,
        )

    def version_stmt(self, version_token):
        """Transform version statement."""
        return ast.Version(value=str(version_token))

    def category_def(self, name, title):
        return ast.CategoryDef(name=str(name), title=_unquote(title), line=name.line)

    # === Rules ===

    def rule_def(self, name, *clauses):
        """Transform a rule and its clauses, rejecting repeated single clauses."""
        line = name.line
        fields = {}
        pattern = None
        suggestions = []
        agreements = []
        compatible = []
        for key, value in clauses:
            if key == "pattern":
                if pattern is not None:
                    raise LoadError(
                        f"Rule '{name}' has more than one pattern",
                        path=self.source_path,
                        line=line,
                    )
                pattern = value
            elif key == "suggest":
                suggestions.append(value)
            elif key == "agree":
                agreements.append(value)
            elif key == "compatible":
                compatible.extend(value)
            elif key == "off":
                fields["default_enabled"] = False
            elif key in _SINGLE_CLAUSES:
                if key in fields:
                    raise LoadError(
                        f"Rule '{name}' repeats the '{key}' clause",
                        path=self.source_path,
                        line=line,
                    )
                fields[key] = value
        if pattern is None:
            raise LoadError(
                f"Rule '{name}' has no pattern", path=self.source_path, line=line
            )
        if "message" not in fields:
            raise LoadError(
                f"Rule '{name}' has no message", path=self.source_path, line=line
            )
        return ast.RuleDef(
            name=str(name),
            pattern=pattern,
            line=line,
            suggestions=tuple(suggestions),
            agreements=tuple(agreements),
            compatible_with=tuple(compatible),
            **fields,
        )

    def category_clause(self, name):
        return ("category", str(name))

    def type_clause(self, name):
        return ("issue_type", str(name))

    def priority_clause(self, value):
        return ("priority", int(value))

    def pattern_clause(self, *specs):
        return ("pattern", tuple(specs))

    def agree_clause(self, label, *features):
        return (
            "agree",
            ast.AgreeClause(
                label=str(label),
                features=tuple(str(f) for f in features),
                line=label.line,
            ),
        )

    def message_clause(self, text):
        return ("message", _unquote(text))

    def short_clause(self, text):
        return ("short_message", _unquote(text))

    def suggest_clause(self, text):
        return ("suggest", _unquote(text))

    def filter_clause(self, name, *args):
        return ("filter", ast.FilterCall(name=str(name), args=tuple(args)))

    def filter_arg(self, key, value):
        if value.type == "STRING":
            return (str(key), _unquote(value))
        return (str(key), str(value))

    def compatible_clause(self, *names):
        return ("compatible", tuple(str(n) for n in names))

    def off_clause(self):
        return ("off", True)

    # === Token specs ===

    def token_spec(self, *items):
        """Collect attributes, exceptions and an optional quantifier."""
        negate = False
        unify = None
        skip = 0
        exceptions = []
        quant = ast.Quantifier(min=1, max=1)
        test = {}
        for item in items:
            if item == "negate":
                negate = True
            elif isinstance(item, ast.Quantifier):
                quant = item
            elif isinstance(item, ast.ExceptionSpec):
                exceptions.append(item)
            else:
                key, value = item
                if key == "unify":
                    unify = value
                elif key == "skip":
                    skip = value
                else:
                    test[key] = value
        return ast.TokenSpec(
            test=ast.TokenTest(**test),
            negate=negate,
            unify=unify,
            skip=skip,
            exceptions=tuple(exceptions),
            quant=quant,
        )

    def negate(self):
        return "negate"

    def attr(self, key, value):
        return (str(key), value)

    def unify_attr(self, name):
        return ("unify", str(name))

    def skip_attr(self, count):
        return ("skip", int(count))

    def case_attr(self):
        return ("case_sensitive", True)

    def bare_text(self, text):
        return ("text", ast.MatchValue(value=_unquote(text)))

    def literal_value(self, text):
        return ast.MatchValue(value=_unquote(text))

    def regex_value(self, token):
        return ast.MatchValue(value=str(token)[1:-1].replace("\\/", "/"), is_regex=True)

    def veto_exception(self, *items):
        scope = "current"
        if isinstance(items[0], Token):
            scope = str(items[0])
        negate, test = items[-1]
        return ast.ExceptionSpec(test=test, mode="veto", scope=scope, negate=negate)

    def satisfy_exception(self, body):
        negate, test = body
        return ast.ExceptionSpec(test=test, mode="satisfy", negate=negate)

    def exception_body(self, *items):
        negate = False
        test = {}
        for item in items:
            if item == "negate":
                negate = True
            else:
                key, value = item
                test[key] = value
        return (negate, ast.TokenTest(**test))

    # === Quantifiers ===

    def qmark(self):
        """Transform ? quantifier (0 or 1 occurrence)."""
        return ast.Quantifier(min=0, max=1)

    def plus(self):
        """Transform + quantifier (1 or more occurrences)."""
        return ast.Quantifier(min=1, max=None)

    def star(self):
        """Transform * quantifier (0 or more occurrences)."""
        return ast.Quantifier(min=0, max=None)

    def exact(self, count):
        value = int(count)
        return ast.Quantifier(min=value, max=value)

    def range(self, min_tok, max_tok):
        """Transform range quantifier {min,max}."""
        min_val = int(min_tok)
        max_val = int(max_tok)
        if min_val > max_val:
            raise LoadError(
                f"Minimum value ({min_val}) cannot be greater than "
                f"maximum value ({max_val}) in range",
                path=self.source_path,
                line=min_tok.line,
            )
        return ast.Quantifier(min=min_val, max=max_val)
