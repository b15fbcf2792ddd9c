from pathlib import Path
from typing import Optional

from lark import Lark
from lark.exceptions import UnexpectedInput, VisitError

from grm.grm_ast import Root
from grm.grm_errors import LoadError
from grm.grm_transformer import RuleTransformer

# Rule-file format version.
# This must match the version the grammar file describes and be updated
# whenever the grammar changes incompatibly.
GRM_FORMAT_VERSION = "1.0"

GRAMMAR_PATH = Path(__file__).parent / "grm_grammar.lark"
with open(GRAMMAR_PATH, "r", encoding="utf-8") as f:
    RULE_GRAMMAR = f.read()

rule_parser = Lark(
    RULE_GRAMMAR,
    start="root",
    parser="lalr",
    lexer="contextual",
    propagate_positions=True,
)


def parse_string(
    code: str, *, unwrap: bool = True, source_path: Optional[str] = None
) -> Root:
    """
    Parse rule-file text into a Root AST.

    Syntax errors are reported as LoadError carrying the offending line.
    With ``unwrap`` (the default) errors raised inside the transformer are
    re-raised as themselves instead of lark's VisitError wrapper.
    """
    try:
        tree = rule_parser.parse(code)
    except UnexpectedInput as ui:
        raise LoadError(
            f"Syntax error at column {ui.column}: {ui.get_context(code).strip()}",
            path=source_path,
            line=ui.line if ui.line and ui.line > 0 else None,
        ) from ui
    try:
        root = RuleTransformer(source_path=source_path).transform(tree)
    except VisitError as ve:
        if unwrap:
            raise ve.orig_exc from ve
        raise

    # Make sure the version matches the expected format version
    if root.version.value != GRM_FORMAT_VERSION:
        raise LoadError(
            f"Unsupported rule-file version: {root.version.value}. "
            f"Expected {GRM_FORMAT_VERSION}.",
            path=source_path,
        )
    return root


def parse_file(path, *, unwrap: bool = True) -> Root:
    with open(path, "r", encoding="utf-8") as file:
        return parse_string(file.read(), unwrap=unwrap, source_path=str(path))
