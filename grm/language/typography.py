"""Conversion of plain ASCII typography in messages to typographic forms."""

import re

RE_APOSTROPHE = re.compile(r"(?<=\w)'(?=\w)")
RE_DOUBLE_QUOTED = re.compile(r'"([^"]*)"')
RE_SINGLE_QUOTED = re.compile(r"(?<!\w)'([^']*)'(?!\w)")


def to_advanced_typography(
    text: str,
    opening_quote: str = "“",
    closing_quote: str = "”",
    opening_single_quote: str = "‘",
    closing_single_quote: str = "’",
) -> str:
    """
    Replace ASCII quotes, apostrophes, ellipses and spaced dashes.

    ``<suggestion>`` markup is turned into the language's double quotes.
    """
    text = text.replace("<suggestion>", opening_quote).replace("</suggestion>", closing_quote)
    text = text.replace("...", "…")
    text = text.replace(" -- ", " — ").replace(" - ", " – ")
    text = RE_APOSTROPHE.sub("’", text)
    text = RE_DOUBLE_QUOTED.sub(lambda m: f"{opening_quote}{m.group(1)}{closing_quote}", text)
    text = RE_SINGLE_QUOTED.sub(
        lambda m: f"{opening_single_quote}{m.group(1)}{closing_single_quote}", text
    )
    return text
