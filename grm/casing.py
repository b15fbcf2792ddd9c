"""
Locale-aware case folding.

Python's str.lower() maps 'I' to 'i' everywhere. Turkish and Azeri pair the
dotless and dotted forms differently, so those locales need their own
mapping before the generic lower-casing runs.
"""

from typing import Optional

DOTTED_I_LOCALES = {"tr", "az"}


def locale_lower(text: str, locale: Optional[str] = None) -> str:
    """Lower-case ``text`` using the rules of ``locale`` (a language code)."""
    if locale and locale.split("-")[0].lower() in DOTTED_I_LOCALES:
        text = text.replace("I", "ı").replace("İ", "i")
    return text.lower()


def locale_upper(text: str, locale: Optional[str] = None) -> str:
    """Upper-case ``text`` using the rules of ``locale``."""
    if locale and locale.split("-")[0].lower() in DOTTED_I_LOCALES:
        text = text.replace("i", "İ").replace("ı", "I")
    return text.upper()


def match_case(template: str, replacement: str, locale: Optional[str] = None) -> str:
    """
    Give ``replacement`` the capitalisation shape of ``template``.

    All-caps templates produce all-caps output, a capitalised template
    capitalises the first letter, anything else is returned unchanged.
    """
    if not template or not replacement:
        return replacement
    letters = [c for c in template if c.isalpha()]
    if len(letters) > 1 and all(c.isupper() for c in letters):
        return locale_upper(replacement, locale)
    if template[0].isupper():
        return locale_upper(replacement[0], locale) + replacement[1:]
    return replacement
