"""
Explicit language registry.

Languages are registered by the caller; nothing is discovered at import
time. The registry also owns the per-language spelling-rule cache.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from ..grm_errors import ConfigurationError
from .language import Language
from .strategies import SpellingRule

logger = logging.getLogger(__name__)


class LanguageRegistry:
    """Registered languages, keyed by their full code."""

    def __init__(self, languages: Iterable[Language] = ()):
        self._languages: Dict[str, Language] = {}
        self._spelling_rules: Dict[str, Optional[SpellingRule]] = {}
        self._lock = threading.Lock()
        for language in languages:
            self.register(language)

    def register(self, language: Language) -> None:
        code = language.short_code_with_country_and_variant
        if code in self._languages:
            raise ConfigurationError(f"Language {code} is already registered")
        self._languages[code] = language

    @property
    def languages(self) -> List[Language]:
        return list(self._languages.values())

    def get(self, code: str) -> Optional[Language]:
        """
        Language for a full code, or for a short code.

        A bare short code resolves to its default variant when one is
        declared, else to the first language registered with that code.
        """
        if code in self._languages:
            return self._languages[code]
        for language in self._languages.values():
            if language.short_code == code and language.default_variant:
                return self._languages.get(language.default_variant, language)
        for language in self._languages.values():
            if language.short_code == code:
                return language
        return None

    def __contains__(self, code: str) -> bool:
        return self.get(code) is not None

    def __len__(self):
        return len(self._languages)

    # === Variants ===

    def is_variant(self, language: Language) -> bool:
        """True when the parent of ``language`` is registered too."""
        if language.parent_code is None:
            return False
        parent = self._languages.get(language.parent_code)
        return parent is not None and parent is not language

    def has_variant(self, language: Language) -> bool:
        """True when some other registered language names ``language`` as parent."""
        code = language.short_code_with_country_and_variant
        return any(
            other is not language and other.parent_code == code
            for other in self._languages.values()
        )

    def variants_of(self, language: Language) -> List[Language]:
        code = language.short_code_with_country_and_variant
        return [lang for lang in self._languages.values() if lang.parent_code == code]

    def default_variant(self, language: Language) -> Optional[Language]:
        if language.default_variant is None:
            return None
        return self._languages.get(language.default_variant)

    # === Spelling rules ===

    def spelling_rule(self, language: Language) -> Optional[SpellingRule]:
        """The cached spelling rule of ``language``, or None when it has none."""
        code = language.short_code_with_country_and_variant
        if code not in self._spelling_rules:
            with self._lock:
                if code not in self._spelling_rules:
                    factory = language.spelling_rule_factory
                    self._spelling_rules[code] = factory(language) if factory else None
        return self._spelling_rules[code]

    def clear_spelling_rules(self) -> None:
        with self._lock:
            self._spelling_rules.clear()
