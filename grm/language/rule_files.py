"""
Rule-file resolution for a language.

For language ``xx`` with full code ``xx-YY[-variant]`` the files are:

    xx/grammar.grm            mandatory
    xx/style.grm
    xx/grammar-custom.grm
    xx/xx-YY/grammar.grm      only when the full code differs from xx
    xx/xx-YY/style.grm
    xx/xx-YY/grammar-premium.grm

Optional files are returned only when the ``exists`` check finds them.
"""

import logging
import os
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

RULE_FILE_EXTENSION = ".grm"
MANDATORY_FILE = "grammar" + RULE_FILE_EXTENSION
OPTIONAL_FILES = ("style", "grammar-custom")
VARIANT_FILES = ("grammar", "style", "grammar-premium")


class RuleFileResolver:
    """
    Computes the ordered rule-file list of a language.

    Args:
        rules_dir: Directory holding one sub-directory per language code
        exists: Probe used for optional files; defaults to os.path.isfile
    """

    def __init__(
        self, rules_dir: str, exists: Optional[Callable[[str], bool]] = None
    ):
        self.rules_dir = rules_dir
        self.exists = exists or os.path.isfile

    def rule_files(self, short_code: str, full_code: Optional[str] = None) -> List[str]:
        """Ordered rule files for ``short_code`` and its optional full code."""
        lang_dir = os.path.join(self.rules_dir, short_code)
        files = [os.path.join(lang_dir, MANDATORY_FILE)]
        for name in OPTIONAL_FILES:
            path = os.path.join(lang_dir, name + RULE_FILE_EXTENSION)
            if self.exists(path):
                files.append(path)
        if full_code and len(full_code) > len(short_code):
            variant_dir = os.path.join(lang_dir, full_code)
            for name in VARIANT_FILES:
                path = os.path.join(variant_dir, name + RULE_FILE_EXTENSION)
                if self.exists(path):
                    files.append(path)
        logger.debug("Rule files for %s: %s", full_code or short_code, files)
        return files
