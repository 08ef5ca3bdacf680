"""Translation fallback and language resolution.

Every translatable field resolves in two steps: the requested language, then
the default language (id 1), then a literal default. Language codes resolve
the same way: explicit code, then the branch default, then ``"en"``.
"""

import logging
from dataclasses import dataclass
from typing import Protocol, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE_ID = 1
FALLBACK_LANGUAGE_CODE = "en"

T = TypeVar("T")


def resolve_translation(preferred: T | None, default: T | None, literal: T | None = None) -> T | None:
    """Resolve a translated value with fallback.

    Args:
        preferred: Value in the requested language (None when missing)
        default: Value in the default language (None when missing)
        literal: Value used when neither translation exists

    Returns:
        The first of preferred, default and literal that is not None
    """
    if preferred is not None:
        return preferred
    if default is not None:
        return default
    return literal


class LanguageLookup(Protocol):
    """Storage operations needed to resolve a language."""

    def get_branch_default_language_code(self, branch_id: int) -> str | None: ...

    def get_language_id(self, code: str) -> int | None: ...


@dataclass(frozen=True)
class ResolvedLanguage:
    """Language a request is served in.

    Attributes:
        code: Code echoed back to the client (may be unknown to the database)
        id: Language id used for translation lookups
    """

    code: str
    id: int


class LanguageResolver:
    """Resolves the language for a branch request."""

    def __init__(self, lookup: LanguageLookup) -> None:
        self.lookup = lookup

    def resolve(self, branch_id: int | None, language_code: str | None = None) -> ResolvedLanguage:
        """Resolve a requested language code into a code and id.

        Unknown codes silently use the default language id rather than failing.

        Args:
            branch_id: Branch whose default language applies when no code is given
            language_code: Explicitly requested language code

        Returns:
            ResolvedLanguage with the effective code and id
        """
        code = language_code or None
        if code is None and branch_id is not None:
            code = self.lookup.get_branch_default_language_code(branch_id)
        code = resolve_translation(code, None, FALLBACK_LANGUAGE_CODE)

        language_id = self.lookup.get_language_id(code)
        if language_id is None:
            logger.debug(f"Unknown language code '{code}', using default language")
            language_id = DEFAULT_LANGUAGE_ID

        return ResolvedLanguage(code=code, id=language_id)
