"""
i18n package

Language metadata, request-language resolution and Accept-Language
parsing for the multilingual publication engine.
"""

from .languages import (
    LANGUAGE_NAMES,
    PROMPT_LANGUAGE_NAMES,
    get_language_info,
    language_name,
    parse_accept_language,
    resolve_language,
)

__all__ = [
    "LANGUAGE_NAMES",
    "PROMPT_LANGUAGE_NAMES",
    "get_language_info",
    "language_name",
    "parse_accept_language",
    "resolve_language",
]
