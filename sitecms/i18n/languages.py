"""
Language helpers

Pure functions for the language codes the site publishes in:
- Human-readable and prompt-facing language names
- Resolution of a requested ``lang`` value against the configured set
- Accept-Language header parsing with quality-value (q=) support
"""

from __future__ import annotations

from sitecms.config import settings

# ── Constants ─────────────────────────────────────────────────────────────────

# Names shown to API clients
LANGUAGE_NAMES: dict[str, str] = {
    "id": "Indonesian",
    "en": "English",
    "zh": "Chinese",
}

# Names given to the translation provider; "zh" means Simplified Chinese
PROMPT_LANGUAGE_NAMES: dict[str, str] = {
    "id": "Indonesian",
    "en": "English",
    "zh": "Simplified Chinese",
}


# ── Public helpers ────────────────────────────────────────────────────────────


def language_name(code: str) -> str:
    """Return the display name for a language code, or the code itself."""
    return LANGUAGE_NAMES.get(code, code)


def resolve_language(
    lang: str | None,
    supported: list[str] | None = None,
    default: str | None = None,
) -> str:
    """Map a requested language value onto a supported language code.

    Unknown or missing values resolve to the default (primary) language
    instead of failing, so ``?lang=fr`` simply serves the primary version.
    """
    supported = supported or settings.supported_languages
    default = default or settings.default_language
    if not lang:
        return default
    code = lang.strip().lower().split("-")[0]
    return code if code in supported else default


def parse_accept_language(header: str, supported: list[str]) -> str | None:
    """Parse an Accept-Language header and return the best matching language.

    Algorithm:
    1. Split header into tags with optional q-values (default q=1.0).
    2. Sort by q-value descending.
    3. For each tag, try exact match in `supported`, then base-language match.
    4. Return the first match or None if nothing matches.

    Args:
        header:    Value of the Accept-Language HTTP header, e.g.
                   "zh-CN,zh;q=0.9,en;q=0.8".
        supported: Ordered list of language codes the site publishes in.

    Returns:
        The best matching code from `supported`, or None.
    """
    if not header:
        return None

    # Parse "tag;q=value" pairs
    weighted: list[tuple[float, str]] = []
    for part in header.split(","):
        part = part.strip()
        if not part:
            continue
        if ";q=" in part:
            tag, q_str = part.split(";q=", 1)
            try:
                q = float(q_str.strip())
            except ValueError:
                q = 1.0
        else:
            tag = part
            q = 1.0
        weighted.append((q, tag.strip()))

    # Stable sort keeps header order for equal q-values
    weighted.sort(key=lambda x: x[0], reverse=True)

    supported_lower = [s.lower() for s in supported]

    for _, tag in weighted:
        tag_lower = tag.lower()
        if tag_lower in supported_lower:
            return supported[supported_lower.index(tag_lower)]
        base = tag_lower.split("-")[0]
        if base in supported_lower:
            return supported[supported_lower.index(base)]

    return None


def get_language_info(code: str) -> dict[str, str | bool]:
    """Return a metadata dict describing the given language code.

    Returns:
        Dict with keys: ``code`` (str), ``name`` (str), ``is_default`` (bool).
    """
    return {
        "code": code,
        "name": language_name(code),
        "is_default": code == settings.default_language,
    }
