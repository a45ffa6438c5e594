import re
import unicodedata

from unidecode import unidecode

FALLBACK_SLUG = "publikasi"


def _fold(text):
    # Latin letters keep their base form ("ß" -> "ss"), other scripts are dropped
    folded = []
    for char in unicodedata.normalize("NFKD", text):
        if unicodedata.combining(char):
            continue
        if char.isascii():
            folded.append(char)
        elif unicodedata.name(char, "").startswith("LATIN"):
            folded.append(unidecode(char))
    return "".join(folded)


def slugify(text):
    text = _fold(text or "")
    text = re.sub(r"[^\w\s-]", "", text).strip().lower()
    text = re.sub(r"[\s-]+", "-", text)
    text = re.sub(r"[^a-z0-9-]", "", text)
    text = re.sub(r"-{2,}", "-", text).strip("-")
    return text or FALLBACK_SLUG
