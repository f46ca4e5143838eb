"""
Cyrillic (Russian and Ukrainian) to Latin transliteration for courier
cabinet slugs.
"""

import re

_LOWER = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d",
    "е": "e", "ё": "e", "ж": "zh", "з": "z", "и": "i",
    "й": "y", "к": "k", "л": "l", "м": "m", "н": "n",
    "о": "o", "п": "p", "р": "r", "с": "s", "т": "t",
    "у": "u", "ф": "f", "х": "h", "ц": "ts", "ч": "ch",
    "ш": "sh", "щ": "shch", "ъ": "", "ы": "y", "ь": "",
    "э": "e", "ю": "yu", "я": "ya",
    "є": "ye", "і": "i", "ї": "yi", "ґ": "g",
}

TRANSLITERATION_MAP = {
    **_LOWER,
    **{k.upper(): v.capitalize() for k, v in _LOWER.items()},
}


def transliterate(text: str) -> str:
    return "".join(TRANSLITERATION_MAP.get(ch, ch) for ch in text)


def cabinet_slug(first_name: str | None, last_name: str | None) -> str:
    """
    "Іван", "Петренко" -> "ivan-petrenko"

    Everything outside [a-z0-9-] becomes a dash; runs of dashes collapse and
    leading/trailing dashes are dropped.
    """
    first = transliterate((first_name or "").strip())
    last = transliterate((last_name or "").strip())
    slug = f"{first}-{last}".lower()
    slug = re.sub(r"[^a-z0-9-]", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")
