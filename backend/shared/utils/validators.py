"""
Input normalization: image URLs, search terms, phone numbers.
"""

import re
from urllib.parse import urlparse

# Hosts that must never appear in a user-supplied URL (SSRF prevention)
BLOCKED_HOSTS = [
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "10.",
    "192.168.",
    "169.254.",
    "[::1]",
    "metadata.google",
]

BLOCKED_SCHEMES = {"javascript", "data", "file", "ftp", "mailto", "tel"}

MAX_URL_LENGTH = 2048


def validate_image_url(url: str | None) -> str | None:
    """
    Validate a logo/photo URL.

    Returns the stripped URL, or None for empty input.

    Raises:
        ValueError: If the URL is not http(s), points to an internal host or is too long.
    """
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in BLOCKED_SCHEMES:
        raise ValueError(f"URL scheme not allowed: {scheme}")
    if scheme not in ("http", "https"):
        raise ValueError("Only HTTP/HTTPS URLs are allowed")

    host = parsed.netloc.lower()
    if not host:
        raise ValueError("URL has no host")
    for blocked in BLOCKED_HOSTS:
        if host.startswith(blocked):
            raise ValueError("Internal URLs are not allowed")

    if len(url) > MAX_URL_LENGTH:
        raise ValueError(f"URL too long (max {MAX_URL_LENGTH} characters)")

    return url


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards; escaping them keeps user input literal.
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_search_term(term: str | None, max_length: int = 100) -> str:
    """Trim, cap and strip control characters from a search term."""
    if not term:
        return ""

    term = term.strip()
    if len(term) > max_length:
        term = term[:max_length]

    return re.sub(r"[\x00-\x1f\x7f-\x9f]", "", term)


def digits_only(value: str | None) -> str:
    if not value:
        return ""
    return re.sub(r"\D", "", value)


def normalize_phone(phone: str | None) -> str:
    """
    Normalize a Ukrainian phone number to 380XXXXXXXXX.

        "+38 (050) 123-45-67" -> "380501234567"
        "80501234567"         -> "380501234567"
        "0501234567"          -> "380501234567"
        "501234567"           -> "380501234567"

    Anything else is returned as bare digits.
    """
    digits = digits_only(phone)
    if len(digits) == 12 and digits.startswith("380"):
        return digits
    if len(digits) == 11 and digits.startswith("80"):
        return "3" + digits
    if len(digits) == 10 and digits.startswith("0"):
        return "38" + digits
    if len(digits) == 9:
        return "380" + digits
    return digits
