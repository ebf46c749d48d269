"""
Utility functions for the merchandising co-pilot backend.
Text sanitizing, slugs, URL normalisation and key generation shared by the
catalog, discount and image services.
"""
import logging
import random
import re
import string
import time
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

# C0 and C1 control characters.
_CONTROL_CHARS = re.compile(r"[\u0000-\u001f\u007f-\u009f]")
# Anything outside printable ASCII and the BMP above Latin-1 controls.
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\u00A0-\uFFFF]")
_NON_ALNUM = re.compile(r"[^a-z0-9]", re.IGNORECASE)

_KEY_ALPHABET = string.ascii_lowercase + string.digits


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def random_suffix(length: int = 9) -> str:
    """Short base-36 token used to de-duplicate generated keys."""
    return "".join(random.choices(_KEY_ALPHABET, k=length))


def unique_key(prefix: str) -> str:
    """Build a resource key like ``bundle-1700000000000-k3j9x0abc``."""
    return f"{prefix}-{now_ms()}-{random_suffix()}"


def sanitize_text(text: Optional[str]) -> str:
    """Strip control and non-printable characters so payloads stay valid JSON."""
    if not text:
        return ""
    cleaned = _CONTROL_CHARS.sub("", text)
    cleaned = _NON_PRINTABLE.sub("", cleaned)
    return cleaned.strip()


def slugify(text: str, fallback: Optional[str] = None) -> str:
    """
    Lower-case, hyphenated slug from free text.

    Returns ``fallback`` (or ``bundle-<ms>``) when nothing slug-worthy survives.
    """
    slug = (text or "").lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return slug or fallback or f"bundle-{now_ms()}"


def safe_file_token(text: str) -> str:
    """Replace every non-alphanumeric character with a hyphen, lower-cased."""
    return _NON_ALNUM.sub("-", text or "").lower()


def _is_valid_absolute(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return False
    if any(ch.isspace() for ch in url):
        return False
    try:
        # Raises on malformed ports such as "host:abc".
        parts.port
    except ValueError:
        return False
    return True


def to_absolute_url(image_url: Optional[str], base_url: str) -> Optional[str]:
    """
    Normalise an image reference into an absolute http(s) URL.

    Absolute URLs are validated as-is; anything else is treated as a path on
    ``base_url``. Returns ``None`` for values that cannot be made valid.
    """
    if not image_url or not isinstance(image_url, str):
        logger.warning("Invalid image URL: %r", image_url)
        return None

    sanitized = _CONTROL_CHARS.sub("", image_url).strip()
    if not sanitized:
        return None

    if sanitized.startswith(("http://", "https://")):
        if _is_valid_absolute(sanitized):
            return sanitized
        logger.warning("Invalid URL format: %s", sanitized)
        return None

    if "://" in sanitized:
        logger.warning("Unsupported URL scheme: %s", sanitized)
        return None

    path = sanitized if sanitized.startswith("/") else f"/{sanitized}"
    full_url = f"{base_url.rstrip('/')}{path}"
    if _is_valid_absolute(full_url):
        return full_url
    logger.warning("Failed to create absolute URL: %s", full_url)
    return None


def join_base_url(url: str, base_url: str) -> str:
    """Prefix a relative redirect URL with the public base URL."""
    if url.startswith(("http://", "https://")):
        return url
    return f"{base_url.rstrip('/')}{url if url.startswith('/') else '/' + url}"
