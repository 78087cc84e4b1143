"""
Link canonicalisation for the crawl frontier.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

__all__ = ("NAVIGABLE_SCHEMES", "normalize_url", "same_host")

NAVIGABLE_SCHEMES = ("http", "https")


def normalize_url(link: str, base_url: Optional[str] = None) -> Optional[str]:
    """
    Turn a raw ``href`` into an absolute, fragment-free http(s) URL.

    Returns None for fragment-only links, non-navigable schemes
    (``mailto:``, ``tel:``, ``javascript:`` ...) and anything that does not
    parse as an absolute URL with a host. Normalizing an already normalized
    URL returns it unchanged.
    """
    raw = link.strip() if isinstance(link, str) else ""
    if not raw or raw.startswith("#"):
        return None

    try:
        scheme = urlsplit(raw).scheme.lower()
    except ValueError:
        return None
    if scheme and scheme not in NAVIGABLE_SCHEMES:
        return None

    try:
        absolute = urljoin(base_url, raw) if base_url else raw
        parts = urlsplit(absolute)
        # .port raises ValueError on garbage like "host:abc"
        parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    if scheme not in NAVIGABLE_SCHEMES or not parts.hostname:
        return None

    netloc = parts.netloc.lower()
    path = parts.path or "/"
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def same_host(url: str, other: str) -> bool:
    """True when both URLs point at the same hostname (port and scheme ignored)."""
    try:
        return urlsplit(url).hostname == urlsplit(other).hostname
    except ValueError:
        return False
