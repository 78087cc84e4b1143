"""
Main/sub page classification by URL path.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

__all__ = ("PageType", "MainPageRule", "path_segments", "classify_page")


class PageType(str, Enum):
    MAIN = "main"
    SUB = "sub"


class MainPageRule(str, Enum):
    """Which pages count as "main". One rule is used for a whole run."""

    #: the start URL and every page at most one path segment deep
    DEPTH = "depth"
    #: only the exact start URL
    START_URL = "start_url"


def path_segments(url: str) -> List[str]:
    """Non-empty ``/``-separated segments of the URL path."""
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def classify_page(
    url: str,
    start_url: Optional[str] = None,
    rule: MainPageRule = MainPageRule.DEPTH,
) -> Tuple[PageType, int]:
    """Return ``(page_type, path_depth)``; unparseable URLs are ``(MAIN, 0)``."""
    try:
        depth = len(path_segments(url))
    except (TypeError, ValueError, AttributeError):
        return PageType.MAIN, 0

    if start_url is not None and url == start_url:
        return PageType.MAIN, depth
    if rule is MainPageRule.DEPTH and depth <= 1:
        return PageType.MAIN, depth
    return PageType.SUB, depth
