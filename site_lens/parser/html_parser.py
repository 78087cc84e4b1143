# === FILE: site_lens/parser/html_parser.py ===
"""HTML parsing utilities for SiteLens.

The render surface hands back the serialized DOM of a rendered page; this
module pulls out what the crawler needs from it:

* title: document <title> text or ``""`` if absent.
* canonical: absolute href of ``<link rel="canonical">`` or ``None``.
* links: raw ``href`` values of every ``<a>`` and ``<area>``, in document
  order. They are *not* normalized here; the crawler runs them through
  :func:`site_lens.crawler.normalizer.normalize_url` against the page URL.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

__all__: Sequence[str] = ("DocumentInfo", "parse_document")


@dataclass(slots=True)
class DocumentInfo:
    """Metadata of a rendered document."""

    title: str
    canonical: Optional[str] = None
    links: list[str] = field(default_factory=list)


def _canonical(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    for tag in soup.find_all("link", href=True):
        if not isinstance(tag, Tag):
            continue
        rel = tag.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if any(r.lower() == "canonical" for r in rel):
            href = str(tag["href"]).strip()
            return urljoin(base_url, href) if base_url else href
    return None


def parse_document(html: str, base_url: str = "") -> DocumentInfo:
    """Parse rendered *html* of the page at *base_url*."""
    soup = BeautifulSoup(html or "", "html.parser")

    # <base href> changes how relative links resolve
    base_tag = soup.find("base", href=True)
    if isinstance(base_tag, Tag):
        base_url = urljoin(base_url, str(base_tag["href"]).strip())

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    links: list[str] = []
    for tag in soup.find_all(["a", "area"], href=True):
        if not isinstance(tag, Tag):
            continue
        href_val = tag.get("href")
        if not isinstance(href_val, str):
            continue
        href = href_val.strip()
        if href:
            links.append(urljoin(base_url, href) if base_url and not href.startswith("#") else href)

    return DocumentInfo(title=title, canonical=_canonical(soup, base_url), links=links)
