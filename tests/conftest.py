# File: tests/conftest.py
from __future__ import annotations

import asyncio
import io
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pytest
from PIL import Image

from site_lens.capture.surface import RenderSurface, SurfacePool
from site_lens.config import LensConfig
from site_lens.errors import NavigationError


def png_bytes(size: Tuple[int, int] = (40, 30), color=(255, 255, 255), box=None) -> bytes:
    """Solid-colour PNG, optionally with a black rectangle *box* = (x0, y0, x1, y1)."""
    img = Image.new("RGB", size, color)
    if box is not None:
        img.paste((0, 0, 0), box)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@dataclass
class FakePage:
    html: str
    image: bytes = field(default_factory=png_bytes)
    fail: Optional[str] = None
    delay: float = 0.0


@dataclass
class FakeSite:
    """In-memory website: URL -> FakePage."""

    pages: Dict[str, FakePage] = field(default_factory=dict)
    visits: List[str] = field(default_factory=list)

    def add(self, url: str, html: str = "<html></html>", **kwargs) -> FakePage:
        page = FakePage(html=html, **kwargs)
        self.pages[url] = page
        return page


class FakeSurface(RenderSurface):
    """Render surface backed by a :class:`FakeSite`."""

    def __init__(self, site: FakeSite) -> None:
        self.site = site
        self.url = ""
        self.closed = False

    async def navigate(self, url: str, timeout: float) -> None:
        self.site.visits.append(url)
        page = self.site.pages.get(url)
        if page is None:
            raise NavigationError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if page.delay:
            await asyncio.sleep(page.delay)
        if page.fail:
            raise NavigationError(page.fail)
        self.url = url

    async def content(self) -> str:
        return self.site.pages[self.url].html

    async def capture_full_page(self) -> bytes:
        return self.site.pages[self.url].image

    async def close(self) -> None:
        self.closed = True


def fake_session(site: FakeSite, surfaces: int = 1):
    """Session factory for :class:`site_lens.engine.Engine` that never starts a browser."""
    opened: List[FakeSurface] = []

    @asynccontextmanager
    async def factory(config):
        batch = [FakeSurface(site) for _ in range(surfaces)]
        opened.extend(batch)
        pool = SurfacePool(batch)
        try:
            yield pool
        finally:
            await pool.close()

    factory.opened = opened  # type: ignore[attr-defined]
    return factory


@pytest.fixture()
def site() -> FakeSite:
    """
    Small site::

        /            -> /about, /blog/post-1, external link, mailto
        /about       -> /, /about#team
        /blog/post-1 -> /blog/post-2
        /blog/post-2 -> (nothing)
    """
    s = FakeSite()
    s.add(
        "https://example.com/",
        '<html><head><title>Home</title>'
        '<link rel="canonical" href="https://example.com/"></head><body>'
        '<a href="/about">About</a>'
        '<a href="https://example.com/blog/post-1#top">Post</a>'
        '<a href="https://other.org/">Other</a>'
        '<a href="mailto:hi@example.com">Mail</a>'
        '</body></html>',
        image=png_bytes(color=(250, 250, 250)),
    )
    s.add(
        "https://example.com/about",
        '<html><head><title>About</title></head><body>'
        '<a href="/">Home</a><a href="#team">Team</a><a href="/about#team">Team</a>'
        '</body></html>',
        image=png_bytes(color=(200, 220, 240)),
    )
    s.add(
        "https://example.com/blog/post-1",
        '<html><head><title>Post 1</title>'
        '<link rel="canonical" href="/blog/first-post"></head>'
        '<body><a href="post-2">Next</a></body></html>',
        image=png_bytes(color=(240, 240, 200)),
    )
    s.add(
        "https://example.com/blog/post-2",
        "<html><head><title>Post 2</title></head><body></body></html>",
        image=png_bytes(color=(230, 230, 230)),
    )
    return s


@pytest.fixture()
def config(tmp_path) -> LensConfig:
    """Config writing into the test's temporary directory."""
    return LensConfig(
        baseline_dir=tmp_path / "baseline",
        result_dir=tmp_path / "result",
        page_timeout=2.0,
        capture_timeout=5.0,
    )
