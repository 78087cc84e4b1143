"""
Render surfaces: the browser tabs pages are loaded into.

:class:`RenderSurface` is the contract the capturer talks to;
:class:`PlaywrightSurface` implements it on top of a Chromium tab.
:class:`SurfacePool` hands surfaces out to workers and
:class:`BrowserSession` owns the browser for the lifetime of one run.
"""
from __future__ import annotations

import abc
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from site_lens.config import LensConfig
from site_lens.errors import CaptureError, ExtractionError, NavigationError
from site_lens.logger import logger
from site_lens.parser.html_parser import DocumentInfo, parse_document

__all__ = ("RenderSurface", "PlaywrightSurface", "SurfacePool", "BrowserSession")


class RenderSurface(abc.ABC):
    """Something that can load a URL, expose its DOM and rasterize it."""

    url: str = ""

    @abc.abstractmethod
    async def navigate(self, url: str, timeout: float) -> None:
        """Load *url*; raise :class:`NavigationError` on failure."""

    @abc.abstractmethod
    async def content(self) -> str:
        """Serialized DOM of the current page."""

    @abc.abstractmethod
    async def capture_full_page(self) -> bytes:
        """PNG bytes of the whole scrollable page."""

    async def evaluate_document(self) -> DocumentInfo:
        try:
            html = await self.content()
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(f"could not read document: {exc}") from exc
        return parse_document(html, self.url)

    async def close(self) -> None:
        return None


class PlaywrightSurface(RenderSurface):
    """A single Chromium tab."""

    def __init__(self, page: Page, wait_until: str = "load") -> None:
        self.page = page
        self.wait_until = wait_until

    @property
    def url(self) -> str:  # type: ignore[override]
        return self.page.url

    async def navigate(self, url: str, timeout: float) -> None:
        try:
            await self.page.goto(url, timeout=timeout * 1000, wait_until=self.wait_until)
        except PlaywrightError as exc:
            raise NavigationError(exc.message) from exc

    async def content(self) -> str:
        try:
            return await self.page.content()
        except PlaywrightError as exc:
            raise ExtractionError(exc.message) from exc

    async def capture_full_page(self) -> bytes:
        try:
            return await self.page.screenshot(full_page=True, type="png")
        except PlaywrightError as exc:
            raise ExtractionError(f"screenshot failed: {exc.message}") from exc

    async def close(self) -> None:
        if not self.page.is_closed():
            await self.page.close()


class SurfacePool:
    """Fixed set of surfaces shared by any number of workers."""

    def __init__(self, surfaces: Sequence[RenderSurface]) -> None:
        if not surfaces:
            raise ValueError("a surface pool needs at least one surface")
        self._surfaces: List[RenderSurface] = list(surfaces)
        self._idle: asyncio.Queue[RenderSurface] = asyncio.Queue()
        for surface in self._surfaces:
            self._idle.put_nowait(surface)

    def __len__(self) -> int:
        return len(self._surfaces)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[RenderSurface]:
        surface = await self._idle.get()
        try:
            yield surface
        finally:
            self._idle.put_nowait(surface)

    async def close(self) -> None:
        for surface in self._surfaces:
            try:
                await surface.close()
            except Exception as exc:
                logger.debug("Closing surface failed: %s", exc)


class BrowserSession:
    """
    Launches Chromium and opens ``config.surfaces`` tabs with the configured
    viewport. Everything is released on exit, including on errors and
    cancellation::

        async with BrowserSession(config) as pool:
            async with pool.acquire() as surface:
                ...
    """

    def __init__(self, config: LensConfig) -> None:
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._pool: Optional[SurfacePool] = None

    async def __aenter__(self) -> SurfacePool:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless)
            context_args = {
                "viewport": {
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
            }
            if self.config.user_agent:
                context_args["user_agent"] = self.config.user_agent
            self._context = await self._browser.new_context(**context_args)
            surfaces = [
                PlaywrightSurface(await self._context.new_page(), self.config.wait_until)
                for _ in range(self.config.surfaces)
            ]
        except PlaywrightError as exc:
            await self._shutdown()
            raise CaptureError(f"could not start the browser: {exc.message}") from exc
        except BaseException:
            await self._shutdown()
            raise
        self._pool = SurfacePool(surfaces)
        logger.debug("Browser started with %d tab(s)", len(surfaces))
        return self._pool

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._shutdown()

    async def _shutdown(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug("Closing browser context failed: %s", e)
            self._context = None
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug("Closing browser failed: %s", e)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
