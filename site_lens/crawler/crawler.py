# === FILE: site_lens/crawler/crawler.py ===
from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union
from urllib.parse import urlsplit

from site_lens.capture.capturer import CaptureFailure, CaptureSuccess, SnapshotCapturer
from site_lens.capture.surface import SurfacePool
from site_lens.config import LensConfig
from site_lens.crawler.classifier import classify_page
from site_lens.crawler.frontier import Frontier
from site_lens.crawler.models import Captured, Failed, Manifest, PageRecord
from site_lens.crawler.normalizer import normalize_url, same_host
from site_lens.crawler.robots import RobotsTxtRules
from site_lens.errors import NavigationError
from site_lens.logger import logger

__all__ = ("BaselineCrawler", "DEFAULT_USER_AGENT")

DEFAULT_USER_AGENT = "SiteLensBot/1.0"


class BaselineCrawler:
    """
    Breadth-first crawl of one site that captures every in-domain page.

    Workers share the :class:`Frontier` and borrow surfaces from the pool.
    Each page goes Queued → Capturing → Succeeded/Failed; a failure is written
    on its record and the crawl carries on. Screenshots land in
    *snapshot_dir* and are referenced from the manifest relative to its
    parent directory.
    """

    def __init__(
        self,
        config: LensConfig,
        pool: SurfacePool,
        snapshot_dir: Union[str, Path],
        robots: Optional[RobotsTxtRules] = None,
    ) -> None:
        self.config = config
        self.pool = pool
        self.snapshot_dir = Path(snapshot_dir)
        self.robots = robots
        self.capturer = SnapshotCapturer(self.snapshot_dir, page_timeout=config.page_timeout)
        self.frontier = Frontier()
        self.disallowed_pages: List[str] = []
        self._records: List[PageRecord] = []
        self._hops: Dict[str, int] = {}
        self._start_url = ""
        self._hostname = ""
        self._in_flight = 0
        self._cond = asyncio.Condition()
        agent = config.user_agent or DEFAULT_USER_AGENT
        self.crawl_delay = (robots.crawl_delay(agent) if robots is not None else None) or 0.0
        self._pace_lock = asyncio.Lock()
        self._last_start: Optional[float] = None

    async def crawl(self, start_url: str) -> Manifest:
        root = normalize_url(start_url)
        if root is None:
            raise ValueError(f"not a crawlable URL: {start_url!r}")
        self._start_url = root
        self._hostname = urlsplit(root).hostname or ""
        self._hops = {root: 0}
        self.frontier.seed(root)

        logger.info("Starting crawl: %s (host %s)", root, self._hostname)
        if self.crawl_delay:
            logger.info("Honoring robots.txt Crawl-delay of %gs", self.crawl_delay)
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        workers = [asyncio.create_task(self._worker()) for _ in range(self.config.concurrency)]
        try:
            await asyncio.gather(*workers)
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        duration = time.monotonic() - start
        manifest = Manifest(
            hostname=self._hostname,
            start_url=root,
            created_at=started_at,
            main_page_rule=self.config.main_page_rule,
            viewport=(self.config.viewport_width, self.config.viewport_height),
            pages=list(self._records),
        )
        logger.info(
            "Crawl finished: %d pages (%d errors) in %.2f s",
            len(manifest.pages), len(manifest.errors), duration,
        )
        if self.disallowed_pages:
            logger.info("Blocked by robots.txt: %d", len(self.disallowed_pages))
        return manifest

    # Worker loop ---------------------------------------------------------------

    async def _worker(self) -> None:
        while True:
            async with self._cond:
                while True:
                    record = self._claim()
                    if record is not None:
                        self._in_flight += 1
                        break
                    if self._in_flight == 0:
                        self._cond.notify_all()
                        return
                    await self._cond.wait()
            try:
                await self._visit(record)
            finally:
                async with self._cond:
                    self._in_flight -= 1
                    self._cond.notify_all()

    def _claim(self) -> Optional[PageRecord]:
        if self.config.max_pages is not None and len(self._records) >= self.config.max_pages:
            return None
        url = self.frontier.claim()
        if url is None:
            return None
        page_type, depth = classify_page(url, self._start_url, self.config.main_page_rule)
        record = PageRecord(url=url, page_type=page_type, path_depth=depth)
        self._records.append(record)
        return record

    async def _visit(self, record: PageRecord) -> None:
        url = record.url
        await self._pace()
        logger.info("Visiting: %s (%s)", url, record.page_type.value.upper())
        try:
            async with self.pool.acquire() as surface:
                result = await asyncio.wait_for(
                    self.capturer.capture(surface, url),
                    timeout=self.config.capture_timeout,
                )
        except asyncio.TimeoutError:
            error = NavigationError(f"capture did not finish within {self.config.capture_timeout:g}s")
            logger.warning("Capture failed for %s: %s", url, error)
            result = CaptureFailure(url, error)

        if isinstance(result, CaptureSuccess):
            record.complete(Captured(
                title=result.title,
                snapshot_ref=self._snapshot_ref(result.snapshot_path),
                canonical_url=result.canonical_url,
            ))
            self._discover(url, result.links)
        else:
            record.complete(Failed(message=result.message, error_kind=result.error.kind))

    async def _pace(self) -> None:
        """Space page starts at least ``crawl_delay`` seconds apart (robots.txt Crawl-delay)."""
        if not self.crawl_delay:
            return
        async with self._pace_lock:
            if self._last_start is not None:
                wait = self._last_start + self.crawl_delay - time.monotonic()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_start = time.monotonic()

    def _discover(self, page_url: str, links: List[str]) -> None:
        hops = self._hops.get(page_url, 0) + 1
        if self.config.max_depth is not None and hops > self.config.max_depth:
            return
        for link in links:
            url = normalize_url(link, page_url)
            if url is None or not same_host(url, self._start_url):
                continue
            if not self._is_allowed(url):
                if url not in self.disallowed_pages:
                    self.disallowed_pages.append(url)
                continue
            if self.frontier.offer(url):
                self._hops[url] = hops
                logger.debug("Queued %s (hop %d)", url, hops)

    def _is_allowed(self, url: str) -> bool:
        if self.robots is None:
            return True
        return self.robots.can_fetch(self.config.user_agent or DEFAULT_USER_AGENT, url)

    def _snapshot_ref(self, path: Path) -> str:
        """Path of the screenshot relative to the baseline directory."""
        return path.relative_to(self.snapshot_dir.parent).as_posix()
