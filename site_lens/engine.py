# File: site_lens/engine.py
"""site_lens.engine: orchestration of baseline crawls and comparison runs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncContextManager, Callable, Optional

from site_lens.aggregator import Comparator, ComparisonRun, new_run_dir
from site_lens.capture.surface import BrowserSession, SurfacePool
from site_lens.config import LensConfig, load_config
from site_lens.crawler.crawler import DEFAULT_USER_AGENT, BaselineCrawler
from site_lens.crawler.models import Manifest
from site_lens.crawler.robots import fetch_robots
from site_lens.errors import PersistenceError
from site_lens.logger import logger
from site_lens.store import SNAPSHOT_DIR, Baseline, BaselineStore

__all__ = ["Engine", "CrawlRun", "SessionFactory"]

#: builds the render-surface scope of one run; BrowserSession by default
SessionFactory = Callable[[LensConfig], AsyncContextManager[SurfacePool]]


@dataclass(slots=True)
class CrawlRun:
    baseline: Baseline
    manifest: Manifest


class Engine:
    """Facade for the CLI and tests: one object per configuration."""

    @staticmethod
    def load_config(path: Optional[str]) -> LensConfig:
        return load_config(path)

    def __init__(
        self,
        config: LensConfig,
        session_factory: SessionFactory = BrowserSession,
        store: Optional[BaselineStore] = None,
    ) -> None:
        self.config = config
        self.session_factory = session_factory
        self.store = store or BaselineStore(config.baseline_dir)

    async def create_baseline(self, start_url: Optional[str] = None) -> CrawlRun:
        """
        Crawl *start_url* (``config.base_url`` by default) and save the result
        as a new baseline. Nothing is written to the store unless the crawl
        completes; the browser is closed on every exit path.
        """
        url = start_url or (str(self.config.base_url) if self.config.base_url else None)
        if not url:
            raise ValueError("no start URL given and config.base_url is not set")

        robots = None
        if self.config.respect_robots:
            robots = await fetch_robots(
                url, self.config.user_agent or DEFAULT_USER_AGENT, timeout=self.config.page_timeout
            )

        with self.store.draft() as draft:
            async with self.session_factory(self.config) as pool:
                crawler = BaselineCrawler(self.config, pool, draft / SNAPSHOT_DIR, robots=robots)
                manifest = await crawler.crawl(url)
            baseline = self.store.save(manifest, draft)
        return CrawlRun(baseline=baseline, manifest=manifest)

    async def compare(self, identifier: str) -> ComparisonRun:
        """Re-capture every successful page of baseline *identifier* and diff it."""
        baseline = self.store.get(identifier)
        manifest = self.store.load(identifier)
        started_at = datetime.now(timezone.utc)

        async with self.session_factory(self.config) as pool:
            # a failed browser launch must leave result_dir untouched
            run_dir = self._make_run_dir(identifier, started_at)
            logger.info("Comparing against baseline %s; output in %s", identifier, run_dir)
            comparator = Comparator(self.config, pool, run_dir)
            summary = await comparator.compare(manifest, baseline.path)

        return ComparisonRun(
            identifier=identifier,
            manifest=manifest,
            summary=summary,
            run_dir=run_dir,
            started_at=started_at,
        )

    def _make_run_dir(self, identifier: str, now: datetime) -> Path:
        base = new_run_dir(self.config.result_dir, identifier, now)
        candidate, n = base, 1
        while True:
            try:
                candidate.mkdir(parents=True)
                return candidate
            except FileExistsError:
                candidate = base.with_name(f"{base.name}_{n}")
                n += 1
            except OSError as exc:
                raise PersistenceError(f"could not create comparison directory {candidate}: {exc}") from exc
