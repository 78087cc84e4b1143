# File: site_lens/aggregator.py
"""site_lens.aggregator: the comparison pass and its summary statistics."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from site_lens.capture.capturer import CaptureFailure, SnapshotCapturer, snapshot_name
from site_lens.capture.surface import SurfacePool
from site_lens.config import LensConfig
from site_lens.crawler.models import Captured, Manifest, PageRecord
from site_lens.diff import DiffEngine
from site_lens.errors import ComparisonError, MissingBaselineError, NavigationError, SiteLensError
from site_lens.logger import logger

__all__ = [
    "Classification",
    "ComparisonResult",
    "ComparisonSummary",
    "ComparisonRun",
    "Comparator",
    "classify_ratio",
    "new_run_dir",
    "summarize",
]


class Classification(str, Enum):
    MATCHED = "matched"
    CHANGED = "changed"
    ERRORED = "errored"


@dataclass(slots=True)
class ComparisonResult:
    """Outcome of comparing one baseline page with its current rendering."""

    url: str
    classification: Classification
    diff_ratio: Optional[float] = None
    diff_pixels: int = 0
    compared_pixels: int = 0
    diff_artifact: Optional[str] = None
    current_snapshot: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def errored(cls, url: str, error: SiteLensError, current_snapshot: Optional[str] = None) -> ComparisonResult:
        return cls(
            url=url,
            classification=Classification.ERRORED,
            current_snapshot=current_snapshot,
            error=str(error),
            error_kind=error.kind,
        )


@dataclass(slots=True)
class ComparisonSummary:
    """Counts per classification and the pixel-weighted overall diff ratio."""

    results: List[ComparisonResult] = field(default_factory=list)
    matched: int = 0
    changed: int = 0
    errored: int = 0
    diff_pixels: int = 0
    compared_pixels: int = 0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def diff_ratio(self) -> float:
        """Differing pixels over compared pixels across every compared page."""
        return self.diff_pixels / self.compared_pixels if self.compared_pixels else 0.0

    def of(self, classification: Classification) -> List[ComparisonResult]:
        return [r for r in self.results if r.classification is classification]

    def percent(self, count: int) -> float:
        return count / self.total * 100 if self.total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "matched": self.matched,
            "changed": self.changed,
            "errored": self.errored,
            "diffPixels": self.diff_pixels,
            "comparedPixels": self.compared_pixels,
            "diffRatio": self.diff_ratio,
            "results": [
                {**asdict(r), "classification": r.classification.value} for r in self.results
            ],
        }

    def json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def classify_ratio(diff_ratio: float, match_threshold: float = 0.01) -> Classification:
    return Classification.MATCHED if diff_ratio < match_threshold else Classification.CHANGED


def summarize(results: Sequence[ComparisonResult]) -> ComparisonSummary:
    """Reduce per-page results to a :class:`ComparisonSummary`."""
    summary = ComparisonSummary(results=list(results))
    for r in results:
        if r.classification is Classification.MATCHED:
            summary.matched += 1
        elif r.classification is Classification.CHANGED:
            summary.changed += 1
        else:
            summary.errored += 1
            continue
        summary.diff_pixels += r.diff_pixels
        summary.compared_pixels += r.compared_pixels
    return summary


@dataclass(slots=True)
class ComparisonRun:
    """One finished comparison pass against a stored baseline."""

    identifier: str
    manifest: Manifest
    summary: ComparisonSummary
    run_dir: Path
    started_at: datetime


class Comparator:
    """
    Re-captures every successful page of a manifest and diffs it against the
    stored screenshot. No links are followed: the URL set is exactly the
    baseline's. Pages are independent, so they run on ``config.concurrency``
    workers; results keep manifest order.
    """

    def __init__(
        self,
        config: LensConfig,
        pool: SurfacePool,
        run_dir: Union[str, Path],
        diff_engine: Optional[DiffEngine] = None,
    ) -> None:
        self.config = config
        self.pool = pool
        self.run_dir = Path(run_dir)
        self.capturer = SnapshotCapturer(self.run_dir, page_timeout=config.page_timeout)
        self.diff_engine = diff_engine or DiffEngine(config.pixel_threshold)

    async def compare(self, manifest: Manifest, baseline_dir: Union[str, Path]) -> ComparisonSummary:
        baseline_dir = Path(baseline_dir)
        pages = manifest.successful
        logger.info("Comparing %d successful pages from baseline...", len(pages))

        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def _one(record: PageRecord) -> ComparisonResult:
            async with semaphore:
                return await self._compare_page(record, baseline_dir)

        results = await asyncio.gather(*(_one(p) for p in pages))
        summary = summarize(results)
        logger.info(
            "Comparison finished: %d matched, %d changed, %d errored",
            summary.matched, summary.changed, summary.errored,
        )
        return summary

    async def _compare_page(self, record: PageRecord, baseline_dir: Path) -> ComparisonResult:
        url = record.url
        if not isinstance(record.outcome, Captured):
            return ComparisonResult.errored(url, MissingBaselineError(f"no baseline screenshot for {url}"))
        try:
            async with self.pool.acquire() as surface:
                captured = await asyncio.wait_for(
                    self.capturer.capture(surface, url, extract=False),
                    timeout=self.config.capture_timeout,
                )
        except asyncio.TimeoutError:
            error = NavigationError(f"capture did not finish within {self.config.capture_timeout:g}s")
            logger.warning("Error comparing %s: %s", url, error)
            return ComparisonResult.errored(url, error)

        if isinstance(captured, CaptureFailure):
            return ComparisonResult.errored(url, captured.error)

        current = captured.snapshot_path
        diff_path = self.run_dir / f"{snapshot_name(url)}_diff.png"
        try:
            diff = await asyncio.to_thread(
                self.diff_engine.compare,
                baseline_dir / record.outcome.snapshot_ref,
                current,
                diff_path,
            )
        except ComparisonError as exc:
            logger.warning("Error comparing %s: %s", url, exc)
            return ComparisonResult.errored(url, exc, current_snapshot=str(current))
        except Exception as exc:
            logger.exception("Unexpected error comparing %s", url)
            error = ComparisonError(f"{type(exc).__name__}: {exc}")
            return ComparisonResult.errored(url, error, current_snapshot=str(current))

        classification = classify_ratio(diff.diff_ratio, self.config.match_threshold)
        logger.debug("%s: %s (%.4f)", url, classification.value, diff.diff_ratio)
        return ComparisonResult(
            url=url,
            classification=classification,
            diff_ratio=diff.diff_ratio,
            diff_pixels=diff.diff_pixels,
            compared_pixels=diff.total_pixels,
            diff_artifact=str(diff.diff_path) if diff.diff_path else None,
            current_snapshot=str(current),
        )


def new_run_dir(result_dir: Union[str, Path], identifier: str, now: Optional[datetime] = None) -> Path:
    """``<result_dir>/compare_<identifier>_<timestamp>``, not yet created."""
    now = now or datetime.now(timezone.utc)
    return Path(result_dir) / f"compare_{identifier}_{now.strftime('%Y%m%dT%H%M%S')}"
