# site_lens/report/text_report.py
"""
Plain-text reports: one for a crawl (baseline creation), one for a comparison.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from site_lens.aggregator import Classification, ComparisonSummary
from site_lens.crawler.classifier import PageType
from site_lens.crawler.models import Captured, Failed, Manifest, PageRecord
from site_lens.errors import PersistenceError

__all__ = ["render_crawl_text", "render_compare_text", "write_report"]

_RULE = "=" * 80
_SECTION = "-" * 50
_MISSING_CANONICAL_LIMIT = 10


def _section(lines: List[str], title: str) -> None:
    lines += ["", _SECTION, title, _SECTION]


def _pct(part: int, whole: int) -> str:
    return f"{(part / whole * 100) if whole else 0:.1f}%"


def _page_lines(page: PageRecord, index: int, with_depth: bool) -> List[str]:
    icon = "OK " if page.status == "success" else "ERR"
    depth = f" (Depth: {page.path_depth})" if with_depth else ""
    lines = [f"{index}. [{icon}] {page.url}{depth}"]
    if isinstance(page.outcome, Captured):
        lines.append(f"   Title: {page.outcome.title or 'No title'}")
        if page.outcome.canonical_url and page.outcome.canonical_url != page.url:
            lines.append(f"   Canonical: {page.outcome.canonical_url}")
        lines.append(f"   Screenshot: {page.outcome.snapshot_ref}")
    return lines


def render_crawl_text(
    manifest: Manifest,
    *,
    baseline_path: Optional[Union[str, Path]] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """Crawl report: summary, main/sub page details, errors, depth and canonical analysis."""
    generated_at = generated_at or datetime.now()
    pages = manifest.pages
    total = len(pages)
    main = manifest.by_type(PageType.MAIN)
    sub = manifest.by_type(PageType.SUB)
    errors = manifest.errors
    ok = manifest.successful

    lines = [_RULE, "WEBSITE CRAWL REPORT", _RULE, ""]
    lines.append(f"Target URL: {manifest.start_url}")
    lines.append(f"Hostname: {manifest.hostname}")
    lines.append(f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}")
    lines.append(f"Main page rule: {manifest.main_page_rule.value}")
    if baseline_path is not None:
        lines.append(f"Baseline: {baseline_path}")

    _section(lines, "SUMMARY STATISTICS")
    lines += [
        f"Total Pages Found: {total}",
        f"Successful Pages: {len(ok)}",
        f"Error Pages: {len(errors)}",
        f"Main Pages: {len(main)}",
        f"Sub Pages: {len(sub)}",
        f"Main Pages: {_pct(len(main), total)} of total",
        f"Sub Pages: {_pct(len(sub), total)} of total",
        f"Error Pages: {_pct(len(errors), total)} of total",
    ]

    _section(lines, "MAIN PAGES DETAILS")
    for i, page in enumerate(main, 1):
        lines += _page_lines(page, i, with_depth=False)

    _section(lines, "SUB PAGES DETAILS")
    for i, page in enumerate(sub, 1):
        lines += _page_lines(page, i, with_depth=True)

    if errors:
        _section(lines, "ERROR PAGES DETAILS")
        for i, page in enumerate(errors, 1):
            lines.append(f"{i}. {page.url}")
            if isinstance(page.outcome, Failed):
                lines.append(f"   Error ({page.outcome.error_kind}): {page.outcome.message}")

    _section(lines, "PATH DEPTH ANALYSIS")
    depth_stats = Counter(p.path_depth for p in pages)
    for depth in sorted(depth_stats):
        lines.append(f"Depth {depth}: {depth_stats[depth]} pages")

    _section(lines, "CANONICAL URL ANALYSIS")
    with_canonical = [p for p in ok if p.outcome.canonical_url]  # type: ignore[union-attr]
    different = [p for p in with_canonical if p.outcome.canonical_url != p.url]  # type: ignore[union-attr]
    without = [p for p in ok if not p.outcome.canonical_url]  # type: ignore[union-attr]
    lines += [
        f"Pages with canonical tags: {len(with_canonical)}/{len(ok)}",
        f"Pages with different canonical URL: {len(different)}",
        f"Pages without canonical tags: {len(without)}",
    ]
    if different:
        lines += ["", "Pages with different canonical URLs:"]
        for i, page in enumerate(different, 1):
            lines += [f"{i}. {page.url}", f"   -> {page.outcome.canonical_url}"]  # type: ignore[union-attr]
    if without:
        lines += ["", "Pages missing canonical tags:"]
        for i, page in enumerate(without[:_MISSING_CANONICAL_LIMIT], 1):
            lines.append(f"{i}. {page.url}")
        if len(without) > _MISSING_CANONICAL_LIMIT:
            lines.append(f"... and {len(without) - _MISSING_CANONICAL_LIMIT} more pages")

    lines += ["", _RULE, "REPORT COMPLETE", _RULE, ""]
    return "\n".join(lines)


def render_compare_text(
    summary: ComparisonSummary,
    *,
    identifier: str,
    manifest: Manifest,
    generated_at: Optional[datetime] = None,
) -> str:
    """Comparison report: header, counts with percentages, changed and errored pages."""
    generated_at = generated_at or datetime.now()
    lines = ["=== Compare Report ==="]
    lines.append(f"Baseline: {identifier}")
    lines.append(f"Target: {manifest.start_url}")
    lines.append(f"Hostname: {manifest.hostname}")
    lines.append(f"Baseline created: {manifest.created_at:%Y-%m-%d %H:%M:%S}")
    lines.append(f"Compared at: {generated_at:%Y-%m-%d %H:%M:%S}")
    lines.append("")
    lines.append(f"Total pages compared: {summary.total}")
    lines.append(f"Pages matched: {summary.matched} ({summary.percent(summary.matched):.1f}%)")
    lines.append(f"Pages changed: {summary.changed} ({summary.percent(summary.changed):.1f}%)")
    lines.append(f"Pages errored: {summary.errored} ({summary.percent(summary.errored):.1f}%)")
    lines.append(f"Overall diff: {summary.diff_ratio * 100:.2f}% of {summary.compared_pixels} pixels")

    changed = summary.of(Classification.CHANGED)
    if changed:
        lines += ["", "Changed pages:"]
        for i, r in enumerate(changed, 1):
            lines.append(f"  [{i}] {r.url} ({(r.diff_ratio or 0) * 100:.2f}% differ, diff image: {r.diff_artifact})")

    errored = summary.of(Classification.ERRORED)
    if errored:
        lines += ["", "Errored pages:"]
        for i, r in enumerate(errored, 1):
            lines.append(f"  [{i}] {r.url} ({r.error_kind}: {r.error})")

    lines.append("")
    return "\n".join(lines)


def write_report(content: str, path: Union[str, Path]) -> Path:
    """Write *content* to *path*, creating parent directories."""
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"could not save report {p}: {exc}") from exc
    return p
