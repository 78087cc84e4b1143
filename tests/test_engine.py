# File: tests/test_engine.py
import asyncio
from contextlib import asynccontextmanager

import pytest

from conftest import fake_session, png_bytes
from site_lens.aggregator import Classification
from site_lens.engine import Engine
from site_lens.errors import BaselineNotFoundError, CaptureError
from site_lens.store import MANIFEST_FILE


@pytest.mark.asyncio()
async def test_create_baseline(config, site):
    session = fake_session(site)
    engine = Engine(config, session_factory=session)
    run = await engine.create_baseline("https://example.com/")

    assert run.baseline.hostname == "example.com"
    assert (run.baseline.path / MANIFEST_FILE).is_file()
    assert len(list((run.baseline.path / "snapshots").iterdir())) == 4
    assert engine.store.load(run.baseline.identifier) == run.manifest
    assert all(s.closed for s in session.opened)
    # no draft directory left behind
    assert [p.name for p in config.baseline_dir.iterdir()] == [run.baseline.identifier]


@pytest.mark.asyncio()
async def test_create_baseline_uses_base_url(config, site):
    cfg = config.model_copy(update={"base_url": "https://example.com/"})
    run = await Engine(cfg, session_factory=fake_session(site)).create_baseline()
    assert run.manifest.start_url == "https://example.com/"


@pytest.mark.asyncio()
async def test_create_baseline_requires_url(config, site):
    with pytest.raises(ValueError):
        await Engine(config, session_factory=fake_session(site)).create_baseline()


@pytest.mark.asyncio()
async def test_compare_round_trip(config, site):
    engine = Engine(config, session_factory=fake_session(site, surfaces=2))
    crawl = await engine.create_baseline("https://example.com/")

    # one page changes visually, one disappears
    site.pages["https://example.com/about"].image = png_bytes(color=(200, 220, 240), box=(0, 0, 40, 15))
    site.pages["https://example.com/blog/post-2"].fail = "net::ERR_CONNECTION_REFUSED"

    run = await engine.compare(crawl.baseline.identifier)
    summary = run.summary

    assert run.identifier == crawl.baseline.identifier
    assert run.run_dir.parent == config.result_dir
    assert run.run_dir.name.startswith(f"compare_{crawl.baseline.identifier}_")
    assert [r.url for r in summary.results] == [p.url for p in crawl.manifest.pages]
    assert (summary.matched, summary.changed, summary.errored) == (2, 1, 1)

    changed = summary.of(Classification.CHANGED)[0]
    assert changed.url == "https://example.com/about"
    assert changed.diff_ratio == pytest.approx(0.5)
    errored = summary.of(Classification.ERRORED)[0]
    assert errored.error_kind == "navigation"

    # the baseline itself is untouched by a comparison
    assert engine.store.load(crawl.baseline.identifier) == crawl.manifest


@pytest.mark.asyncio()
async def test_compare_skips_failed_baseline_pages(config, site):
    site.pages["https://example.com/about"].fail = "net::ERR_TIMED_OUT"
    engine = Engine(config, session_factory=fake_session(site))
    crawl = await engine.create_baseline("https://example.com/")
    assert len(crawl.manifest.errors) == 1

    site.pages["https://example.com/about"].fail = None
    site.visits.clear()
    run = await engine.compare(crawl.baseline.identifier)
    assert run.summary.total == 3
    assert "https://example.com/about" not in site.visits


@pytest.mark.asyncio()
async def test_compare_unknown_baseline(config, site):
    with pytest.raises(BaselineNotFoundError):
        await Engine(config, session_factory=fake_session(site)).compare("nope-20260101T000000")


@pytest.mark.asyncio()
async def test_two_compares_get_distinct_dirs(config, site):
    engine = Engine(config, session_factory=fake_session(site))
    crawl = await engine.create_baseline("https://example.com/")
    first = await engine.compare(crawl.baseline.identifier)
    second = await engine.compare(crawl.baseline.identifier)
    assert first.run_dir != second.run_dir


@pytest.mark.asyncio()
async def test_cancelled_crawl_saves_nothing(config, site):
    site.pages["https://example.com/blog/post-1"].delay = 10
    session = fake_session(site)
    engine = Engine(config, session_factory=session)

    task = asyncio.create_task(engine.create_baseline("https://example.com/"))
    while "https://example.com/blog/post-1" not in site.visits:
        await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert engine.store.list() == {}
    assert list(config.baseline_dir.iterdir()) == []
    assert session.opened and all(s.closed for s in session.opened)


@pytest.mark.asyncio()
async def test_failed_browser_launch_leaves_no_run_dir(config, site):
    engine = Engine(config, session_factory=fake_session(site))
    crawl = await engine.create_baseline("https://example.com/")

    @asynccontextmanager
    async def broken_session(cfg):
        raise CaptureError("could not start the browser: executable missing")
        yield  # pragma: no cover

    broken = Engine(config, session_factory=broken_session)
    with pytest.raises(CaptureError):
        await broken.compare(crawl.baseline.identifier)
    assert not config.result_dir.exists() or list(config.result_dir.iterdir()) == []
