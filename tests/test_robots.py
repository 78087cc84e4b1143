# File: tests/test_robots.py
import pytest
from aiohttp import web

from site_lens.crawler.robots import RobotsTxtRules, fetch_robots

ROBOTS = """
User-agent: *
Disallow: /private/
Allow: /private/open
Crawl-delay: 1.5

User-agent: SiteLensBot
Disallow: /bots-only/  # comment
Disallow:
"""


@pytest.mark.parametrize(
    "agent,path,allowed",
    [
        ("Mozilla/5.0", "/", True),
        ("Mozilla/5.0", "/private/x", False),
        ("Mozilla/5.0", "/private/open/page", True),
        ("Mozilla/5.0", "https://example.com/private/x?q=1", False),
        ("SiteLensBot/1.0", "/private/x", True),
        ("SiteLensBot/1.0", "/bots-only/page", False),
    ],
)
def test_can_fetch(agent, path, allowed):
    assert RobotsTxtRules(ROBOTS).can_fetch(agent, path) is allowed


def test_tie_prefers_allow():
    rules = RobotsTxtRules("User-agent: *\nDisallow: /page\nAllow: /page\n")
    assert rules.can_fetch("any", "/page")


def test_wildcards():
    rules = RobotsTxtRules("User-agent: *\nDisallow: /*.pdf$\n")
    assert not rules.can_fetch("any", "/docs/file.pdf")
    assert rules.can_fetch("any", "/docs/file.pdf.html")


def test_crawl_delay():
    rules = RobotsTxtRules(ROBOTS)
    assert rules.crawl_delay("Mozilla/5.0") == 1.5
    assert rules.crawl_delay("SiteLensBot") is None


def test_empty_rules_allow_everything():
    assert RobotsTxtRules("").can_fetch("any", "/anything")


async def _serve_app(app: web.Application, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    return runner


@pytest.mark.asyncio()
async def test_fetch_robots(unused_tcp_port):
    async def robots(request):
        return web.Response(text="User-agent: *\nDisallow: /hidden\n")

    app = web.Application()
    app.router.add_get("/robots.txt", robots)
    runner = await _serve_app(app, unused_tcp_port)
    try:
        rules = await fetch_robots(f"http://127.0.0.1:{unused_tcp_port}/some/page", "SiteLensBot/1.0", timeout=5)
    finally:
        await runner.cleanup()

    assert rules is not None
    assert not rules.can_fetch("SiteLensBot/1.0", "/hidden")
    assert rules.can_fetch("SiteLensBot/1.0", "/visible")


@pytest.mark.asyncio()
async def test_fetch_robots_missing(unused_tcp_port):
    runner = await _serve_app(web.Application(), unused_tcp_port)
    try:
        rules = await fetch_robots(f"http://127.0.0.1:{unused_tcp_port}/", "SiteLensBot/1.0", timeout=5)
    finally:
        await runner.cleanup()
    assert rules is None


@pytest.mark.asyncio()
async def test_fetch_robots_unreachable(unused_tcp_port):
    assert await fetch_robots(f"http://127.0.0.1:{unused_tcp_port}/", "SiteLensBot/1.0", timeout=2) is None
