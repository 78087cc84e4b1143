# site_lens/crawler/robots.py
"""
Parser and checker for robots.txt rules (RFC 9309), plus an aiohttp loader.
An empty ``Disallow`` allows every path.
"""
from __future__ import annotations

import asyncio
import re
from typing import Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_lens.logger import logger

__all__ = ("RobotsTxtRules", "fetch_robots")


class RobotsTxtRules:
    """Parser and checker for robots.txt rules."""

    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str) -> None:
        self._groups: List[Dict[str, object]] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    def can_fetch(self, user_agent: str, url_or_path: str) -> bool:
        """Longest matching rule wins; on a tie ``allow`` beats ``disallow``."""
        path = self._path_of(url_or_path)
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group["directives"]:  # type: ignore[index]
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._match_group(user_agent)
        return None if group is None else group.get("crawl_delay")  # type: ignore[return-value]

    @staticmethod
    def _path_of(url_or_path: str) -> str:
        if "://" not in url_or_path:
            return url_or_path or "/"
        parts = urlsplit(url_or_path)
        path = parts.path or "/"
        return f"{path}?{parts.query}" if parts.query else path

    def _new_group(self, agents: List[str]) -> Dict[str, object]:
        group: Dict[str, object] = {"agents": agents, "directives": [], "crawl_delay": None}
        self._groups.append(group)
        return group

    def _parse(self, text: str) -> None:
        current: Optional[Dict[str, object]] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "user-agent":
                if current is None or (current["directives"] or current["crawl_delay"] is not None):
                    current = self._new_group([])
                current["agents"].append(val.lower())  # type: ignore[attr-defined]
            elif key in ("allow", "disallow"):
                if key == "disallow" and val == "":
                    continue
                if current is None:
                    current = self._new_group(["*"])
                current["directives"].append((key, val))  # type: ignore[attr-defined]
            elif key == "crawl-delay":
                if current is None:
                    current = self._new_group(["*"])
                try:
                    current["crawl_delay"] = float(val)
                except ValueError:
                    logger.debug("Ignoring invalid crawl-delay %r", val)

    def _match_group(self, user_agent: str) -> Optional[Dict[str, object]]:
        ua = user_agent.lower()
        for group in self._groups:
            if any(a != "*" and ua.startswith(a) for a in group["agents"]):  # type: ignore[attr-defined]
                return group
        for group in self._groups:
            if "*" in group["agents"]:  # type: ignore[operator]
                return group
        return None

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))


async def fetch_robots(
    base_url: str,
    user_agent: str,
    timeout: float = 10.0,
) -> Optional[RobotsTxtRules]:
    """Download ``/robots.txt`` of *base_url*; None when absent or unreachable."""
    parsed = urlsplit(base_url)
    robots_url = urlunsplit((parsed.scheme, parsed.netloc, "/robots.txt", "", ""))
    try:
        async with ClientSession(
            timeout=ClientTimeout(total=timeout),
            headers={"User-Agent": user_agent},
        ) as session:
            async with session.get(robots_url) as resp:
                if resp.status != 200:
                    logger.debug("robots.txt %s -> HTTP %s", robots_url, resp.status)
                    return None
                text = await resp.text()
    except (ClientError, asyncio.TimeoutError) as e:
        logger.warning("Error loading robots.txt: %s", e)
        return None
    return RobotsTxtRules(text)
