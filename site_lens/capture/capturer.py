"""
Snapshot capture for one URL: navigate, extract metadata, take a full-page
screenshot and write it to disk.
"""
from __future__ import annotations

import asyncio
import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlsplit

from site_lens.capture.surface import RenderSurface
from site_lens.errors import CaptureError, ExtractionError, NavigationError
from site_lens.logger import logger

__all__ = ("CaptureSuccess", "CaptureFailure", "CaptureResult", "SnapshotCapturer", "snapshot_name")

_UNSAFE = re.compile(r"[^a-zA-Z0-9]+")
_MAX_NAME = 100


def snapshot_name(url: str) -> str:
    """
    Deterministic file stem for *url*: ``hostname_path`` with every run of
    non-alphanumerics collapsed to ``_``, capped in length, ``homepage`` for
    an empty path, and a short hash of the full URL so query strings and
    truncated paths do not collide.
    """
    try:
        parts = urlsplit(url)
        host = parts.hostname or ""
        path = parts.path
    except ValueError:
        host, path = "", ""
    host_part = _UNSAFE.sub("_", host).strip("_") or "invalid_url"
    path_part = _UNSAFE.sub("_", path).strip("_") or "homepage"
    stem = f"{host_part}_{path_part}"[:_MAX_NAME].rstrip("_")
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:8]
    return f"{stem}_{digest}"


@dataclass(slots=True)
class CaptureSuccess:
    url: str
    title: str
    snapshot_path: Path
    canonical_url: Optional[str] = None
    links: List[str] = field(default_factory=list)


@dataclass(slots=True)
class CaptureFailure:
    url: str
    error: CaptureError

    @property
    def message(self) -> str:
        return str(self.error)


CaptureResult = Union[CaptureSuccess, CaptureFailure]


class SnapshotCapturer:
    """Writes one ``<name>.png`` per captured URL into *snapshot_dir*."""

    def __init__(self, snapshot_dir: Union[str, Path], page_timeout: float = 30.0) -> None:
        self.snapshot_dir = Path(snapshot_dir)
        self.page_timeout = page_timeout

    def path_for(self, url: str) -> Path:
        return self.snapshot_dir / f"{snapshot_name(url)}.png"

    async def capture(self, surface: RenderSurface, url: str, *, extract: bool = True) -> CaptureResult:
        """
        Capture *url* on *surface*. Never raises for page-level problems:
        navigation, extraction and write failures come back as
        :class:`CaptureFailure`. With ``extract=False`` links are not
        collected (comparison re-captures).
        """
        try:
            try:
                await asyncio.wait_for(surface.navigate(url, self.page_timeout), timeout=self.page_timeout)
            except asyncio.TimeoutError as exc:
                raise NavigationError(f"timed out after {self.page_timeout:g}s loading {url}") from exc
            except CaptureError:
                raise
            except Exception as exc:
                raise NavigationError(str(exc) or type(exc).__name__) from exc

            try:
                info = await asyncio.wait_for(surface.evaluate_document(), timeout=self.page_timeout)
                image = await asyncio.wait_for(surface.capture_full_page(), timeout=self.page_timeout)
            except asyncio.TimeoutError as exc:
                raise ExtractionError(f"timed out after {self.page_timeout:g}s extracting {url}") from exc
            except CaptureError:
                raise
            except Exception as exc:
                raise ExtractionError(str(exc) or type(exc).__name__) from exc

            target = self.path_for(url)
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(image)
            except OSError as exc:
                raise ExtractionError(f"could not write snapshot {target}: {exc}") from exc
        except CaptureError as exc:
            logger.warning("Capture failed for %s: %s", url, exc)
            return CaptureFailure(url, exc)

        return CaptureSuccess(
            url=url,
            title=info.title,
            snapshot_path=target,
            canonical_url=info.canonical,
            links=list(info.links) if extract else [],
        )
