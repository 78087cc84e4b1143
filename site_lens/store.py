# File: site_lens/store.py
"""site_lens.store: durable storage of baselines (manifest + screenshots).

Layout::

    <root>/
        <hostname>-<timestamp>/
            manifest.json
            snapshots/<name>.png
        .draft-<random>/            # crawl in progress, never listed

A crawl writes into a draft directory; :meth:`BaselineStore.save` writes the
manifest into it and renames it into place, so a baseline either exists
completely or not at all.
"""

from __future__ import annotations

import json
import re
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from site_lens.crawler.models import Manifest
from site_lens.errors import BaselineNotFoundError, PersistenceError
from site_lens.logger import logger

__all__ = ["Baseline", "BaselineStore", "MANIFEST_FILE", "SNAPSHOT_DIR"]

MANIFEST_FILE = "manifest.json"
SNAPSHOT_DIR = "snapshots"
_STAMP_FORMAT = "%Y%m%dT%H%M%S"
_DRAFT_PREFIX = ".draft-"
_UNSAFE_HOST = re.compile(r"[^a-zA-Z0-9.-]+")


@dataclass(frozen=True, slots=True)
class Baseline:
    """A saved baseline on disk."""

    identifier: str
    hostname: str
    stamp: str
    path: Path

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILE


def _safe_hostname(hostname: str) -> str:
    return _UNSAFE_HOST.sub("_", hostname).strip("_") or "site"


class BaselineStore:
    """Saves, lists and loads baselines under *root*."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    # Writing ---------------------------------------------------------------

    @contextmanager
    def draft(self) -> Iterator[Path]:
        """
        Yield a fresh directory to capture into; its ``snapshots/`` child is
        where screenshots go. Whatever is left of it on exit is removed, so
        an aborted crawl leaves the store untouched.
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path = Path(tempfile.mkdtemp(prefix=_DRAFT_PREFIX, dir=self.root))
            (path / SNAPSHOT_DIR).mkdir()
        except OSError as exc:
            raise PersistenceError(f"could not create baseline directory in {self.root}: {exc}") from exc
        try:
            yield path
        finally:
            if path.exists():
                shutil.rmtree(path, ignore_errors=True)
                logger.debug("Discarded draft %s", path)

    def save(self, manifest: Manifest, draft: Union[str, Path]) -> Baseline:
        """Write *manifest* into *draft* and publish it as a new baseline."""
        draft = Path(draft)
        try:
            (draft / MANIFEST_FILE).write_text(
                json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise PersistenceError(f"could not write manifest: {exc}") from exc

        host = _safe_hostname(manifest.hostname)
        stamp = datetime.now(timezone.utc).strftime(_STAMP_FORMAT)
        target = self.root / f"{host}-{stamp}"
        suffix = 1
        while target.exists():
            target = self.root / f"{host}-{stamp}_{suffix}"
            suffix += 1
        try:
            draft.rename(target)
        except OSError as exc:
            raise PersistenceError(f"could not publish baseline {target}: {exc}") from exc

        logger.info("Baseline saved: %s (%d pages)", target, len(manifest.pages))
        return self._describe(target)

    # Reading ---------------------------------------------------------------

    def list(self) -> Dict[str, List[Baseline]]:
        """Saved baselines grouped by hostname, oldest first."""
        grouped: Dict[str, List[Baseline]] = {}
        if not self.root.is_dir():
            return grouped
        for entry in sorted(self.root.iterdir()):
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            if not (entry / MANIFEST_FILE).is_file():
                continue
            baseline = self._describe(entry)
            grouped.setdefault(baseline.hostname, []).append(baseline)
        for items in grouped.values():
            items.sort(key=lambda b: b.stamp)
        return grouped

    def get(self, identifier: str) -> Baseline:
        path = self.root / identifier
        if identifier.startswith(".") or "/" in identifier or not (path / MANIFEST_FILE).is_file():
            raise BaselineNotFoundError(f"no baseline named {identifier!r} in {self.root}")
        return self._describe(path)

    def latest(self, hostname: Optional[str] = None) -> Optional[Baseline]:
        candidates = [
            b for host, items in self.list().items() for b in items
            if hostname is None or host == _safe_hostname(hostname)
        ]
        return max(candidates, key=lambda b: b.stamp, default=None)

    def load(self, identifier: str) -> Manifest:
        baseline = self.get(identifier)
        try:
            data = json.loads(baseline.manifest_path.read_text(encoding="utf-8"))
            return Manifest.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise PersistenceError(f"could not read manifest of {identifier}: {exc}") from exc

    def resolve(self, identifier: str, snapshot_ref: str) -> Path:
        """Absolute path of a screenshot referenced by a manifest record."""
        return self.root / identifier / snapshot_ref

    @staticmethod
    def _describe(path: Path) -> Baseline:
        hostname, sep, stamp = path.name.rpartition("-")
        if not sep:
            hostname, stamp = path.name, ""
        return Baseline(identifier=path.name, hostname=hostname, stamp=stamp, path=path)
