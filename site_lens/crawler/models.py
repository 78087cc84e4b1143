# site_lens/crawler/models.py
"""
Data models for the SiteLens crawler: page records and the crawl manifest.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from site_lens.crawler.classifier import MainPageRule, PageType

__all__ = (
    "Pending",
    "Captured",
    "Failed",
    "Outcome",
    "PageRecord",
    "Manifest",
    "MANIFEST_VERSION",
)

MANIFEST_VERSION = 1

Status = Literal["pending", "success", "error"]


@dataclass(frozen=True, slots=True)
class Pending:
    """The page was claimed from the frontier and is being captured."""


@dataclass(frozen=True, slots=True)
class Captured:
    """Successful capture; ``snapshot_ref`` is relative to the baseline directory."""

    title: str
    snapshot_ref: str
    canonical_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Failed:
    """Capture failed; ``error_kind`` is the short name of the error class."""

    message: str
    error_kind: str = "error"


Outcome = Union[Pending, Captured, Failed]


@dataclass(slots=True)
class PageRecord:
    """One crawled page."""

    url: str
    page_type: PageType
    path_depth: int
    outcome: Outcome = field(default_factory=Pending)

    @property
    def status(self) -> Status:
        if isinstance(self.outcome, Captured):
            return "success"
        if isinstance(self.outcome, Failed):
            return "error"
        return "pending"

    def complete(self, outcome: Union[Captured, Failed]) -> None:
        """Move the record out of *pending*; allowed exactly once."""
        if not isinstance(self.outcome, Pending):
            raise RuntimeError(f"{self.url} already completed with status {self.status}")
        if isinstance(outcome, Pending):
            raise ValueError("a record can only be completed with Captured or Failed")
        self.outcome = outcome

    # Serialisation ---------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.url,
            "type": self.page_type.value,
            "pathDepth": self.path_depth,
            "status": self.status,
        }
        if isinstance(self.outcome, Captured):
            data["title"] = self.outcome.title
            data["canonical"] = self.outcome.canonical_url
            data["screenshot"] = self.outcome.snapshot_ref
        elif isinstance(self.outcome, Failed):
            data["errorKind"] = self.outcome.error_kind
            data["errorMessage"] = self.outcome.message
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PageRecord:
        status = data.get("status", "pending")
        outcome: Outcome
        if status == "success":
            outcome = Captured(
                title=data.get("title") or "",
                snapshot_ref=data["screenshot"],
                canonical_url=data.get("canonical"),
            )
        elif status == "error":
            outcome = Failed(
                message=data.get("errorMessage", ""),
                error_kind=data.get("errorKind", "error"),
            )
        elif status == "pending":
            outcome = Pending()
        else:
            raise ValueError(f"unknown page status {status!r}")
        return cls(
            url=data["url"],
            page_type=PageType(data.get("type", PageType.MAIN.value)),
            path_depth=int(data.get("pathDepth", 0)),
            outcome=outcome,
        )


@dataclass(slots=True)
class Manifest:
    """Pages of one crawl plus the run metadata needed to reproduce it."""

    hostname: str
    start_url: str
    created_at: datetime
    main_page_rule: MainPageRule = MainPageRule.DEPTH
    viewport: Tuple[int, int] = (1920, 1080)
    pages: List[PageRecord] = field(default_factory=list)

    # Statistics ------------------------------------------------------------
    def by_status(self, status: Status) -> List[PageRecord]:
        return [p for p in self.pages if p.status == status]

    def by_type(self, page_type: PageType) -> List[PageRecord]:
        return [p for p in self.pages if p.page_type is page_type]

    @property
    def successful(self) -> List[PageRecord]:
        return self.by_status("success")

    @property
    def errors(self) -> List[PageRecord]:
        return self.by_status("error")

    # Serialisation ---------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": MANIFEST_VERSION,
            "hostname": self.hostname,
            "startUrl": self.start_url,
            "createdAt": self.created_at.isoformat(),
            "mainPageRule": self.main_page_rule.value,
            "viewport": {"width": self.viewport[0], "height": self.viewport[1]},
            "pages": [p.to_dict() for p in self.pages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Manifest:
        version = data.get("version", MANIFEST_VERSION)
        if version != MANIFEST_VERSION:
            raise ValueError(f"unsupported manifest version {version}")
        viewport = data.get("viewport") or {}
        return cls(
            hostname=data["hostname"],
            start_url=data["startUrl"],
            created_at=datetime.fromisoformat(data["createdAt"]),
            main_page_rule=MainPageRule(data.get("mainPageRule", MainPageRule.DEPTH.value)),
            viewport=(int(viewport.get("width", 1920)), int(viewport.get("height", 1080))),
            pages=[PageRecord.from_dict(p) for p in data.get("pages", [])],
        )
