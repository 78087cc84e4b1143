"""Exception hierarchy for SiteLens.

Per-page failures (:class:`CaptureError`, :class:`ComparisonError`) are
recorded on the page's result and never stop a run. :class:`PersistenceError`
is raised at run boundaries (baseline save, report save) and aborts that run.
"""
from __future__ import annotations

from typing import Tuple

__all__ = [
    "SiteLensError",
    "CaptureError",
    "NavigationError",
    "ExtractionError",
    "ComparisonError",
    "DimensionMismatchError",
    "MissingBaselineError",
    "PersistenceError",
    "BaselineNotFoundError",
]


class SiteLensError(Exception):
    """Base class for all SiteLens errors."""

    #: short machine-readable name stored in manifests and reports
    kind: str = "error"


class CaptureError(SiteLensError):
    kind = "capture"


class NavigationError(CaptureError):
    """Timeout or network failure while reaching a URL."""

    kind = "navigation"


class ExtractionError(CaptureError):
    """The page loaded but metadata, links or the screenshot could not be taken."""

    kind = "extraction"


class ComparisonError(SiteLensError):
    kind = "comparison"


class DimensionMismatchError(ComparisonError):
    """Baseline and current images differ in size and cannot be compared."""

    kind = "dimension_mismatch"

    def __init__(self, expected: Tuple[int, int], actual: Tuple[int, int]) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"image size {actual[0]}x{actual[1]} does not match baseline {expected[0]}x{expected[1]}"
        )


class MissingBaselineError(ComparisonError):
    """No stored snapshot exists for the URL being compared."""

    kind = "missing_baseline"


class PersistenceError(SiteLensError):
    """Writing or reading a manifest, snapshot or report failed."""

    kind = "persistence"


class BaselineNotFoundError(PersistenceError):
    kind = "baseline_not_found"
