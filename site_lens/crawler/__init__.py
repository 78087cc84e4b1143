"""site_lens.crawler: URL normalization, frontier, page classification and models.

The crawler itself lives in :mod:`site_lens.crawler.crawler`; it is not
re-exported here because :mod:`site_lens.config` imports the classifier.
"""

from .classifier import MainPageRule, PageType, classify_page
from .frontier import Frontier
from .models import Captured, Failed, Manifest, PageRecord, Pending
from .normalizer import normalize_url

__all__ = [
    "Captured",
    "Failed",
    "Frontier",
    "MainPageRule",
    "Manifest",
    "PageRecord",
    "PageType",
    "Pending",
    "classify_page",
    "normalize_url",
]
