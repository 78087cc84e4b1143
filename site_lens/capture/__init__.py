"""site_lens.capture: render surfaces and the snapshot capturer."""

from .capturer import CaptureFailure, CaptureResult, CaptureSuccess, SnapshotCapturer, snapshot_name
from .surface import BrowserSession, PlaywrightSurface, RenderSurface, SurfacePool

__all__ = [
    "BrowserSession",
    "CaptureFailure",
    "CaptureResult",
    "CaptureSuccess",
    "PlaywrightSurface",
    "RenderSurface",
    "SnapshotCapturer",
    "SurfacePool",
    "snapshot_name",
]
