"""
Pixel comparison of two screenshots of the same page.

Colour distance follows the perceptual YIQ metric popularised by
pixelmatch: both images are blended over white by their alpha channel and a
pixel counts as different when its weighted YIQ delta exceeds
``35215 * threshold ** 2`` (35215 is the largest possible delta).

Full-page screenshots can be tens of thousands of pixels tall, so the
arithmetic runs in float32 over horizontal bands of ``band_rows`` rows.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from site_lens.errors import ComparisonError, DimensionMismatchError, MissingBaselineError

__all__ = ["DiffResult", "DiffEngine", "MAX_YIQ_DELTA"]

MAX_YIQ_DELTA = 35215.0

_PathLike = Union[str, Path]


@dataclass(slots=True)
class DiffResult:
    diff_pixels: int
    width: int
    height: int
    diff_image: Image.Image
    diff_path: Optional[Path] = None

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @property
    def diff_ratio(self) -> float:
        return self.diff_pixels / self.total_pixels if self.total_pixels else 0.0


def _rgb_over_white(rgba: np.ndarray) -> np.ndarray:
    band = rgba.astype(np.float32)
    alpha = band[..., 3:4] / 255.0
    return 255.0 + (band[..., :3] - 255.0) * alpha


def _yiq(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    y = r * 0.29889531 + g * 0.58662247 + b * 0.11448223
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return y, i, q


class DiffEngine:
    """Compares same-sized images; *threshold* is the colour tolerance in [0, 1]."""

    def __init__(
        self,
        threshold: float = 0.1,
        diff_color: tuple[int, int, int] = (255, 0, 0),
        band_rows: int = 512,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")
        if band_rows < 1:
            raise ValueError("band_rows must be positive")
        self.threshold = threshold
        self.diff_color = diff_color
        self.band_rows = band_rows

    def compare_images(self, baseline: Image.Image, current: Image.Image) -> DiffResult:
        if baseline.size != current.size:
            raise DimensionMismatchError(baseline.size, current.size)
        width, height = baseline.size

        rgba_a = np.asarray(baseline.convert("RGBA"))
        rgba_b = np.asarray(current.convert("RGBA"))
        limit = MAX_YIQ_DELTA * self.threshold * self.threshold
        out = np.empty((height, width, 3), dtype=np.uint8)
        diff_pixels = 0

        for top in range(0, height, self.band_rows):
            rows = slice(top, top + self.band_rows)
            ya, ia, qa = _yiq(_rgb_over_white(rgba_a[rows]))
            yb, ib, qb = _yiq(_rgb_over_white(rgba_b[rows]))
            delta = 0.5053 * (ya - yb) ** 2 + 0.299 * (ia - ib) ** 2 + 0.1957 * (qa - qb) ** 2
            mask = delta > limit
            diff_pixels += int(mask.sum())

            # unchanged pixels: baseline luminance faded towards white
            faded = (255.0 + (np.clip(ya, 0, 255) - 255.0) * 0.1).astype(np.uint8)
            band = out[rows]
            band[...] = faded[..., None]
            band[mask] = self.diff_color

        return DiffResult(
            diff_pixels=diff_pixels,
            width=width,
            height=height,
            diff_image=Image.fromarray(out),
        )

    def compare(
        self,
        baseline_path: _PathLike,
        current_path: _PathLike,
        diff_path: Optional[_PathLike] = None,
    ) -> DiffResult:
        """
        Compare two image files and optionally write the diff image to
        *diff_path*. Every failure to read, diff or write comes back as a
        :class:`ComparisonError`.
        """
        baseline_path = Path(baseline_path)
        if not baseline_path.is_file():
            raise MissingBaselineError(f"baseline screenshot not found: {baseline_path}")
        try:
            with Image.open(baseline_path) as a, Image.open(current_path) as b:
                result = self.compare_images(a, b)
        except ComparisonError:
            raise
        except Image.DecompressionBombError as exc:
            raise ComparisonError(f"screenshot too large to compare: {exc}") from exc
        except MemoryError as exc:
            raise ComparisonError("not enough memory to compare screenshots") from exc
        except (OSError, ValueError) as exc:
            raise ComparisonError(f"could not read screenshot: {exc}") from exc

        if diff_path is not None:
            diff_path = Path(diff_path)
            try:
                diff_path.parent.mkdir(parents=True, exist_ok=True)
                result.diff_image.save(diff_path, format="PNG")
            except (OSError, ValueError, MemoryError) as exc:
                raise ComparisonError(f"could not write diff image {diff_path}: {exc}") from exc
            result.diff_path = diff_path
        return result
