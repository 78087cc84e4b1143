import io

import pytest
from PIL import Image

from conftest import png_bytes
from site_lens.aggregator import Classification, classify_ratio
from site_lens.diff import DiffEngine
from site_lens.errors import ComparisonError, DimensionMismatchError, MissingBaselineError


def write(path, data):
    path.write_bytes(data)
    return path


def test_identical_images_have_zero_diff(tmp_path):
    a = write(tmp_path / "a.png", png_bytes((50, 40), (120, 130, 140), box=(5, 5, 20, 20)))
    b = write(tmp_path / "b.png", png_bytes((50, 40), (120, 130, 140), box=(5, 5, 20, 20)))
    result = DiffEngine().compare(a, b, tmp_path / "diff.png")
    assert result.diff_pixels == 0
    assert result.diff_ratio == 0
    assert result.total_pixels == 2000
    assert classify_ratio(result.diff_ratio) is Classification.MATCHED
    assert (tmp_path / "diff.png").is_file()


def test_changed_region_is_counted(tmp_path):
    a = write(tmp_path / "a.png", png_bytes((100, 100), (255, 255, 255)))
    b = write(tmp_path / "b.png", png_bytes((100, 100), (255, 255, 255), box=(0, 0, 50, 20)))
    result = DiffEngine().compare(a, b)
    assert result.diff_pixels == 50 * 20
    assert result.diff_ratio == pytest.approx(0.1)
    assert classify_ratio(result.diff_ratio) is Classification.CHANGED
    assert result.diff_path is None


def test_small_colour_shift_within_threshold():
    a = Image.new("RGB", (10, 10), (100, 100, 100))
    b = Image.new("RGB", (10, 10), (104, 104, 104))
    assert DiffEngine(threshold=0.1).compare_images(a, b).diff_pixels == 0
    assert DiffEngine(threshold=0.0).compare_images(a, b).diff_pixels == 100


def test_transparent_pixels_blend_over_white():
    a = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    b = Image.new("RGB", (4, 4), (255, 255, 255))
    assert DiffEngine().compare_images(a, b).diff_pixels == 0


def test_diff_image_marks_changed_pixels_red(tmp_path):
    a = Image.new("RGB", (3, 1), (255, 255, 255))
    b = Image.new("RGB", (3, 1), (255, 255, 255))
    b.putpixel((1, 0), (0, 0, 0))
    diff = DiffEngine().compare_images(a, b).diff_image
    assert diff.size == (3, 1)
    assert diff.getpixel((1, 0)) == (255, 0, 0)
    assert diff.getpixel((0, 0)) != (255, 0, 0)


def test_dimension_mismatch(tmp_path):
    a = write(tmp_path / "a.png", png_bytes((40, 30)))
    b = write(tmp_path / "b.png", png_bytes((40, 31)))
    with pytest.raises(DimensionMismatchError) as exc_info:
        DiffEngine().compare(a, b)
    assert exc_info.value.expected == (40, 30)
    assert exc_info.value.actual == (40, 31)


def test_missing_baseline(tmp_path):
    b = write(tmp_path / "b.png", png_bytes())
    with pytest.raises(MissingBaselineError):
        DiffEngine().compare(tmp_path / "missing.png", b)


def test_unreadable_image(tmp_path):
    a = write(tmp_path / "a.png", png_bytes())
    b = write(tmp_path / "b.png", b"definitely not a png")
    with pytest.raises(ComparisonError):
        DiffEngine().compare(a, b)


def test_threshold_validation():
    with pytest.raises(ValueError):
        DiffEngine(threshold=1.5)


def test_diff_image_is_valid_png(tmp_path):
    a = write(tmp_path / "a.png", png_bytes((8, 8)))
    b = write(tmp_path / "b.png", png_bytes((8, 8), box=(0, 0, 4, 4)))
    DiffEngine().compare(a, b, tmp_path / "out" / "diff.png")
    with Image.open(io.BytesIO((tmp_path / "out" / "diff.png").read_bytes())) as img:
        assert img.size == (8, 8)


def test_banded_diff_matches_single_band():
    a = Image.new("RGB", (7, 25), (255, 255, 255))
    b = a.copy()
    for y in (0, 3, 4, 11, 24):
        b.putpixel((y % 7, y), (0, 0, 0))
    whole = DiffEngine(band_rows=1000).compare_images(a, b)
    banded = DiffEngine(band_rows=4).compare_images(a, b)
    assert whole.diff_pixels == banded.diff_pixels == 5
    assert whole.diff_image.tobytes() == banded.diff_image.tobytes()


def test_oversized_image_is_comparison_error(tmp_path, monkeypatch):
    a = write(tmp_path / "a.png", png_bytes((40, 30)))
    b = write(tmp_path / "b.png", png_bytes((40, 30)))
    # anything over twice the limit is refused by Pillow outright
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(ComparisonError, match="too large"):
        DiffEngine().compare(a, b)
