"""Tests for vertical stitching."""

from pathlib import Path

import pytest
from PIL import Image

from conftest import make_png
from snapdrive.imaging.stitcher import stitch_vertically


class TestStitchVertically:
    """Tests for stitch_vertically()."""

    def test_dimensions_are_sum_of_heights(self, tmp_path: Path):
        """Test width comes from the first segment and heights add up."""
        paths = [
            make_png(tmp_path / "s0.png", size=(30, 10), color=(255, 0, 0)),
            make_png(tmp_path / "s1.png", size=(30, 20), color=(0, 255, 0)),
            make_png(tmp_path / "s2.png", size=(30, 5), color=(0, 0, 255)),
        ]
        out = stitch_vertically(paths, tmp_path / "out" / "full.png")

        img = Image.open(out)
        assert img.size == (30, 35)
        assert img.mode == "RGBA"

    def test_segments_stacked_in_order(self, tmp_path: Path):
        """Test each segment lands at its running offset."""
        paths = [
            make_png(tmp_path / "s0.png", size=(8, 10), color=(255, 0, 0)),
            make_png(tmp_path / "s1.png", size=(8, 10), color=(0, 255, 0)),
        ]
        img = Image.open(stitch_vertically(paths, tmp_path / "full.png")).convert("RGB")
        assert img.getpixel((4, 0)) == (255, 0, 0)
        assert img.getpixel((4, 9)) == (255, 0, 0)
        assert img.getpixel((4, 10)) == (0, 255, 0)
        assert img.getpixel((4, 19)) == (0, 255, 0)

    def test_narrower_segment_leaves_white_background(self, tmp_path: Path):
        """Test uncovered canvas stays white when a later segment is narrower."""
        paths = [
            make_png(tmp_path / "s0.png", size=(10, 4), color=(0, 0, 0)),
            make_png(tmp_path / "s1.png", size=(5, 4), color=(0, 0, 0)),
        ]
        img = Image.open(stitch_vertically(paths, tmp_path / "full.png"))
        assert img.size == (10, 8)
        assert img.getpixel((8, 6)) == (255, 255, 255, 255)

    def test_single_image_is_byte_copy(self, tmp_path: Path):
        """Test one segment is copied verbatim."""
        src = make_png(tmp_path / "s0.png", size=(12, 12), color=(1, 2, 3))
        out = stitch_vertically([src], tmp_path / "full.png")
        assert out.read_bytes() == src.read_bytes()

    def test_empty_list_rejected(self, tmp_path: Path):
        with pytest.raises(ValueError, match="No images"):
            stitch_vertically([], tmp_path / "full.png")
