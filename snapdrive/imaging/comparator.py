"""Image comparator — pixel-exact screenshot comparison and diff rendering."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from snapdrive.errors import ImageDecodeError
from snapdrive.models.results import CompareOptions, CompareResult

logger = logging.getLogger(__name__)

DIFF_MARKER_COLOR = (255, 0, 255)
# Luma weights for the dimmed background of diff images
LUMA_WEIGHTS = (0.3, 0.59, 0.11)
DIFF_DIM_FACTOR = 0.4


def load_image(path: str | Path) -> Image.Image:
    """Open and fully decode an image, raising ImageDecodeError on failure."""
    try:
        with Image.open(path) as img:
            img.load()
            return img.copy()
    except (OSError, UnidentifiedImageError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode image {path}: {e}") from e


def _rgb_array(img: Image.Image) -> np.ndarray:
    if img.mode != "RGB":
        img = img.convert("RGB")
    return np.asarray(img, dtype=np.uint8)


def compare(
    actual_path: str | Path,
    baseline_path: str | Path,
    options: CompareOptions | None = None,
) -> CompareResult:
    """Compare a capture against its baseline.

    A pixel counts as different when any of its R, G or B values differ;
    alpha is ignored. ``options.tolerance`` applies to the ratio of
    differing pixels, never per pixel.

    A missing baseline or a size mismatch yields a maximal-difference,
    non-matching result instead of an error.
    """
    options = options or CompareOptions()
    baseline_path = Path(baseline_path)

    if not baseline_path.exists():
        logger.warning("Baseline not found: %s", baseline_path)
        return CompareResult(match=False, difference_ratio=1.0)

    actual = load_image(actual_path)
    baseline = load_image(baseline_path)

    if actual.size != baseline.size:
        logger.warning("Image dimensions do not match: actual %dx%d, baseline %dx%d",
                       actual.width, actual.height, baseline.width, baseline.height)
        return CompareResult(
            match=False,
            difference_ratio=1.0,
            total_pixels=actual.width * actual.height,
        )

    actual_rgb = _rgb_array(actual)
    baseline_rgb = _rgb_array(baseline)
    different_mask = np.any(actual_rgb != baseline_rgb, axis=2)

    total_pixels = actual.width * actual.height
    different_pixels = int(np.count_nonzero(different_mask))
    difference_ratio = different_pixels / total_pixels if total_pixels else 0.0
    match = difference_ratio <= options.tolerance

    diff_image_path = None
    if options.generate_diff and different_pixels > 0 and options.diff_path:
        diff_image_path = str(_write_diff_image(actual, actual_rgb, different_mask, Path(options.diff_path)))
        logger.debug("Diff image saved to: %s", diff_image_path)

    logger.info("Comparison result: %s (%.2f%% different)",
                "MATCH" if match else "DIFFERENT", difference_ratio * 100)

    return CompareResult(
        match=match,
        difference_ratio=difference_ratio,
        different_pixels=different_pixels,
        total_pixels=total_pixels,
        diff_image_path=diff_image_path,
    )


def render_diff(actual: Image.Image, actual_rgb: np.ndarray, different_mask: np.ndarray) -> Image.Image:
    """Dimmed greyscale copy of ``actual`` with differing pixels in magenta."""
    luma = actual_rgb.astype(np.float64) @ np.array(LUMA_WEIGHTS)
    gray = np.floor(luma * DIFF_DIM_FACTOR).astype(np.uint8)

    out = np.repeat(gray[:, :, np.newaxis], 3, axis=2)
    out[different_mask] = DIFF_MARKER_COLOR

    if "A" in actual.getbands():
        alpha = np.asarray(actual.getchannel("A"), dtype=np.uint8).copy()
        alpha[different_mask] = 255
        return Image.fromarray(np.dstack([out, alpha]))
    return Image.fromarray(out)


def _write_diff_image(
    actual: Image.Image, actual_rgb: np.ndarray, different_mask: np.ndarray, diff_path: Path,
) -> Path:
    diff_path.parent.mkdir(parents=True, exist_ok=True)
    render_diff(actual, actual_rgb, different_mask).save(diff_path, format="PNG")
    return diff_path


def images_identical(first: str | Path, second: str | Path) -> bool:
    """Exact file-byte equality.

    Used for end-of-scroll detection only: any rendering jitter counts as
    "still changing". Baseline checks go through ``compare``.
    """
    return Path(first).read_bytes() == Path(second).read_bytes()


def update_baseline(screenshot_path: str | Path, baseline_path: str | Path) -> Path:
    """Replace the baseline with a whole-file copy of the screenshot."""
    baseline_path = Path(baseline_path)
    baseline_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(screenshot_path, baseline_path)
    logger.info("Baseline updated: %s", baseline_path)
    return baseline_path

