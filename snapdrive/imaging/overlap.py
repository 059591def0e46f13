"""Overlap detection — measures how far a scroll gesture actually moved content.

A strip is taken from near the bottom of the previous capture and searched for
in the next capture around the row where an exact scroll would have put it.
The result is advisory: callers log it, nothing corrects captures with it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from snapdrive.errors import ImageDecodeError
from snapdrive.models.results import OverlapResult

from .comparator import load_image

logger = logging.getLogger(__name__)

STRIP_FROM_BOTTOM = 200  # keeps the strip clear of home indicator / tab bar
CHANNEL_TOLERANCE = 5  # absorbs anti-aliasing and recompression noise
EARLY_EXIT_SIMILARITY = 0.98


def find_overlap(
    prev_image_path: str | Path,
    current_image_path: str | Path,
    expected_scroll_pixels: int,
    strip_height: int = 50,
    search_range: int = 150,
    strip_from_bottom: int = STRIP_FROM_BOTTOM,
) -> OverlapResult:
    """Locate the previous capture's bottom strip inside the current capture.

    Returns ``offset = expected_row - found_row``, which equals the actual
    scroll minus the expected scroll in pixels. Any bounds problem yields a
    zero-confidence result rather than an error.
    """
    try:
        prev = np.asarray(load_image(prev_image_path).convert("RGB"), dtype=np.int16)
        current = np.asarray(load_image(current_image_path).convert("RGB"), dtype=np.int16)
    except ImageDecodeError as e:
        logger.warning("Overlap detection skipped: %s", e)
        return OverlapResult()

    height, width = prev.shape[:2]
    current_height, current_width = current.shape[:2]
    if width != current_width:
        logger.warning("Overlap detection skipped: widths differ (%d vs %d)", width, current_width)
        return OverlapResult()

    strip_start = height - strip_from_bottom - strip_height // 2
    strip_end = strip_start + strip_height
    if strip_start < 0 or strip_end > height:
        logger.warning("Strip position out of bounds, skipping overlap detection")
        return OverlapResult()

    expected_position = strip_start - expected_scroll_pixels
    if expected_position < 0 or expected_position > current_height - strip_height:
        logger.warning("Expected strip position (%d) out of bounds, skipping", expected_position)
        return OverlapResult()

    strip = prev[strip_start:strip_end]
    search_start = max(0, expected_position - search_range)
    search_end = min(current_height - strip_height, expected_position + search_range)

    best_similarity = 0.0
    best_position = 0
    for y in range(search_start, search_end + 1):
        candidate = current[y:y + strip_height]
        matching = np.all(np.abs(strip - candidate) <= CHANNEL_TOLERANCE, axis=2)
        similarity = float(matching.mean())
        if similarity > best_similarity:
            best_similarity = similarity
            best_position = y
        if similarity >= EARLY_EXIT_SIMILARITY:
            break

    offset = expected_position - best_position
    logger.debug("Overlap: strip@%d expected@%d found@%d offset=%d confidence=%.1f%%",
                 strip_start, expected_position, best_position, offset, best_similarity * 100)

    return OverlapResult(offset=offset, confidence=best_similarity, match_position=best_position)
