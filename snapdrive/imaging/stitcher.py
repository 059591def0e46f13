"""Vertical stitching of scroll segments into one tall image."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from PIL import Image

from .comparator import load_image

logger = logging.getLogger(__name__)

CANVAS_BACKGROUND = (255, 255, 255, 255)


def stitch_vertically(image_paths: list[str | Path], output_path: str | Path) -> Path:
    """Stack segments top to bottom, left-aligned, in the given order.

    The canvas takes the first segment's width; callers guarantee that all
    segments share it. Segments are never resized or cropped.
    """
    if not image_paths:
        raise ValueError("No images to stitch")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if len(image_paths) == 1:
        shutil.copyfile(image_paths[0], output_path)
        return output_path

    segments = [load_image(p) for p in image_paths]
    width = segments[0].width
    total_height = sum(s.height for s in segments)
    logger.debug("Stitching %d images: %dx%d", len(segments), width, total_height)

    canvas = Image.new("RGBA", (width, total_height), CANVAS_BACKGROUND)
    y = 0
    for segment in segments:
        canvas.paste(segment.convert("RGBA"), (0, y))
        y += segment.height

    canvas.save(output_path, format="PNG")
    logger.info("Stitched %d images into: %s", len(segments), output_path)
    return output_path
