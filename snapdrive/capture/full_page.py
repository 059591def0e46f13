"""Full-page capture — scroll through a view, collect segments, stitch and compare.

Per checkpoint the driver walks through:

    DETECT_REGION -> DETECT_SCROLLABILITY (smart only) -> SCROLL_TO_TOP
    -> CAPTURE_LOOP -> STITCH_OR_SEGMENT_COMPARE

End of content is detected by exact byte equality of consecutive captures.
The tolerant comparator is used only for the final baseline comparison.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Literal

from snapdrive.device.element_finder import find_scroll_region
from snapdrive.imaging.comparator import compare, images_identical, update_baseline
from snapdrive.imaging.overlap import find_overlap
from snapdrive.imaging.stitcher import stitch_vertically
from snapdrive.models.config import CaptureConfig
from snapdrive.models.element import Point
from snapdrive.models.results import CheckpointResult, CompareOptions
from snapdrive.models.run_context import RunContext

logger = logging.getLogger(__name__)

ScrollDirection = Literal["forward", "backward"]


def segment_name(name: str, index: int) -> str:
    return f"{name}_segment_{index}"


class FullPageCapture:
    """Drives scroll-and-capture sweeps against a single simulator.

    ``device`` needs ``screenshot``, ``swipe``, ``tap`` and ``describe_all``
    coroutines (see ``snapdrive.device.simulator.Simulator``).
    """

    def __init__(self, device, config: CaptureConfig):
        self.device = device
        self.config = config

    # --- gestures -----------------------------------------------------------

    async def detect_region(self) -> Point:
        tree = await self.device.describe_all()
        anchor = find_scroll_region(tree.elements, self.config)
        logger.debug("Scroll anchor at (%s, %s)", anchor.x, anchor.y)
        return anchor

    async def scroll(self, anchor: Point, direction: ScrollDirection, distance: float) -> None:
        """One slow drag around ``anchor``; ``forward`` reveals content further down."""
        half = distance / 2
        if direction == "forward":
            start_y, end_y = anchor.y + half, anchor.y - half
        else:
            start_y, end_y = anchor.y - half, anchor.y + half

        await self.device.swipe(anchor.x, start_y, anchor.x, end_y,
                                duration=self.config.swipe_duration_s)
        if self.config.edge_tap:
            # Halts residual inertia left after the drag
            await self.device.tap(self.config.edge_tap_x, anchor.y)
        await self._settle()

    async def _settle(self) -> None:
        if self.config.settle_delay_ms > 0:
            await asyncio.sleep(self.config.settle_delay_ms / 1000)

    # --- state machine ------------------------------------------------------

    async def detect_scrollability(self, work_dir: Path, anchor: Point | None = None) -> bool:
        """Test-scroll forward, then backward, and report whether anything moved."""
        anchor = anchor or await self.detect_region()
        work_dir.mkdir(parents=True, exist_ok=True)
        probes = [work_dir / f".scroll_probe_{i}.png" for i in range(3)]
        distance = self.config.detect_scroll_distance
        try:
            await self.device.screenshot(probes[0])
            await self.scroll(anchor, "forward", distance)
            await self.device.screenshot(probes[1])
            if not images_identical(probes[0], probes[1]):
                logger.info("Scrollable content detected")
                return True

            # Already at the end of the content; try the other way once
            await self.scroll(anchor, "backward", distance)
            await self.device.screenshot(probes[2])
            scrollable = not images_identical(probes[1], probes[2])
            logger.info("Scrollable content %s", "detected" if scrollable else "not detected")
            return scrollable
        finally:
            for p in probes:
                p.unlink(missing_ok=True)

    async def scroll_to_edge(
        self, work_dir: Path, edge: Literal["top", "bottom"] = "top",
        anchor: Point | None = None, max_scrolls: int | None = None,
    ) -> int:
        """Scroll until two consecutive captures are identical; returns swipes made."""
        anchor = anchor or await self.detect_region()
        if max_scrolls is None:
            max_scrolls = self.config.max_scrolls
        direction: ScrollDirection = "backward" if edge == "top" else "forward"
        work_dir.mkdir(parents=True, exist_ok=True)

        previous = work_dir / f".edge_{edge}_0.png"
        await self.device.screenshot(previous)
        swipes = 0
        try:
            for i in range(1, max_scrolls + 1):
                await self.scroll(anchor, direction, self.config.scroll_distance)
                swipes += 1
                current = work_dir / f".edge_{edge}_{i}.png"
                await self.device.screenshot(current)
                identical = images_identical(previous, current)
                previous.unlink(missing_ok=True)
                previous = current
                if identical:
                    logger.debug("Reached %s after %d swipe(s)", edge, swipes)
                    break
            else:
                logger.warning("Scroll limit (%d) reached before the %s edge", max_scrolls, edge)
        finally:
            previous.unlink(missing_ok=True)
        return swipes

    async def capture_segments(
        self, name: str, work_dir: Path, anchor: Point,
        max_scrolls: int | None = None, scroll_distance: int | None = None,
    ) -> list[Path]:
        """Capture one segment per scroll until the content stops moving.

        A capture byte-identical to its predecessor marks the end of the
        content and is discarded. On any error the segments written so far
        are removed and the error propagates.
        """
        if max_scrolls is None:
            max_scrolls = self.config.max_scrolls
        if scroll_distance is None:
            scroll_distance = self.config.scroll_distance
        expected_pixels = round(scroll_distance * self.config.pixel_scale)
        work_dir.mkdir(parents=True, exist_ok=True)

        segments: list[Path] = []
        try:
            first = work_dir / f"{segment_name(name, 0)}.png"
            await self.device.screenshot(first)
            segments.append(first)

            for i in range(1, max_scrolls + 1):
                await self.scroll(anchor, "forward", scroll_distance)
                candidate = work_dir / f"{segment_name(name, i)}.png"
                await self.device.screenshot(candidate)

                if images_identical(segments[-1], candidate):
                    candidate.unlink(missing_ok=True)
                    logger.info("End of content reached after %d segment(s)", len(segments))
                    break

                overlap = find_overlap(
                    segments[-1], candidate, expected_pixels,
                    strip_height=self.config.overlap_strip_height,
                    search_range=self.config.overlap_search_range,
                )
                logger.debug("Segment %d: scroll offset %+dpx (confidence %.0f%%)",
                             i, overlap.offset, overlap.confidence * 100)
                segments.append(candidate)
            else:
                logger.warning("Scroll limit (%d) reached; content may be longer than captured",
                               max_scrolls)
        except Exception:
            for p in segments:
                p.unlink(missing_ok=True)
            raise

        return segments

    async def capture_full_page(
        self,
        name: str,
        ctx: RunContext,
        tolerance: float | None = None,
        stitch: bool | None = None,
        max_scrolls: int | None = None,
        scroll_distance: int | None = None,
        scroll_to_top: bool = True,
    ) -> CheckpointResult:
        tolerance = ctx.default_tolerance if tolerance is None else tolerance
        stitch = self.config.stitch if stitch is None else stitch

        anchor = await self.detect_region()
        if scroll_to_top:
            await self.scroll_to_edge(ctx.screenshots_dir, "top", anchor=anchor, max_scrolls=max_scrolls)

        segments = await self.capture_segments(
            name, ctx.screenshots_dir, anchor,
            max_scrolls=max_scrolls, scroll_distance=scroll_distance,
        )
        segment_paths = [str(p) for p in segments]
        logger.info("Full-page capture '%s': %d segment(s)", name, len(segments))

        if stitch:
            return self._compare_stitched(name, ctx, segments, segment_paths, tolerance)
        return self._compare_segments(name, ctx, segments, segment_paths, tolerance)

    def _compare_stitched(
        self, name: str, ctx: RunContext, segments: list[Path], segment_paths: list[str], tolerance: float,
    ) -> CheckpointResult:
        actual = stitch_vertically(segments, ctx.actual_path(name))
        baseline = ctx.baseline_path(name)

        if ctx.update_baselines:
            update_baseline(actual, baseline)
            return CheckpointResult(
                name=name, match=True, difference_percent=0.0,
                baseline_path=str(baseline), actual_path=str(actual),
                is_full_page=True, segment_paths=segment_paths,
            )

        result = compare(actual, baseline, CompareOptions(
            tolerance=tolerance, generate_diff=True, diff_path=ctx.diff_path(name)))
        return CheckpointResult(
            name=name, match=result.match, difference_percent=result.difference_ratio * 100,
            baseline_path=str(baseline), actual_path=str(actual), diff_path=result.diff_image_path,
            is_full_page=True, segment_paths=segment_paths,
        )

    def _compare_segments(
        self, name: str, ctx: RunContext, segments: list[Path], segment_paths: list[str], tolerance: float,
    ) -> CheckpointResult:
        baselines = [ctx.baseline_path(segment_name(name, i)) for i in range(len(segments))]

        if ctx.update_baselines:
            for segment, baseline in zip(segments, baselines):
                update_baseline(segment, baseline)
            self._remove_stale_segment_baselines(name, ctx, len(segments))
            return CheckpointResult(
                name=name, match=True, difference_percent=0.0,
                baseline_path=str(baselines[0]), actual_path=segment_paths[0],
                is_full_page=True, segment_paths=segment_paths,
            )

        matches: list[bool] = []
        percents: list[float] = []
        diff_path = None
        for i, (segment, baseline) in enumerate(zip(segments, baselines)):
            result = compare(segment, baseline, CompareOptions(
                tolerance=tolerance, generate_diff=True,
                diff_path=ctx.diff_path(segment_name(name, i))))
            matches.append(result.match)
            percents.append(result.difference_ratio * 100)
            diff_path = diff_path or result.diff_image_path

        return CheckpointResult(
            name=name,
            match=all(matches),
            difference_percent=sum(percents) / len(percents),
            baseline_path=str(baselines[0]),
            actual_path=segment_paths[0],
            diff_path=diff_path,
            is_full_page=True,
            segment_paths=segment_paths,
        )

    @staticmethod
    def _remove_stale_segment_baselines(name: str, ctx: RunContext, keep: int) -> None:
        pattern = re.compile(rf"^{re.escape(name)}_segment_(\d+)\.png$")
        for path in ctx.baselines_dir.glob(f"{name}_segment_*.png"):
            m = pattern.match(path.name)
            if m and int(m.group(1)) >= keep:
                path.unlink()
                logger.info("Removed stale segment baseline: %s", path)
