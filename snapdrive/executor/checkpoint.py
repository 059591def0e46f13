"""Checkpoint steps — capture, compare against baselines, or record new baselines."""

from __future__ import annotations

import asyncio
import logging

from snapdrive.capture.full_page import FullPageCapture
from snapdrive.errors import ScenarioError
from snapdrive.imaging.comparator import compare, update_baseline
from snapdrive.models.results import CheckpointResult, CompareOptions, WaypointCheckpointResult
from snapdrive.models.run_context import RunContext
from snapdrive.models.scenario import CheckpointKind, ScenarioStep

logger = logging.getLogger(__name__)


async def capture_checkpoint(device, name: str, ctx: RunContext, tolerance: float | None = None) -> CheckpointResult:
    """Single-screen checkpoint."""
    tolerance = ctx.default_tolerance if tolerance is None else tolerance
    actual = ctx.actual_path(name)
    baseline = ctx.baseline_path(name)

    await device.screenshot(actual)

    if ctx.update_baselines:
        update_baseline(actual, baseline)
        return CheckpointResult(
            name=name, match=True, difference_percent=0.0,
            baseline_path=str(baseline), actual_path=str(actual),
        )

    result = compare(actual, baseline, CompareOptions(
        tolerance=tolerance, generate_diff=True, diff_path=ctx.diff_path(name)))
    return CheckpointResult(
        name=name,
        match=result.match,
        difference_percent=result.difference_ratio * 100,
        baseline_path=str(baseline),
        actual_path=str(actual),
        diff_path=result.diff_image_path,
    )


async def resolve_checkpoint_kind(step: ScenarioStep, capture: FullPageCapture, ctx: RunContext) -> CheckpointKind:
    """Turn SMART into PLAIN or FULL_PAGE by probing whether the screen scrolls."""
    kind = step.checkpoint_kind
    if kind is not CheckpointKind.SMART:
        return kind
    scrollable = await capture.detect_scrollability(ctx.screenshots_dir)
    resolved = CheckpointKind.FULL_PAGE if scrollable else CheckpointKind.PLAIN
    logger.info("Smart checkpoint '%s' resolved to %s", step.name, resolved.value)
    return resolved


async def run_checkpoint(device, step: ScenarioStep, ctx: RunContext, capture: FullPageCapture) -> CheckpointResult:
    if not step.name:
        raise ScenarioError(f"{step.action} requires name")

    kind = await resolve_checkpoint_kind(step, capture, ctx)
    match kind:
        case CheckpointKind.PLAIN:
            return await capture_checkpoint(device, step.name, ctx, step.tolerance)
        case CheckpointKind.FULL_PAGE:
            return await capture.capture_full_page(
                step.name,
                ctx,
                tolerance=step.tolerance,
                stitch=step.stitch_images,
                max_scrolls=step.max_scrolls,
                scroll_distance=step.scroll_amount,
                scroll_to_top=step.scroll_to_top,
            )
        case _:
            raise ScenarioError(f"Unresolved checkpoint kind: {kind}")


async def simulate_route(device, step: ScenarioStep, ctx: RunContext) -> CheckpointResult | None:
    """Walk the simulated location through ``step.waypoints``.

    With ``capture_at_waypoints`` each waypoint gets its own checkpoint
    ``<name>_wp<i>`` and the step reports them as one CheckpointResult.
    """
    if not step.waypoints:
        raise ScenarioError("simulate_route requires at least one waypoint")

    interval_ms = step.interval_ms if step.interval_ms is not None else 3000
    capture_delay_ms = step.capture_delay_ms if step.capture_delay_ms is not None else 1000
    base_name = step.waypoint_checkpoint_name or step.name or "route"
    logger.info("Simulating route with %d waypoints, interval: %dms", len(step.waypoints), interval_ms)

    waypoint_results: list[WaypointCheckpointResult] = []
    for i, wp in enumerate(step.waypoints):
        await device.set_location(wp.latitude, wp.longitude)

        if step.capture_at_waypoints:
            await asyncio.sleep(capture_delay_ms / 1000)
            cp = await capture_checkpoint(device, f"{base_name}_wp{i}", ctx, step.tolerance)
            waypoint_results.append(WaypointCheckpointResult(
                index=i,
                latitude=wp.latitude,
                longitude=wp.longitude,
                match=cp.match,
                difference_percent=cp.difference_percent,
                baseline_path=cp.baseline_path,
                actual_path=cp.actual_path,
                diff_path=cp.diff_path,
            ))

        if i < len(step.waypoints) - 1:
            await asyncio.sleep(interval_ms / 1000)

    logger.info("Route simulation completed")
    if not waypoint_results:
        return None

    return CheckpointResult(
        name=base_name,
        match=all(r.match for r in waypoint_results),
        difference_percent=sum(r.difference_percent for r in waypoint_results) / len(waypoint_results),
        baseline_path=waypoint_results[0].baseline_path,
        actual_path=waypoint_results[0].actual_path,
        diff_path=next((r.diff_path for r in waypoint_results if r.diff_path), None),
        route_results=waypoint_results,
    )
