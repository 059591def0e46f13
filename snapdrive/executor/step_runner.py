"""Step runner — translates ScenarioStep models into simulator calls."""

from __future__ import annotations

import asyncio
import logging
import time

from snapdrive.capture.full_page import FullPageCapture
from snapdrive.device.element_finder import find_best
from snapdrive.errors import ElementNotFoundError, ScenarioError
from snapdrive.models.element import ElementPredicate, Point
from snapdrive.models.results import CheckpointResult
from snapdrive.models.run_context import RunContext
from snapdrive.models.scenario import ScenarioStep

from .checkpoint import run_checkpoint, simulate_route

logger = logging.getLogger(__name__)

DEFAULT_SWIPE_DISTANCE = 300
DEFAULT_SCROLL_TO_ELEMENT_SWIPES = 10
FOCUS_DELAY_MS = 300
SCROLL_ANIMATION_MS = 300


def swipe_vector(center: Point, direction: str, distance: float) -> tuple[float, float, float, float]:
    """Start/end coordinates of a swipe of ``distance`` centred on ``center``."""
    half = distance / 2
    match direction:
        case "up":
            return center.x, center.y + half, center.x, center.y - half
        case "down":
            return center.x, center.y - half, center.x, center.y + half
        case "left":
            return center.x + half, center.y, center.x - half, center.y
        case "right":
            return center.x - half, center.y, center.x + half, center.y
        case _:
            raise ScenarioError(f"Unknown swipe direction: {direction}")


def _predicate(step: ScenarioStep) -> ElementPredicate:
    pred = ElementPredicate(label=step.label, label_contains=step.label_contains, type=step.type)
    if pred.label is None and pred.label_contains is None and pred.type is None:
        raise ScenarioError(f"{step.action} requires label, labelContains or type")
    return pred


async def _wait_ms(ms: float) -> None:
    await asyncio.sleep(ms / 1000)


async def wait_for_element(device, step: ScenarioStep, ctx: RunContext, center: Point) -> None:
    """Poll the UI tree until an element matches or the timeout expires."""
    pred = _predicate(step)
    timeout_ms = step.timeout_ms if step.timeout_ms is not None else ctx.default_timeout_ms
    start = time.monotonic()
    while True:
        tree = await device.describe_all()
        if find_best(tree.elements, pred, center).found:
            return
        if (time.monotonic() - start) * 1000 >= timeout_ms:
            raise ElementNotFoundError(f"Element not found within {timeout_ms}ms: {pred.describe()}")
        await _wait_ms(ctx.poll_interval_ms)


async def scroll_to_element(device, step: ScenarioStep, center: Point) -> None:
    """Swipe until an element matches, up to ``max_scrolls`` swipes.

    The tree is checked before the first swipe and after every swipe, so
    ``maxScrolls: 0`` only looks at the current screen.
    """
    pred = _predicate(step)
    max_swipes = DEFAULT_SCROLL_TO_ELEMENT_SWIPES if step.max_scrolls is None else step.max_scrolls
    direction = step.direction if step.direction in ("up", "down") else "up"
    distance = DEFAULT_SWIPE_DISTANCE if step.distance is None else step.distance

    for swipe in range(max_swipes + 1):
        tree = await device.describe_all()
        if find_best(tree.elements, pred, center).found:
            return
        if swipe == max_swipes:
            break
        await device.swipe(*swipe_vector(center, direction, distance))
        await _wait_ms(SCROLL_ANIMATION_MS)

    raise ElementNotFoundError(f"Element not found after {max_swipes} swipes: {pred.describe()}")


async def run_step(
    device, step: ScenarioStep, ctx: RunContext, capture: FullPageCapture,
) -> CheckpointResult | None:
    """Execute a single step; checkpoint-family steps return their result."""
    logger.debug("Running step: %s", step.action)
    center = capture.config.screen_center

    match step.action:
        case "launch_app":
            if not step.bundle_id:
                raise ScenarioError("launch_app requires bundleId")
            await device.launch_app(step.bundle_id)

        case "terminate_app":
            if not step.bundle_id:
                raise ScenarioError("terminate_app requires bundleId")
            await device.terminate_app(step.bundle_id)

        case "tap":
            if step.label or step.label_contains:
                tree = await device.describe_all()
                result = find_best(tree.elements, ElementPredicate(
                    label=step.label, label_contains=step.label_contains), screen_center=center)
                if not result.found:
                    raise ElementNotFoundError(f"Element not found: {step.label or step.label_contains}")
                x, y = result.tap_coordinates.x, result.tap_coordinates.y
            elif step.x is not None and step.y is not None:
                x, y = step.x, step.y
            else:
                raise ScenarioError("tap requires label, labelContains, or x/y coordinates")
            logger.debug("Tapping at (%s, %s)", x, y)
            await device.tap(x, y, duration=step.duration)

        case "swipe":
            if step.direction:
                distance = DEFAULT_SWIPE_DISTANCE if step.distance is None else step.distance
                coords = swipe_vector(center, step.direction, distance)
            elif None not in (step.start_x, step.start_y, step.end_x, step.end_y):
                coords = (step.start_x, step.start_y, step.end_x, step.end_y)
            else:
                raise ScenarioError("swipe requires direction or start/end coordinates")
            await device.swipe(*coords, duration=step.duration)

        case "type_text":
            if not step.text:
                raise ScenarioError("type_text requires text")
            if step.target:
                tree = await device.describe_all()
                result = find_best(tree.elements, ElementPredicate(label_contains=step.target),
                                   screen_center=center)
                if result.found:
                    await device.tap(result.tap_coordinates.x, result.tap_coordinates.y)
                    await _wait_ms(FOCUS_DELAY_MS)
                else:
                    logger.warning("Type target not found, typing into current focus: %s", step.target)
            await device.type_text(step.text)

        case "wait":
            seconds = step.seconds if step.seconds is not None else 1
            logger.debug("Waiting %ss...", seconds)
            await asyncio.sleep(seconds)

        case "wait_for_element":
            await wait_for_element(device, step, ctx, center)

        case "scroll_to_element":
            await scroll_to_element(device, step, center)

        case "checkpoint" | "full_page_checkpoint" | "smart_checkpoint":
            return await run_checkpoint(device, step, ctx, capture)

        case "scroll_to_top" | "scroll_to_bottom":
            edge = "top" if step.action == "scroll_to_top" else "bottom"
            await capture.scroll_to_edge(ctx.screenshots_dir, edge, max_scrolls=step.max_scrolls)

        case "open_url":
            if not step.url:
                raise ScenarioError("open_url requires url")
            await device.open_url(step.url)

        case "set_location":
            if step.latitude is None or step.longitude is None:
                raise ScenarioError("set_location requires latitude and longitude")
            await device.set_location(step.latitude, step.longitude)

        case "clear_location":
            await device.clear_location()

        case "simulate_route":
            return await simulate_route(device, step, ctx)

        case _:
            raise ScenarioError(f"Unknown action: {step.action}")

    return None
