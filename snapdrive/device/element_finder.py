"""Element finder — predicate search over the accessibility tree and scroll-region detection."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from snapdrive.models.config import CaptureConfig
from snapdrive.models.element import AccessibilityElement, ElementPredicate, Point

logger = logging.getLogger(__name__)

BUTTON_LIKE = ("button", "link", "tab", "cell")
CONTAINER_TYPES = ("group", "axgroup", "scrollview", "tableview", "collectionview", "list")


@dataclass
class ElementSearchResult:
    found: bool
    element: AccessibilityElement | None = None
    elements: list[AccessibilityElement] = field(default_factory=list)
    tap_coordinates: Point | None = None

    @property
    def count(self) -> int:
        return len(self.elements)


def matches(el: AccessibilityElement, pred: ElementPredicate) -> bool:
    if pred.label is not None and el.label != pred.label:
        return False
    if pred.label_contains is not None:
        if not el.label or pred.label_contains.lower() not in el.label.lower():
            return False
    if pred.type is not None and (el.type or "").lower() != pred.type.lower():
        return False
    if pred.role is not None and pred.role.lower() not in (el.role or "").lower():
        return False
    if pred.enabled is not None and el.enabled != pred.enabled:
        return False
    return True


def find_by_predicate(elements: list[AccessibilityElement], pred: ElementPredicate) -> list[AccessibilityElement]:
    return [el for el in elements if matches(el, pred)]


def center_point(el: AccessibilityElement) -> Point:
    return el.frame.center()


def _is_button_like(el: AccessibilityElement) -> bool:
    kind = (el.type or "").lower()
    role = (el.role or "").lower()
    if any(t in kind or t in role for t in BUTTON_LIKE):
        return True
    return any("button" in t.lower() for t in el.traits)


def find_best(
    elements: list[AccessibilityElement],
    pred: ElementPredicate,
    screen_center: Point,
) -> ElementSearchResult:
    """Best match for ``pred``: button-like first, then enabled, then nearest ``screen_center``."""
    candidates = find_by_predicate(elements, pred)
    if not candidates:
        return ElementSearchResult(found=False)

    def rank(el: AccessibilityElement) -> tuple:
        c = center_point(el)
        distance = math.hypot(c.x - screen_center.x, c.y - screen_center.y)
        return (not _is_button_like(el), not el.enabled, distance)

    ranked = sorted(candidates, key=rank)
    best = ranked[0]
    return ElementSearchResult(
        found=True, element=best, elements=ranked, tap_coordinates=center_point(best),
    )


def _is_bar(el: AccessibilityElement, config: CaptureConfig) -> bool:
    f = el.frame
    if f.y < config.top_bar_max_y and f.height < config.bar_max_height:
        return True
    return f.y > config.bottom_bar_min_y and f.height < config.bar_max_height


def find_scroll_region(elements: list[AccessibilityElement], config: CaptureConfig) -> Point:
    """Pick the swipe anchor for scrolling the main content.

    Prefers the centre of the largest container-like element that is not a
    navigation or tab bar. Falls back to the centre of mass of all non-bar
    frames, then to ``config.screen_center``.
    """
    if not elements:
        return config.screen_center

    containers = [
        el for el in elements
        if any(t in (el.type or "").lower() or t in (el.role or "").lower() for t in CONTAINER_TYPES)
    ]

    best: AccessibilityElement | None = None
    for el in containers or elements:
        if _is_bar(el, config):
            continue
        if el.frame.width < config.min_region_size or el.frame.height < config.min_region_size:
            continue
        if best is None or el.frame.area > best.frame.area:
            best = el

    if best is not None:
        logger.debug("Scroll region: %s %s", best.type or best.role, best.frame)
        return best.frame.center()

    body = [el for el in elements if not _is_bar(el, config)]
    if body:
        min_y = min(el.frame.y for el in body)
        max_y = max(el.frame.y + el.frame.height for el in body)
        avg_x = sum(el.frame.x + el.frame.width / 2 for el in body) / len(body)
        return Point(x=round(avg_x), y=round((min_y + max_y) / 2))

    return config.screen_center
