"""Scenario data structures: steps, scenarios and test cases."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

StepAction = Literal[
    "launch_app",
    "terminate_app",
    "tap",
    "swipe",
    "type_text",
    "wait",
    "wait_for_element",
    "scroll_to_element",
    "checkpoint",
    "full_page_checkpoint",
    "smart_checkpoint",
    "scroll_to_top",
    "scroll_to_bottom",
    "open_url",
    "set_location",
    "clear_location",
    "simulate_route",
]

Direction = Literal["up", "down", "left", "right"]


class CheckpointKind(str, Enum):
    PLAIN = "plain"
    FULL_PAGE = "full_page"
    SMART = "smart"


_CHECKPOINT_KINDS = {
    "checkpoint": CheckpointKind.PLAIN,
    "full_page_checkpoint": CheckpointKind.FULL_PAGE,
    "smart_checkpoint": CheckpointKind.SMART,
}


class _CamelModel(BaseModel):
    # Scenario files use camelCase keys (bundleId, timeoutMs, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Waypoint(_CamelModel):
    latitude: float
    longitude: float


class ScenarioStep(_CamelModel):
    action: StepAction
    # launch_app / terminate_app
    bundle_id: Optional[str] = None
    # tap / wait_for_element / scroll_to_element
    label: Optional[str] = None
    label_contains: Optional[str] = None
    type: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    duration: Optional[float] = None
    # swipe
    direction: Optional[Direction] = None
    start_x: Optional[float] = None
    start_y: Optional[float] = None
    end_x: Optional[float] = None
    end_y: Optional[float] = None
    distance: Optional[float] = None
    # type_text
    text: Optional[str] = None
    target: Optional[str] = None  # label of the field to tap before typing
    # wait
    seconds: Optional[float] = None
    timeout_ms: Optional[int] = None
    # checkpoints
    name: Optional[str] = None
    tolerance: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_scrolls: Optional[int] = None
    scroll_amount: Optional[int] = None
    stitch_images: Optional[bool] = None
    scroll_to_top: bool = True
    # open_url
    url: Optional[str] = None
    # set_location
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    # simulate_route
    waypoints: list[Waypoint] = Field(default_factory=list)
    interval_ms: Optional[int] = None
    capture_at_waypoints: bool = False
    capture_delay_ms: Optional[int] = None
    waypoint_checkpoint_name: Optional[str] = None

    @property
    def checkpoint_kind(self) -> CheckpointKind | None:
        """The checkpoint variant of this step, or None for plain actions."""
        return _CHECKPOINT_KINDS.get(self.action)


class Scenario(_CamelModel):
    name: str
    description: str = ""
    steps: list[ScenarioStep] = Field(default_factory=list)
    device_name: Optional[str] = None
    device_udid: Optional[str] = None


class TestCase(BaseModel):
    id: str
    path: str
    scenario: Scenario
    baselines_dir: str
