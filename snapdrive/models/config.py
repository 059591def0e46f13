"""Configuration models for SnapDrive."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from snapdrive.models.element import Point


class CaptureConfig(BaseModel):
    # Swipe anchor when the UI tree yields no usable region; also ranks element matches (points)
    screen_center: Point = Field(default_factory=lambda: Point(x=200, y=400))

    # Scroll-region heuristics (points)
    top_bar_max_y: float = 50
    bottom_bar_min_y: float = 700
    bar_max_height: float = 100
    min_region_size: float = 100

    # Scroll gestures
    scroll_distance: int = 300
    detect_scroll_distance: int = 150
    swipe_duration_s: float = 1.0
    settle_delay_ms: int = 500
    max_scrolls: int = 20
    edge_tap: bool = True
    edge_tap_x: int = 2

    # Screenshot pixels per point
    pixel_scale: float = 3.0

    # Overlap diagnostics
    overlap_strip_height: int = 50
    overlap_search_range: int = 150

    stitch: bool = True


class SnapDriveConfig(BaseModel):
    # Paths
    snapdrive_dir: str = ".snapdrive"
    results_dir: str = "./results"

    # Defaults
    default_timeout_ms: int = 8000
    default_poll_interval_ms: int = 500
    default_tolerance: float = 0.0

    # Device
    device_udid: Optional[str] = None
    command_timeout_ms: int = 30000

    log_level: str = "info"

    capture: CaptureConfig = Field(default_factory=CaptureConfig)

    @field_validator("default_tolerance")
    @classmethod
    def check_tolerance(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"default_tolerance must be within [0, 1], got {v}")
        return v

    @classmethod
    def load(cls, path: str | Path) -> "SnapDriveConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
