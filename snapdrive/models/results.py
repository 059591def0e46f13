"""Result data structures produced by the comparator, capture driver and executor."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CompareOptions(BaseModel):
    tolerance: float = Field(default=0.0, ge=0.0, le=1.0)
    generate_diff: bool = True
    diff_path: Optional[Path] = None


class CompareResult(BaseModel):
    match: bool
    difference_ratio: float
    different_pixels: int = 0
    total_pixels: int = 0
    diff_image_path: Optional[str] = None


class OverlapResult(BaseModel):
    offset: int = 0  # expected - found row; positive when content moved further than expected
    confidence: float = 0.0
    match_position: int = 0


class WaypointCheckpointResult(BaseModel):
    """Capture taken at one waypoint of a simulated route."""
    model_config = ConfigDict(frozen=True)

    index: int
    latitude: float
    longitude: float
    match: bool
    difference_percent: float
    baseline_path: str
    actual_path: str
    diff_path: Optional[str] = None


class CheckpointResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    match: bool
    difference_percent: float
    baseline_path: str
    actual_path: str
    diff_path: Optional[str] = None
    is_full_page: bool = False
    segment_paths: list[str] = Field(default_factory=list)
    route_results: list[WaypointCheckpointResult] = Field(default_factory=list)


class StepResult(BaseModel):
    """Result of executing a single scenario step."""
    step_index: int
    action: str
    success: bool
    error: Optional[str] = None
    duration_ms: int = 0
    checkpoint: Optional[CheckpointResult] = None


class TestCaseResult(BaseModel):
    test_case_id: str
    test_case_name: str
    start_time: str
    end_time: str
    duration_ms: int = 0
    steps: list[StepResult] = Field(default_factory=list)
    checkpoints: list[CheckpointResult] = Field(default_factory=list)
    success: bool = True


class TestRunResult(BaseModel):
    run_id: str
    start_time: str
    end_time: str
    duration_ms: int = 0
    total_tests: int = 0
    passed: int = 0
    failed: int = 0
    results: list[TestCaseResult] = Field(default_factory=list)
    results_dir: str = ""
    report_path: Optional[str] = None
