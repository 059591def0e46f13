"""Per-test-case execution context: artifact locations and run mode."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass
class RunContext:
    test_case_id: str
    baselines_dir: Path
    screenshots_dir: Path
    diffs_dir: Path
    update_baselines: bool = False
    default_tolerance: float = 0.0
    default_timeout_ms: int = 8000
    poll_interval_ms: int = 500

    # Checkpoint names are used verbatim as file stems.
    def actual_path(self, name: str) -> Path:
        return self.screenshots_dir / f"{name}.png"

    def baseline_path(self, name: str) -> Path:
        return self.baselines_dir / f"{name}.png"

    def diff_path(self, name: str) -> Path:
        return self.diffs_dir / f"{name}_diff.png"

    def ensure_dirs(self) -> None:
        for d in (self.baselines_dir, self.screenshots_dir, self.diffs_dir):
            d.mkdir(parents=True, exist_ok=True)
