"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from snapdrive.models.results import TestRunResult


def generate_json_report(run_result: TestRunResult, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    report = run_result.model_dump()
    report["failed_checkpoints"] = [
        {
            "test_case_id": r.test_case_id,
            "name": cp.name,
            "difference_percent": round(cp.difference_percent, 4),
            "diff_path": cp.diff_path,
        }
        for r in run_result.results
        for cp in r.checkpoints
        if not cp.match
    ]

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
