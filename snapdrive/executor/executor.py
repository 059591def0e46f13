"""Test executor — runs scenarios step by step against a simulator."""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path

from snapdrive.capture.full_page import FullPageCapture
from snapdrive.models.config import SnapDriveConfig
from snapdrive.models.results import CheckpointResult, StepResult, TestCaseResult, TestRunResult
from snapdrive.models.run_context import RunContext
from snapdrive.models.scenario import TestCase

from .step_runner import run_step

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class Executor:
    """Executes test cases sequentially on a single simulator.

    A step that raises stops its test case. A checkpoint mismatch marks the
    step failed but the remaining steps still run; in update mode
    mismatches never fail.
    """

    def __init__(self, config: SnapDriveConfig, device, results_dir: Path):
        self.config = config
        self.device = device
        self.results_dir = results_dir
        self.run_id = f"run_{uuid.uuid4().hex[:8]}"
        self.run_dir = results_dir / self.run_id
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.capture = FullPageCapture(device, config.capture)

    def context_for(self, test_case: TestCase, update_baselines: bool = False) -> RunContext:
        return RunContext(
            test_case_id=test_case.id,
            baselines_dir=Path(test_case.baselines_dir),
            screenshots_dir=self.run_dir / "screenshots" / test_case.id,
            diffs_dir=self.run_dir / "diffs" / test_case.id,
            update_baselines=update_baselines,
            default_tolerance=self.config.default_tolerance,
            default_timeout_ms=self.config.default_timeout_ms,
            poll_interval_ms=self.config.default_poll_interval_ms,
        )

    async def execute(self, test_cases: list[TestCase], update_baselines: bool = False) -> TestRunResult:
        """Run every test case back to back and aggregate the outcome."""
        start_time = _timestamp()
        start = time.time()
        logger.info("Starting run %s (%d test cases)", self.run_id, len(test_cases))

        results: list[TestCaseResult] = []
        for i, tc in enumerate(test_cases):
            logger.info("Running test [%d/%d]: %s", i + 1, len(test_cases), tc.scenario.name)
            result = await self.run_test_case(tc, update_baselines)
            logger.info("[%s] %s: %s (%dms)",
                        "PASS" if result.success else "FAIL",
                        tc.id, tc.scenario.name, result.duration_ms)
            results.append(result)

        run = TestRunResult(
            run_id=self.run_id,
            start_time=start_time,
            end_time=_timestamp(),
            duration_ms=int((time.time() - start) * 1000),
            total_tests=len(results),
            passed=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            results=results,
            results_dir=str(self.run_dir),
        )
        logger.info("Run complete: %d passed, %d failed (%.1fs)",
                    run.passed, run.failed, run.duration_ms / 1000)
        return run

    async def run_test_case(self, test_case: TestCase, update_baselines: bool = False) -> TestCaseResult:
        """Run one test case; always returns a finished result."""
        ctx = self.context_for(test_case, update_baselines)
        ctx.ensure_dirs()

        start_time = _timestamp()
        test_start = time.time()
        steps = test_case.scenario.steps
        step_results: list[StepResult] = []
        checkpoints: list[CheckpointResult] = []

        for idx, step in enumerate(steps):
            logger.debug("  Step %d/%d: %s", idx + 1, len(steps), step.action)
            step_start = time.time()
            try:
                checkpoint = await run_step(self.device, step, ctx, self.capture)
            except Exception as e:
                step_results.append(StepResult(
                    step_index=idx, action=step.action, success=False, error=str(e),
                    duration_ms=int((time.time() - step_start) * 1000),
                ))
                logger.warning("Step %d (%s) failed: %s", idx, step.action, e)
                break

            success = True
            error = None
            if checkpoint is not None:
                checkpoints.append(checkpoint)
                if not update_baselines and not checkpoint.match:
                    success = False
                    error = (f"Checkpoint '{checkpoint.name}' differs from baseline "
                             f"({checkpoint.difference_percent:.2f}%)")

            step_results.append(StepResult(
                step_index=idx, action=step.action, success=success, error=error,
                duration_ms=int((time.time() - step_start) * 1000), checkpoint=checkpoint,
            ))
            if not success:
                logger.warning("Step %d (%s): %s", idx, step.action, error)

        success = all(s.success for s in step_results) and (
            update_baselines or all(c.match for c in checkpoints))

        return TestCaseResult(
            test_case_id=test_case.id,
            test_case_name=test_case.scenario.name,
            start_time=start_time,
            end_time=_timestamp(),
            duration_ms=int((time.time() - test_start) * 1000),
            steps=step_results,
            checkpoints=checkpoints,
            success=success,
        )
