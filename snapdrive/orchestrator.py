"""Run orchestrator — loads test cases, drives the executor and writes the report."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from snapdrive.device.command_executor import CommandExecutor
from snapdrive.device.idb_client import IDBClient
from snapdrive.device.simctl_client import SimctlClient
from snapdrive.device.simulator import Simulator
from snapdrive.executor.executor import Executor
from snapdrive.models.config import SnapDriveConfig
from snapdrive.models.results import TestRunResult
from snapdrive.models.scenario import TestCase
from snapdrive.reporter.json_report import generate_json_report
from snapdrive.scenario.loader import select_test_cases

logger = logging.getLogger(__name__)

REPORT_FILE = "report.json"


class Orchestrator:
    """Coordinates a snapshot run on one simulator."""

    def __init__(self, config: SnapDriveConfig, device=None, device_udid: str | None = None):
        self.config = config
        self.results_dir = Path(config.results_dir)
        self.results_dir.mkdir(parents=True, exist_ok=True)
        self.device_udid = device_udid or config.device_udid
        self.device = device or self._build_device()

    def _build_device(self) -> Simulator:
        executor = CommandExecutor()
        timeout = self.config.command_timeout_ms
        simctl = SimctlClient(executor, default_udid=self.device_udid, timeout_ms=timeout)
        idb = IDBClient(executor, default_udid=self.device_udid, timeout_ms=timeout)
        return Simulator(simctl, idb, udid=self.device_udid)

    def run(self, test_case_ids: list[str] | None = None, update_baselines: bool = False) -> TestRunResult:
        """Run the selected test cases (all when none are named)."""
        test_cases = select_test_cases(self.config.snapdrive_dir, test_case_ids)
        return asyncio.run(self.run_test_cases(test_cases, update_baselines))

    async def run_test_cases(self, test_cases: list[TestCase], update_baselines: bool = False) -> TestRunResult:
        if not test_cases:
            logger.warning("No test cases found in %s", self.config.snapdrive_dir)

        # A scenario may pin its own simulator when none was chosen for the run
        if self.device_udid is None and isinstance(self.device, Simulator):
            pinned = {tc.scenario.device_udid for tc in test_cases if tc.scenario.device_udid}
            if len(pinned) == 1:
                self.device.udid = pinned.pop()
                logger.info("Using simulator %s from scenario", self.device.udid)

        if update_baselines:
            logger.info("Baseline update mode: checkpoints will overwrite baselines")

        executor = Executor(self.config, self.device, self.results_dir)
        run = await executor.execute(test_cases, update_baselines)

        report_path = executor.run_dir / REPORT_FILE
        run.report_path = str(report_path)
        generate_json_report(run, report_path)
        logger.info("Report written to %s", report_path)
        return run
