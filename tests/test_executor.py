"""Tests for the executor — step sequencing, fail-fast and result aggregation."""

from pathlib import Path

import pytest
from PIL import Image

from conftest import FakeSimulator, make_png, make_test_case
from snapdrive.executor.executor import Executor


def _executor(config, device, tmp_path: Path) -> Executor:
    return Executor(config, device, tmp_path / "results")


@pytest.mark.asyncio
class TestRunTestCase:
    """Tests for Executor.run_test_case()."""

    async def test_all_steps_pass(self, tmp_path, snapdrive_config):
        device = FakeSimulator()
        tc = make_test_case(tmp_path, [
            {"action": "launch_app", "bundleId": "com.example.app"},
            {"action": "wait", "seconds": 0},
            {"action": "tap", "x": 10, "y": 10},
        ])

        result = await _executor(snapdrive_config, device, tmp_path).run_test_case(tc)

        assert result.success is True
        assert [s.step_index for s in result.steps] == [0, 1, 2]
        assert all(s.success for s in result.steps)
        assert result.test_case_id == "tc_001"
        assert result.test_case_name == "Scenario tc_001"
        assert result.checkpoints == []

    async def test_fail_fast_on_error(self, tmp_path, snapdrive_config):
        """Test a raising step is the last one recorded."""
        device = FakeSimulator()
        tc = make_test_case(tmp_path, [
            {"action": "launch_app", "bundleId": "com.example.app"},
            {"action": "wait", "seconds": 0},
            {"action": "tap", "label": "Missing button"},
            {"action": "terminate_app", "bundleId": "com.example.app"},
            {"action": "wait", "seconds": 0},
        ])

        result = await _executor(snapdrive_config, device, tmp_path).run_test_case(tc)

        assert result.success is False
        assert len(result.steps) == 3
        assert result.steps[2].success is False
        assert "Missing button" in result.steps[2].error
        assert device.calls_named("terminate_app") == []

    async def test_missing_required_field_fails_step(self, tmp_path, snapdrive_config):
        tc = make_test_case(tmp_path, [{"action": "open_url"}, {"action": "clear_location"}])

        result = await _executor(snapdrive_config, FakeSimulator(), tmp_path).run_test_case(tc)

        assert result.success is False
        assert len(result.steps) == 1
        assert "url" in result.steps[0].error

    async def test_checkpoint_mismatch_fails_without_stopping(self, tmp_path, snapdrive_config):
        """Test a mismatching checkpoint fails its step but later steps still run."""
        device = FakeSimulator(frames=[(10, 10, 10)])
        tc = make_test_case(tmp_path, [
            {"action": "checkpoint", "name": "home"},
            {"action": "launch_app", "bundleId": "com.example.app"},
        ])
        make_png(Path(tc.baselines_dir) / "home.png", color=(0, 0, 0))

        result = await _executor(snapdrive_config, device, tmp_path).run_test_case(tc)

        assert result.success is False
        assert len(result.steps) == 2
        assert result.steps[0].success is False
        assert result.steps[0].checkpoint.match is False
        assert "home" in result.steps[0].error
        assert result.steps[1].success is True
        assert len(result.checkpoints) == 1
        assert result.checkpoints[0].diff_path is not None

    async def test_missing_baseline_fails(self, tmp_path, snapdrive_config):
        tc = make_test_case(tmp_path, [{"action": "checkpoint", "name": "home"}])

        result = await _executor(snapdrive_config, FakeSimulator(), tmp_path).run_test_case(tc)

        assert result.success is False
        assert result.checkpoints[0].difference_percent == 100.0

    async def test_update_mode_records_baselines(self, tmp_path, snapdrive_config):
        """Test update mode writes baselines and reports every checkpoint as matching."""
        tc = make_test_case(tmp_path, [
            {"action": "checkpoint", "name": "home"},
            {"action": "full_page_checkpoint", "name": "feed"},
        ])
        device = FakeSimulator(frames=[(1, 1, 1), (2, 2, 2)])

        result = await _executor(snapdrive_config, device, tmp_path).run_test_case(tc, update_baselines=True)

        assert result.success is True
        assert all(c.match and c.difference_percent == 0.0 for c in result.checkpoints)
        assert (Path(tc.baselines_dir) / "home.png").exists()
        assert (Path(tc.baselines_dir) / "feed.png").exists()

    async def test_two_pixels_in_a_million_fail_at_zero_tolerance(self, tmp_path, snapdrive_config):
        device = FakeSimulator(frames=[(10, 10, 10)], size=(1000, 1000))
        tc = make_test_case(tmp_path, [{"action": "checkpoint", "name": "home", "tolerance": 0}])
        baseline = make_png(Path(tc.baselines_dir) / "home.png", size=(1000, 1000), color=(10, 10, 10))
        img = Image.open(baseline).convert("RGB")
        img.putpixel((0, 0), (11, 10, 10))
        img.putpixel((999, 999), (10, 10, 11))
        img.save(baseline, format="PNG")

        result = await _executor(snapdrive_config, device, tmp_path).run_test_case(tc)

        checkpoint = result.checkpoints[0]
        assert checkpoint.match is False
        assert checkpoint.difference_percent == pytest.approx(0.0002)
        assert result.steps[0].success is False
        assert result.success is False

    async def test_update_mode_overwrites_different_baseline(self, tmp_path, snapdrive_config):
        tc = make_test_case(tmp_path, [{"action": "checkpoint", "name": "home"}])
        baseline = make_png(Path(tc.baselines_dir) / "home.png", color=(0, 0, 0))
        device = FakeSimulator(frames=[(200, 100, 50)])
        executor = _executor(snapdrive_config, device, tmp_path)

        result = await executor.run_test_case(tc, update_baselines=True)

        assert result.success is True
        assert result.checkpoints[0].match is True
        assert result.checkpoints[0].difference_percent == 0.0
        actual = executor.run_dir / "screenshots" / "tc_001" / "home.png"
        assert baseline.read_bytes() == actual.read_bytes()
        assert Image.open(baseline).convert("RGB").getpixel((0, 0)) == (200, 100, 50)

    async def test_update_then_compare_passes(self, tmp_path, snapdrive_config):
        tc = make_test_case(tmp_path, [
            {"action": "checkpoint", "name": "home"},
            {"action": "smart_checkpoint", "name": "feed"},
        ])
        frames = [(1, 1, 1), (2, 2, 2), (3, 3, 3)]

        await _executor(snapdrive_config, FakeSimulator(frames=frames), tmp_path).run_test_case(
            tc, update_baselines=True)
        result = await _executor(snapdrive_config, FakeSimulator(frames=frames), tmp_path).run_test_case(tc)

        assert result.success is True
        assert [c.is_full_page for c in result.checkpoints] == [False, True]

    async def test_artifact_layout(self, tmp_path, snapdrive_config):
        tc = make_test_case(tmp_path, [{"action": "checkpoint", "name": "home"}])
        executor = _executor(snapdrive_config, FakeSimulator(), tmp_path)

        result = await executor.run_test_case(tc)

        expected = executor.run_dir / "screenshots" / "tc_001" / "home.png"
        assert result.checkpoints[0].actual_path == str(expected)
        assert expected.exists()

    async def test_durations_recorded(self, tmp_path, snapdrive_config):
        tc = make_test_case(tmp_path, [{"action": "wait", "seconds": 0.05}])

        result = await _executor(snapdrive_config, FakeSimulator(), tmp_path).run_test_case(tc)

        assert result.steps[0].duration_ms >= 40
        assert result.duration_ms >= result.steps[0].duration_ms


@pytest.mark.asyncio
class TestExecute:
    """Tests for Executor.execute()."""

    async def test_aggregates_results(self, tmp_path, snapdrive_config):
        passing = make_test_case(tmp_path, [{"action": "wait", "seconds": 0}], case_id="a")
        failing = make_test_case(tmp_path, [{"action": "tap"}], case_id="b")
        executor = _executor(snapdrive_config, FakeSimulator(), tmp_path)

        run = await executor.execute([passing, failing])

        assert run.run_id == executor.run_id
        assert run.run_id.startswith("run_")
        assert run.total_tests == 2
        assert run.passed == 1
        assert run.failed == 1
        assert [r.test_case_id for r in run.results] == ["a", "b"]
        assert run.results_dir == str(executor.run_dir)

    async def test_empty_run(self, tmp_path, snapdrive_config):
        run = await _executor(snapdrive_config, FakeSimulator(), tmp_path).execute([])
        assert run.total_tests == 0
        assert run.results == []
