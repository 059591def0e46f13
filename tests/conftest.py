"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
from PIL import Image

from snapdrive.errors import DeviceError
from snapdrive.models.config import CaptureConfig, SnapDriveConfig
from snapdrive.models.element import AccessibilityElement, Frame, UITree
from snapdrive.models.run_context import RunContext
from snapdrive.models.scenario import Scenario, ScenarioStep, TestCase


# ============================================================================
# Image helpers
# ============================================================================


def make_png(path: Path, size=(20, 40), color=(10, 20, 30), mode="RGB") -> Path:
    """Write a solid-colour PNG and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 255)
    Image.new(mode, size, color).save(path, format="PNG")
    return path


# ============================================================================
# Fake simulator
# ============================================================================


class FakeSimulator:
    """Scripted stand-in for ``snapdrive.device.simulator.Simulator``.

    ``frames`` are the screens of a scrollable page, top to bottom. A swipe
    whose finger moves up advances one frame, a swipe moving down goes back
    one; both clamp at the ends, so an extra swipe reproduces the last
    screen exactly.
    """

    def __init__(self, frames=None, elements=None, size=(20, 40), fail_on_screenshot: int | None = None,
                 screen_elements=None):
        self.frames = frames or [(200, 200, 200)]
        self.position = 0
        self.elements = elements or []
        # Optional per-frame UI trees, indexed like ``frames``
        self.screen_elements = screen_elements
        self.size = size
        self.fail_on_screenshot = fail_on_screenshot
        self.screenshots = 0
        self.calls: list[tuple] = []

    def current_color(self):
        return self.frames[self.position]

    async def screenshot(self, path):
        self.screenshots += 1
        self.calls.append(("screenshot", str(path)))
        if self.fail_on_screenshot is not None and self.screenshots >= self.fail_on_screenshot:
            raise DeviceError("simctl screenshot failed: device disconnected")
        return make_png(Path(path), self.size, self.current_color())

    async def swipe(self, start_x, start_y, end_x, end_y, duration=None):
        self.calls.append(("swipe", start_x, start_y, end_x, end_y, duration))
        if end_y < start_y:
            self.position = min(self.position + 1, len(self.frames) - 1)
        elif end_y > start_y:
            self.position = max(self.position - 1, 0)

    async def tap(self, x, y, duration=None):
        self.calls.append(("tap", x, y, duration))

    async def type_text(self, text):
        self.calls.append(("type_text", text))

    async def describe_all(self):
        self.calls.append(("describe_all",))
        if self.screen_elements is not None:
            return UITree(elements=list(self.screen_elements[self.position]))
        return UITree(elements=list(self.elements))

    async def launch_app(self, bundle_id):
        self.calls.append(("launch_app", bundle_id))

    async def terminate_app(self, bundle_id):
        self.calls.append(("terminate_app", bundle_id))

    async def open_url(self, url):
        self.calls.append(("open_url", url))

    async def set_location(self, latitude, longitude):
        self.calls.append(("set_location", latitude, longitude))

    async def clear_location(self):
        self.calls.append(("clear_location",))

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


# ============================================================================
# Fixtures
# ============================================================================


def element(label=None, type=None, x=0, y=0, width=100, height=40, **kwargs) -> AccessibilityElement:
    return AccessibilityElement(
        label=label, type=type, frame=Frame(x=x, y=y, width=width, height=height), **kwargs,
    )


@pytest.fixture
def capture_config() -> CaptureConfig:
    """Capture settings with no settle delay so tests run instantly."""
    return CaptureConfig(settle_delay_ms=0, edge_tap=False, max_scrolls=10)


@pytest.fixture
def snapdrive_config(tmp_path: Path, capture_config: CaptureConfig) -> SnapDriveConfig:
    return SnapDriveConfig(
        snapdrive_dir=str(tmp_path / ".snapdrive"),
        results_dir=str(tmp_path / "results"),
        default_timeout_ms=50,
        default_poll_interval_ms=10,
        capture=capture_config,
    )


@pytest.fixture
def run_context(tmp_path: Path) -> RunContext:
    ctx = RunContext(
        test_case_id="tc",
        baselines_dir=tmp_path / "baselines",
        screenshots_dir=tmp_path / "screenshots",
        diffs_dir=tmp_path / "diffs",
        default_timeout_ms=50,
        poll_interval_ms=10,
    )
    ctx.ensure_dirs()
    return ctx


@pytest.fixture
def fake_device() -> FakeSimulator:
    return FakeSimulator()


def make_test_case(tmp_path: Path, steps: list[dict], case_id: str = "tc_001") -> TestCase:
    """Build a TestCase whose baselines live under ``tmp_path``."""
    case_dir = tmp_path / "cases" / case_id
    return TestCase(
        id=case_id,
        path=str(case_dir),
        scenario=Scenario(name=f"Scenario {case_id}", steps=[ScenarioStep(**s) for s in steps]),
        baselines_dir=str(case_dir / "baselines"),
    )
