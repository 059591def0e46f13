"""xcrun simctl wrapper — simulator lifecycle, apps, URLs, location and screenshots."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from pydantic import BaseModel

from snapdrive.errors import DeviceError

from .command_executor import CommandExecutor

logger = logging.getLogger(__name__)


class SimulatorInfo(BaseModel):
    udid: str
    name: str
    state: str = "Unknown"  # Booted, Shutdown, Creating, Unknown
    runtime: str = ""


def _parse_runtime(runtime: str) -> str:
    """``com.apple.CoreSimulator.SimRuntime.iOS-17-4`` -> ``iOS 17.4``."""
    match = re.search(r"iOS-(\d+)-(\d+)", runtime)
    if match:
        return f"iOS {match.group(1)}.{match.group(2)}"
    return runtime


class SimctlClient:
    def __init__(
        self,
        executor: CommandExecutor | None = None,
        default_udid: str | None = None,
        timeout_ms: int = 30000,
    ):
        self.executor = executor or CommandExecutor()
        self.default_udid = default_udid
        self.timeout_ms = timeout_ms

    def _device(self, udid: str | None) -> str:
        return udid or self.default_udid or "booted"

    async def _simctl(self, args: list[str], what: str, timeout_ms: int | None = None,
                      env: dict[str, str] | None = None) -> str:
        result = await self.executor.execute(
            "xcrun", ["simctl", *args], timeout_ms=timeout_ms or self.timeout_ms, env=env)
        if result.exit_code != 0:
            raise DeviceError(f"simctl {what} failed: {result.stderr.strip()}")
        return result.stdout

    async def screenshot(self, output_path: str | Path, udid: str | None = None) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        await self._simctl(["io", self._device(udid), "screenshot", str(output_path)], "screenshot")
        logger.debug("Screenshot saved to: %s", output_path)
        return output_path

    async def list_devices(self) -> list[SimulatorInfo]:
        stdout = await self._simctl(["list", "devices", "-j"], "list")
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise DeviceError(f"simctl list returned invalid JSON: {e}") from e

        devices = []
        for runtime, entries in (data.get("devices") or {}).items():
            for entry in entries:
                if not entry.get("udid"):
                    continue
                devices.append(SimulatorInfo(
                    udid=entry["udid"],
                    name=entry.get("name", ""),
                    state=entry.get("state", "Unknown"),
                    runtime=_parse_runtime(runtime),
                ))
        return devices

    async def get_booted_device(self) -> SimulatorInfo | None:
        for device in await self.list_devices():
            if device.state == "Booted":
                return device
        return None

    async def launch_app(self, bundle_id: str, udid: str | None = None,
                         terminate_existing: bool = True, args: list[str] | None = None,
                         env: dict[str, str] | None = None) -> None:
        device = self._device(udid)
        if terminate_existing:
            try:
                await self.terminate_app(bundle_id, device)
            except DeviceError:
                logger.debug("App %s was not running", bundle_id)
        await self._simctl(["launch", device, bundle_id, *(args or [])], "launch", env=env)
        logger.info("Launched app: %s", bundle_id)

    async def terminate_app(self, bundle_id: str, udid: str | None = None) -> None:
        await self._simctl(["terminate", self._device(udid), bundle_id], "terminate")
        logger.debug("Terminated app: %s", bundle_id)

    async def open_url(self, url: str, udid: str | None = None) -> None:
        await self._simctl(["openurl", self._device(udid), url], "openurl")
        logger.debug("Opened URL: %s", url)

    async def set_location(self, latitude: float, longitude: float, udid: str | None = None) -> None:
        await self._simctl(["location", self._device(udid), "set", f"{latitude},{longitude}"],
                           "location set")
        logger.info("Set location to: %s, %s", latitude, longitude)

    async def clear_location(self, udid: str | None = None) -> None:
        await self._simctl(["location", self._device(udid), "clear"], "location clear")
        logger.info("Cleared simulated location")
