"""Simulator facade — one booted simulator as seen by the snapshot engine."""

from __future__ import annotations

from pathlib import Path

from snapdrive.models.element import UITree

from .idb_client import IDBClient
from .simctl_client import SimctlClient


class Simulator:
    """Binds simctl and idb to a single device.

    The capture driver and executor only talk to this interface, so tests
    substitute a scripted fake with the same coroutine methods.
    """

    def __init__(self, simctl: SimctlClient, idb: IDBClient, udid: str | None = None):
        self.simctl = simctl
        self.idb = idb
        self.udid = udid

    async def screenshot(self, path: str | Path) -> Path:
        return await self.simctl.screenshot(path, self.udid)

    async def tap(self, x: float, y: float, duration: float | None = None) -> None:
        await self.idb.tap(x, y, duration=duration, udid=self.udid)

    async def swipe(self, start_x: float, start_y: float, end_x: float, end_y: float,
                    duration: float | None = None) -> None:
        await self.idb.swipe(start_x, start_y, end_x, end_y, duration=duration, udid=self.udid)

    async def type_text(self, text: str) -> None:
        await self.idb.type_text(text, udid=self.udid)

    async def describe_all(self) -> UITree:
        return await self.idb.describe_all(udid=self.udid)

    async def launch_app(self, bundle_id: str) -> None:
        await self.simctl.launch_app(bundle_id, self.udid, terminate_existing=True)

    async def terminate_app(self, bundle_id: str) -> None:
        await self.simctl.terminate_app(bundle_id, self.udid)

    async def open_url(self, url: str) -> None:
        await self.simctl.open_url(url, self.udid)

    async def set_location(self, latitude: float, longitude: float) -> None:
        await self.simctl.set_location(latitude, longitude, self.udid)

    async def clear_location(self) -> None:
        await self.simctl.clear_location(self.udid)
