"""idb wrapper — touch input, text entry and accessibility tree queries."""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any

from snapdrive.errors import DeviceError
from snapdrive.models.element import AccessibilityElement, Frame, UITree

from .command_executor import CommandExecutor

logger = logging.getLogger(__name__)

_AX_FRAME_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _first_str(raw: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        val = raw.get(key)
        if isinstance(val, str) and val:
            return val
    return None


def _parse_frame(raw: dict[str, Any]) -> Frame | None:
    frame = raw.get("frame")
    if isinstance(frame, dict):
        try:
            return Frame(x=frame["x"], y=frame["y"], width=frame["width"], height=frame["height"])
        except (KeyError, ValueError):
            return None

    # AXFrame strings look like "{{123.0, 456.0}, {100.0, 50.0}}"
    ax_frame = raw.get("AXFrame")
    if isinstance(ax_frame, str):
        nums = _AX_FRAME_NUMBER_RE.findall(ax_frame)
        if len(nums) == 4:
            x, y, w, h = (float(n) for n in nums)
            return Frame(x=x, y=y, width=w, height=h)
    return None


def normalize_element(raw: Any) -> AccessibilityElement | None:
    """Map one idb element dict onto AccessibilityElement, or None if unusable."""
    if not isinstance(raw, dict):
        return None
    frame = _parse_frame(raw)
    if frame is None or frame.width <= 0 or frame.height <= 0 or frame.x < 0 or frame.y < 0:
        return None

    enabled = True
    for key in ("enabled", "AXEnabled"):
        if isinstance(raw.get(key), bool):
            enabled = raw[key]
            break

    traits: list[str] = []
    for key in ("traits", "AXTraits"):
        if isinstance(raw.get(key), list):
            traits = [t for t in raw[key] if isinstance(t, str)]
            break

    return AccessibilityElement(
        label=_first_str(raw, ("AXLabel", "label", "title", "name")),
        value=_first_str(raw, ("AXValue", "value")),
        type=_first_str(raw, ("type", "AXType", "element_type")),
        role=_first_str(raw, ("role", "AXRole")),
        role_description=_first_str(raw, ("role_description", "AXRoleDescription")),
        identifier=_first_str(raw, ("AXUniqueId", "identifier", "accessibilityIdentifier")),
        frame=frame,
        enabled=enabled,
        traits=traits,
    )


def parse_describe_output(output: str) -> list[AccessibilityElement]:
    """Parse ``idb ui describe-all`` output (JSON array or JSON lines)."""
    text = output.strip()
    if not text:
        return []

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        elements = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                el = normalize_element(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("Failed to parse line: %s", line[:50])
                continue
            if el:
                elements.append(el)
        return elements

    items = parsed if isinstance(parsed, list) else [parsed]
    return [el for el in (normalize_element(item) for item in items) if el]


class IDBClient:
    def __init__(
        self,
        executor: CommandExecutor | None = None,
        default_udid: str | None = None,
        timeout_ms: int = 30000,
    ):
        self.executor = executor or CommandExecutor()
        self.default_udid = default_udid
        self.timeout_ms = timeout_ms
        self._connected: set[str] = set()

    async def _find_booted_udid(self) -> str | None:
        result = await self.executor.execute(
            "xcrun", ["simctl", "list", "devices", "booted", "-j"], timeout_ms=10000)
        if result.exit_code != 0:
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            return None
        for entries in (data.get("devices") or {}).values():
            for entry in entries:
                if entry.get("state") == "Booted" and entry.get("udid"):
                    return entry["udid"]
        return None

    async def _ensure_connected(self, udid: str | None) -> str:
        target = udid or self.default_udid or await self._find_booted_udid()
        if not target:
            raise DeviceError("No simulator UDID specified and no booted simulator found")

        if target not in self._connected:
            logger.debug("Connecting idb to device: %s", target)
            result = await self.executor.execute("idb", ["connect", target], timeout_ms=10000)
            if result.exit_code != 0:
                raise DeviceError(f"Failed to connect idb to device {target}: {result.stderr.strip()}")
            self._connected.add(target)
            logger.info("Connected idb to device: %s", target)
        return target

    async def _ui(self, args: list[str], what: str, udid: str | None) -> str:
        await self._ensure_connected(udid)
        result = await self.executor.execute("idb", ["ui", *args], timeout_ms=self.timeout_ms)
        if result.exit_code != 0:
            raise DeviceError(f"idb {what} failed: {result.stderr.strip()}")
        return result.stdout

    async def tap(self, x: float, y: float, duration: float | None = None, udid: str | None = None) -> None:
        args = ["tap", str(round(x)), str(round(y))]
        if duration and duration > 0:
            args += ["--duration", str(duration)]
        await self._ui(args, "tap", udid)
        logger.debug("Tapped at (%s, %s)", x, y)

    async def swipe(
        self,
        start_x: float, start_y: float, end_x: float, end_y: float,
        duration: float | None = None, delta: int | None = None, udid: str | None = None,
    ) -> None:
        args = ["swipe", *(str(round(v)) for v in (start_x, start_y, end_x, end_y))]
        if delta:
            args += ["--delta", str(delta)]
        if duration:
            args += ["--duration", str(duration)]
        await self._ui(args, "swipe", udid)
        logger.debug("Swiped from (%s, %s) to (%s, %s)", start_x, start_y, end_x, end_y)

    async def type_text(self, text: str, udid: str | None = None) -> None:
        await self._ui(["text", text], "text", udid)
        logger.debug("Typed text: %r", text[:20] + ("..." if len(text) > 20 else ""))

    async def describe_all(self, udid: str | None = None) -> UITree:
        stdout = await self._ui(["describe-all"], "describe-all", udid)
        return UITree(
            elements=parse_describe_output(stdout),
            timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        )
