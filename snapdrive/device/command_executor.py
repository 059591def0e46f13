"""Subprocess runner for simulator tooling (xcrun, idb)."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int
    timed_out: bool = False


class CommandExecutor:
    """Runs a command to completion and captures its output.

    Never raises for a failing command; callers inspect ``exit_code``.
    """

    async def execute(
        self,
        command: str,
        args: list[str],
        timeout_ms: int = 30000,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        full_command = " ".join([command, *args])
        logger.debug("Executing: %s", full_command)

        try:
            proc = await asyncio.create_subprocess_exec(
                command, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **env} if env else None,
            )
        except OSError as e:
            logger.error("Command error: %s (%s)", full_command, e)
            return CommandResult(stdout="", stderr=f"Error: {e}", exit_code=-1)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Command timed out after %dms: %s", timeout_ms, full_command)
            return CommandResult(stdout="", stderr="", exit_code=-1, timed_out=True)

        result = CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else -1,
        )
        if result.exit_code != 0:
            logger.debug("Command failed with exit code %d: %s | %s",
                         result.exit_code, full_command, result.stderr[:200])
        return result
