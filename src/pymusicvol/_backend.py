"""Audio backend driven through ``osascript`` (JavaScript for Automation)."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from typing import Protocol

from pymusicvol.config import MusicVolConfig
from pymusicvol.exceptions import BackendError
from pymusicvol.state.policy import clamp_volume

_logger = logging.getLogger(__name__)


class VolumeBackend(Protocol):
    """Structural backend interface used by :class:`pymusicvol.gate.BackendGate`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`OsascriptBackend`) concrete.  Both calls
    raise :class:`BackendError` on failure.
    """

    async def read_volume(self) -> int:
        ...

    async def write_volume(self, volume: int) -> None:
        ...


class OsascriptBackend:
    """Read and set an application's ``soundVolume`` with one process per call."""

    def __init__(self, config: MusicVolConfig | None = None) -> None:
        self._config = config or MusicVolConfig()

    def _read_script(self) -> str:
        return f'Application("{self._config.app_name}").soundVolume()'

    def _write_script(self, volume: int) -> str:
        return f'Application("{self._config.app_name}").soundVolume = {volume}'

    async def _run(self, script: str, *, operation: str) -> str:
        """Run one JXA snippet and return its stripped stdout.

        The child is killed if the caller abandons the call (for example on
        a gate timeout) so hung automation requests do not pile up.
        """
        _logger.debug("osascript %s: %s", operation, script)
        try:
            proc = await asyncio.create_subprocess_exec(
                self._config.osascript_path,
                "-l",
                "JavaScript",
                "-e",
                script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise BackendError(f"Could not start osascript: {exc}", operation=operation) from exc

        try:
            stdout, stderr = await proc.communicate()
        finally:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise BackendError(
                f"osascript {operation} exited with {proc.returncode}: {detail[:200]}",
                operation=operation,
            )
        return stdout.decode(errors="replace").strip()

    async def read_volume(self) -> int:
        text = await self._run(self._read_script(), operation="read")
        try:
            value = float(text)
        except ValueError as exc:
            raise BackendError(f"Unparsable volume from osascript: {text[:64]!r}", operation="read") from exc
        if not math.isfinite(value):
            raise BackendError(f"osascript returned non-finite volume {text!r}", operation="read")
        return clamp_volume(value)

    async def write_volume(self, volume: int) -> None:
        await self._run(self._write_script(clamp_volume(volume)), operation="write")
