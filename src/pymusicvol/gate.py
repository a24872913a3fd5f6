"""Backend gate: the only path to the audio backend.

- Reads are single-flight; concurrent callers share one backend call
- Writes are coalesced; only the newest queued target is delivered
- At most one write is in flight at any time
- Every call is bounded by a timeout; failures are contained here
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from pymusicvol._backend import VolumeBackend
from pymusicvol.exceptions import BackendError, BackendTimeoutError
from pymusicvol.state.policy import clamp_volume

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackendGate:
    """Serialize reads and writes against a backend with no concurrency guarantees."""

    def __init__(self, backend: VolumeBackend, *, timeout: float = 5.0) -> None:
        self._backend = backend
        self._timeout = timeout
        self._pending_read: asyncio.Task[int] | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._queued: int | None = None
        self._write_in_flight = False
        self._write_generation = 0

    @property
    def write_pending(self) -> bool:
        """Whether a write is in flight or queued."""
        return self._write_in_flight or self._queued is not None or self._drain_task is not None

    @property
    def write_generation(self) -> int:
        """Number of write requests accepted so far."""
        return self._write_generation

    @property
    def queued_target(self) -> int | None:
        return self._queued

    async def _call(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except TimeoutError as exc:
            raise BackendTimeoutError(
                f"Backend {operation} timed out after {self._timeout:.1f}s",
                operation=operation,
            ) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def request_read(self) -> int:
        """Return the backend volume, sharing any read already in flight.

        Raises
        ------
        BackendError
            If the shared read failed or timed out.
        """
        task = self._pending_read
        if task is None:
            task = asyncio.get_running_loop().create_task(self._read_once(), name="musicvol_read")
            self._pending_read = task
        else:
            _logger.debug("Joining in-flight backend read")
        # One caller giving up must not cancel the read for the others.
        return await asyncio.shield(task)

    async def _read_once(self) -> int:
        try:
            volume = await self._call("read", self._backend.read_volume())
            return clamp_volume(volume)
        finally:
            if self._pending_read is asyncio.current_task():
                self._pending_read = None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def request_write(self, target: int) -> None:
        """Queue *target* as the next value to deliver and make sure a drain runs.

        Returns immediately.  A target still waiting in the queue is replaced,
        so intermediate dial positions are never delivered on their own.
        """
        target = clamp_volume(target)
        if self._queued is not None:
            _logger.debug("Superseding queued volume %d with %d", self._queued, target)
        self._queued = target
        self._write_generation += 1
        if self._drain_task is None:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain(), name="musicvol_write")

    async def _drain(self) -> None:
        """Deliver queued targets one at a time until the queue is empty."""
        try:
            while self._queued is not None:
                target = self._queued
                self._queued = None
                self._write_in_flight = True
                try:
                    await self._call("write", self._backend.write_volume(target))
                    _logger.debug("Backend volume set to %d", target)
                except BackendError as exc:
                    # No retry: a newer target, if any, supersedes this one.
                    _logger.warning("Setting volume to %d failed: %s", target, exc)
                finally:
                    if self._drain_task is asyncio.current_task():
                        self._write_in_flight = False
        finally:
            # After cancel() a newer drain may own these fields.
            if self._drain_task is asyncio.current_task():
                self._drain_task = None

    async def wait_idle(self) -> None:
        """Wait until no write is in flight or queued."""
        while self._drain_task is not None:
            await asyncio.shield(self._drain_task)

    def cancel(self) -> None:
        """Drop the queued target and abandon any in-flight backend call."""
        self._queued = None
        for task in (self._drain_task, self._pending_read):
            if task is not None and not task.done():
                task.cancel()
        # A task cancelled before its first step never runs its own cleanup.
        self._drain_task = None
        self._pending_read = None
        self._write_in_flight = False
