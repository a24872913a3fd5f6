"""Reconciliation poller: catch volume changes made outside the dial."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from pymusicvol.exceptions import BackendError
from pymusicvol.gate import BackendGate

_logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class ReconciliationPoller:
    """Read the backend every *interval* seconds while started.

    *on_reading* receives the volume and whether a write was requested while
    the read was in flight; it returns ``True`` when the reading changed the
    displayed state.
    """

    def __init__(
        self,
        gate: BackendGate,
        on_reading: Callable[[int, bool], bool],
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._gate = gate
        self._on_reading = on_reading
        self._interval = max(0.01, interval)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling with an immediate first read; no-op if running."""
        if self.running:
            return
        _logger.debug("Starting volume poll every %.1fs", self._interval)
        self._task = asyncio.get_running_loop().create_task(self._run(), name="musicvol_poll")

    def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            _logger.debug("Stopping volume poll")
            task.cancel()

    async def aclose(self) -> None:
        """Stop and wait for the poll task to finish."""
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def poll_once(self) -> bool:
        """Perform one reconciliation read; return whether state changed."""
        generation = self._gate.write_generation
        try:
            volume = await self._gate.request_read()
        except BackendError as exc:
            # Stale-but-valid beats unknown: keep the current state.
            _logger.debug("Volume poll failed: %s", exc)
            return False
        write_started = self._gate.write_generation != generation
        return self._on_reading(volume, write_started)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                _logger.exception("Unexpected error during volume poll")
            await asyncio.sleep(self._interval)
