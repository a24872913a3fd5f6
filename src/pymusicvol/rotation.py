"""Dial rotation coalescing.

A quick spin delivers dozens of ``dialRotate`` events.  Instead of turning
each into a backend write, ticks are summed for a short window and flushed
as one relative change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pymusicvol._timer import Timer

_logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.05


class RotationAccumulator:
    """Sum signed ticks and hand one ``delta`` to *on_flush* per window."""

    def __init__(
        self,
        on_flush: Callable[[int], None],
        *,
        window: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._on_flush = on_flush
        self._ticks = 0
        self._step_size = 1
        self._timer = Timer(window, self.flush)

    @property
    def pending_ticks(self) -> int:
        return self._ticks

    @property
    def step_size(self) -> int:
        """Step size of the most recent event; applies to the whole window."""
        return self._step_size

    @property
    def armed(self) -> bool:
        return self._timer.armed

    def accumulate(self, ticks: int, step_size: int) -> None:
        self._ticks += ticks
        self._step_size = step_size
        self._timer.arm()

    def flush(self) -> None:
        """Apply the accumulated ticks now; a zero total is dropped."""
        self._timer.disarm()
        if self._ticks == 0:
            return
        ticks = self._ticks
        self._ticks = 0
        delta = ticks * self._step_size
        _logger.debug("Flushing %d ticks x %d = %+d", ticks, self._step_size, delta)
        self._on_flush(delta)

    def cancel(self) -> None:
        """Forget pending ticks without applying them."""
        self._timer.disarm()
        self._ticks = 0
