"""One-shot timer bound to the running event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable


class Timer:
    """Call *callback* once, *delay* seconds after :meth:`arm`.

    Arming an armed timer keeps the original deadline; the window is fixed
    from the first event, not extended by later ones.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self._delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> bool:
        """Schedule the callback; return ``False`` if it already was."""
        if self._handle is not None:
            return False
        self._handle = asyncio.get_running_loop().call_later(self._delay, self._fire)
        return True

    def disarm(self) -> None:
        handle = self._handle
        self._handle = None
        if handle is not None:
            handle.cancel()

    def _fire(self) -> None:
        self._handle = None
        self._callback()
