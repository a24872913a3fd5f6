"""Forward log records to the Stream Deck plugin log."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pymusicvol.events import log_message


class HostLogHandler(logging.Handler):
    """Logging handler that emits ``logMessage`` events through *send*.

    *send* must not block; :meth:`pymusicvol._host.HostConnection.send`
    only queues the message.
    """

    def __init__(
        self,
        send: Callable[[Mapping[str, Any]], Any],
        *,
        prefix: str = "[AppleMusicVol]",
        level: int = logging.INFO,
    ) -> None:
        super().__init__(level)
        self._send = send
        self._prefix = prefix
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            self._send(log_message(f"{self._prefix} {message}" if self._prefix else message))
        except Exception:
            self.handleError(record)
