"""WebSocket connection to the Stream Deck application."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

import aiohttp

from pymusicvol.config import PluginRegistration
from pymusicvol.events import HostEvent, parse_host_message, registration_message
from pymusicvol.exceptions import HostConnectionError

_logger = logging.getLogger(__name__)


class HostConnection:
    """Registered plugin socket with a non-blocking outbound queue.

    Usage::

        async with HostConnection(registration) as host:
            host.send({"event": "logMessage", "payload": {"message": "hi"}})
            async for event in host.events():
                ...
    """

    def __init__(
        self,
        registration: PluginRegistration,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._registration = registration
        self._external_session = session is not None
        self._http_session = session
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self._writer: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HostConnection:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open the socket and send the registration message first."""
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        url = self._registration.url
        try:
            self._ws = await self._http_session.ws_connect(url)
        except aiohttp.ClientError as exc:
            if not self._external_session:
                await self._http_session.close()
                self._http_session = None
            raise HostConnectionError(f"Could not connect to Stream Deck at {url}: {exc}") from exc

        await self._ws.send_str(
            json.dumps(registration_message(self._registration.register_event, self._registration.plugin_uuid))
        )
        _logger.debug("Registered plugin %s at %s", self._registration.plugin_uuid, url)
        self._writer = asyncio.get_running_loop().create_task(self._run_writer(), name="musicvol_host_writer")

    async def close(self) -> None:
        if self._writer is not None:
            self._writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer
            self._writer = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Traffic
    # ------------------------------------------------------------------

    def send(self, message: Mapping[str, Any]) -> bool:
        """Queue *message* for sending; dropped (``False``) while the socket is not open."""
        if not self.is_open:
            return False
        self._outbox.put_nowait(json.dumps(message, separators=(",", ":")))
        return True

    async def _run_writer(self) -> None:
        while True:
            text = await self._outbox.get()
            ws = self._ws
            if ws is None or ws.closed:
                continue
            try:
                await ws.send_str(text)
            except (ConnectionError, aiohttp.ClientError) as exc:
                _logger.debug("Dropping outbound message, socket failed: %s", exc)

    async def events(self) -> AsyncIterator[HostEvent]:
        """Yield parsed inbound events until the host closes the socket."""
        ws = self._ws
        if ws is None:
            raise HostConnectionError("Not connected; use 'async with HostConnection(...)'")
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                event = parse_host_message(msg.data)
                if event is None:
                    _logger.debug("Ignoring malformed host message: %.200s", msg.data)
                    continue
                yield event
            elif msg.type == aiohttp.WSMsgType.ERROR:
                _logger.warning("Stream Deck socket error: %s", ws.exception())
                break
        _logger.info("Stream Deck closed the connection")
