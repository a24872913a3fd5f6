"""Stream Deck plugin runtime: host socket, engine and event dispatch."""

from __future__ import annotations

import logging

from pymusicvol._backend import OsascriptBackend, VolumeBackend
from pymusicvol._host import HostConnection
from pymusicvol._logging import HostLogHandler
from pymusicvol.config import MusicVolConfig, PluginRegistration
from pymusicvol.engine import VolumeEngine
from pymusicvol.events import HostEvent, HostEventType, feedback_message
from pymusicvol.feedback import Feedback

_logger = logging.getLogger(__name__)


class MusicVolPlugin:
    """Dispatch host events to a :class:`VolumeEngine` and send feedback back."""

    def __init__(
        self,
        host: HostConnection,
        *,
        config: MusicVolConfig | None = None,
        backend: VolumeBackend | None = None,
    ) -> None:
        self._config = config or MusicVolConfig()
        self._host = host
        self.engine = VolumeEngine(
            backend or OsascriptBackend(self._config),
            config=self._config,
            feedback_sink=self._send_feedback,
        )

    def _send_feedback(self, context: str, feedback: Feedback) -> None:
        self._host.send(feedback_message(context, feedback))

    def handle_event(self, event: HostEvent) -> None:
        """Apply one host event to the engine; events for other actions are ignored."""
        event_type = event.event_type
        if event_type is None:
            _logger.debug("Ignoring unhandled host event %s", event.event)
            return

        # The host can only tell us a dial disappeared once; honour it for any action.
        if event_type is HostEventType.WILL_DISAPPEAR:
            if event.context is not None:
                self.engine.session_disappeared(event.context)
            return

        if event.action != self._config.action_uuid or event.context is None:
            return

        if event_type is HostEventType.WILL_APPEAR:
            self.engine.session_appeared(event.context, event.settings)
        elif event_type is HostEventType.DID_RECEIVE_SETTINGS:
            self.engine.settings_changed(event.context, event.settings)
        elif event_type is HostEventType.DIAL_ROTATE:
            self.engine.rotate(event.context, event.ticks)
        elif event_type in (HostEventType.DIAL_DOWN, HostEventType.TOUCH_TAP):
            self.engine.toggle_mute()

    async def run(self) -> None:
        """Dispatch events until the host closes the socket, then shut down cleanly."""
        try:
            async for event in self._host.events():
                try:
                    self.handle_event(event)
                except Exception:
                    _logger.exception("Error handling host event %s", event.event)
        finally:
            await self.engine.close()


async def run_plugin(
    registration: PluginRegistration,
    *,
    config: MusicVolConfig | None = None,
    backend: VolumeBackend | None = None,
) -> None:
    """Connect to the Stream Deck application and serve until it disconnects."""
    config = config or MusicVolConfig()
    root = logging.getLogger("pymusicvol")
    async with HostConnection(registration) as host:
        handler: HostLogHandler | None = None
        if config.forward_logs:
            handler = HostLogHandler(host.send, prefix=config.log_prefix)
            root.addHandler(handler)
        try:
            plugin = MusicVolPlugin(host, config=config, backend=backend)
            _logger.info("Plugin registered")
            await plugin.run()
        finally:
            if handler is not None:
                root.removeHandler(handler)
