"""Volume coordination engine.

Owns the single :class:`~pymusicvol.state.store.EngineState` and wires the
components around it:

- dial ticks are coalesced by the rotation accumulator
- every state change is optimistic, then written through the gate
- the poller reconciles external changes, but never over a pending write
- every change is broadcast to all visible dials
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pymusicvol._backend import VolumeBackend
from pymusicvol.config import MusicVolConfig
from pymusicvol.feedback import Feedback, FeedbackBroadcaster, FeedbackSink
from pymusicvol.gate import BackendGate
from pymusicvol.poller import ReconciliationPoller
from pymusicvol.rotation import RotationAccumulator
from pymusicvol.sessions import DialSettings, SessionRegistry
from pymusicvol.state.store import EngineState, VolumeStore

_logger = logging.getLogger(__name__)


def _discard_feedback(_session_id: str, _feedback: Feedback) -> None:
    return None


class VolumeEngine:
    """Turn dial events into a minimal, serialized sequence of backend writes.

    Usage::

        async with VolumeEngine(OsascriptBackend(), feedback_sink=send) as engine:
            engine.session_appeared("ctx-1", {"stepSize": 2})
            engine.rotate("ctx-1", 3)
    """

    def __init__(
        self,
        backend: VolumeBackend,
        *,
        config: MusicVolConfig | None = None,
        feedback_sink: FeedbackSink | None = None,
        state: EngineState | None = None,
    ) -> None:
        self._config = config or MusicVolConfig()
        self.state = state if state is not None else EngineState()
        self.store = VolumeStore(self.state, unknown_baseline=self._config.unknown_baseline)
        self.gate = BackendGate(backend, timeout=self._config.backend_timeout)
        self.sessions = SessionRegistry(default_step_size=self._config.default_step_size)
        self.broadcaster = FeedbackBroadcaster(
            self.sessions,
            self.state,
            feedback_sink or _discard_feedback,
            config=self._config,
        )
        self.rotation = RotationAccumulator(self._apply_rotation, window=self._config.debounce_seconds)
        self.poller = ReconciliationPoller(self.gate, self.absorb_reading, interval=self._config.poll_interval)

    @property
    def config(self) -> MusicVolConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> VolumeEngine:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self, *, flush_timeout: float | None = None) -> None:
        """Stop polling, apply pending ticks and wait (bounded) for the last write."""
        await self.poller.aclose()
        self.rotation.flush()
        timeout = flush_timeout if flush_timeout is not None else self._config.backend_timeout
        try:
            await asyncio.wait_for(self.gate.wait_idle(), timeout=timeout)
        except TimeoutError:
            _logger.warning("Final volume write did not finish within %.1fs", timeout)
            self.gate.cancel()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def session_appeared(self, session_id: str, settings: DialSettings | dict[str, Any] | None = None) -> None:
        """Register a visible dial; start polling on the first one."""
        if not isinstance(settings, DialSettings):
            settings = DialSettings.from_payload(settings)
        first = self.sessions.register(session_id, settings)
        _logger.debug("Dial %s appeared (step %d)", session_id, settings.step_size)
        if first:
            self.poller.start()
        # Do not leave a fresh dial blank while the first poll is running.
        if self.state.is_known:
            self.broadcaster.push(session_id)

    def session_disappeared(self, session_id: str) -> None:
        """Forget a dial; stop polling once none is visible."""
        if self.sessions.unregister(session_id):
            self.poller.stop()
        _logger.debug("Dial %s disappeared (%d remaining)", session_id, len(self.sessions))

    def settings_changed(self, session_id: str, settings: DialSettings | dict[str, Any] | None) -> None:
        """Refresh a dial's stored settings; never writes or broadcasts."""
        if not isinstance(settings, DialSettings):
            settings = DialSettings.from_payload(settings)
        self.sessions.update_config(session_id, settings)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def rotate(self, session_id: str | None, ticks: int) -> None:
        """Accumulate dial ticks using the dial's configured step size."""
        self.rotation.accumulate(ticks, self.sessions.step_size_for(session_id))

    def toggle_mute(self) -> None:
        target = self.store.toggle_mute()
        if target is None:
            _logger.debug("Mute toggle ignored: nothing to mute")
            return
        self._commit(target)

    def set_volume(self, volume: int) -> None:
        """Set an absolute volume (leaves mute)."""
        self._commit(self.store.apply_target(volume))

    def _apply_rotation(self, delta: int) -> None:
        self._commit(self.store.apply_delta(delta))

    def _commit(self, target: int) -> None:
        self.gate.request_write(target)
        self.broadcaster.broadcast()

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def absorb_reading(self, volume: int, write_started_since_read: bool = False) -> bool:
        """Adopt a backend reading unless a write is outstanding; broadcast on change."""
        changed = self.store.absorb_reading(
            volume,
            write_pending=self.gate.write_pending,
            write_started_since_read=write_started_since_read,
        )
        if changed:
            self.broadcaster.broadcast()
        return changed

    async def refresh(self) -> bool:
        """Run one reconciliation read now."""
        return await self.poller.poll_once()
