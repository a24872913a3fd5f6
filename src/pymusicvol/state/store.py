"""In-memory volume/mute state and its transitions.

This is the only component allowed to change what the dials display.  Every
transition returns the value (if any) that has to be written to the backend;
issuing that write and broadcasting the new state is the engine's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pymusicvol.state.policy import clamp_volume, should_absorb_reading

_logger = logging.getLogger(__name__)

DEFAULT_UNKNOWN_BASELINE = 50


@dataclass(frozen=True, slots=True)
class Unmuted:
    """Mute marker for the normal, audible state."""


@dataclass(frozen=True, slots=True)
class Muted:
    """Mute marker remembering the volume to restore on unmute."""

    pre_mute_volume: int


MuteStatus = Unmuted | Muted

UNMUTED = Unmuted()


@dataclass
class EngineState:
    """Current volume (``None`` until first known) and mute marker."""

    volume: int | None = None
    mute: MuteStatus = field(default=UNMUTED)

    @property
    def is_known(self) -> bool:
        return self.volume is not None

    @property
    def is_muted(self) -> bool:
        return isinstance(self.mute, Muted)

    @property
    def pre_mute_volume(self) -> int | None:
        if isinstance(self.mute, Muted):
            return self.mute.pre_mute_volume
        return None


class VolumeStore:
    """Owns the single :class:`EngineState` and implements its state machine.

    States are ``Unknown``, ``Known(volume, Unmuted)`` and
    ``Known(volume, Muted(pre))``.
    """

    def __init__(
        self,
        state: EngineState | None = None,
        *,
        unknown_baseline: int = DEFAULT_UNKNOWN_BASELINE,
    ) -> None:
        self._state = state if state is not None else EngineState()
        self._unknown_baseline = clamp_volume(unknown_baseline)

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_muted(self) -> bool:
        return self._state.is_muted

    def apply_target(self, volume: int | float) -> int:
        """Optimistically adopt *volume* and leave mute; return the write target."""
        target = clamp_volume(volume)
        self._state.volume = target
        self._state.mute = UNMUTED
        return target

    def apply_delta(self, delta: int) -> int:
        """Apply a relative change; a muted state is unmuted first.

        The rotation starts from the pre-mute volume so it takes effect
        against the value the user remembers, not against the silent 0.
        """
        state = self._state
        if isinstance(state.mute, Muted):
            state.volume = state.mute.pre_mute_volume
            state.mute = UNMUTED
        baseline = state.volume if state.volume is not None else self._unknown_baseline
        return self.apply_target(baseline + delta)

    def toggle_mute(self) -> int | None:
        """Flip mute; return the volume to write, or ``None`` for a no-op.

        Unmuted at 0 (or unknown) has nothing to mute and stays put.
        """
        state = self._state
        if isinstance(state.mute, Muted):
            restore = state.mute.pre_mute_volume
            state.mute = UNMUTED
            state.volume = restore
            _logger.debug("Unmuting, restoring volume %d", restore)
            return restore
        if state.volume is not None and state.volume > 0:
            state.mute = Muted(pre_mute_volume=state.volume)
            state.volume = 0
            _logger.debug("Muting, remembering volume %d", state.mute.pre_mute_volume)
            return 0
        return None

    def absorb_reading(
        self,
        polled: int,
        *,
        write_pending: bool,
        write_started_since_read: bool = False,
    ) -> bool:
        """Adopt a backend reading when policy allows; return whether state changed."""
        polled = clamp_volume(polled)
        state = self._state
        if not should_absorb_reading(
            current=state.volume,
            polled=polled,
            write_pending=write_pending,
            write_started_since_read=write_started_since_read,
        ):
            return False

        _logger.debug("Adopting external volume change %s -> %d", state.volume, polled)
        state.volume = polled
        # Someone unmuted outside of the dial.
        if isinstance(state.mute, Muted) and polled > 0:
            state.mute = UNMUTED
        return True
