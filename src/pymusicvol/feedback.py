"""Dial feedback rendering and broadcasting."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict

from pymusicvol.config import MusicVolConfig
from pymusicvol.sessions import SessionRegistry
from pymusicvol.state.store import EngineState

_logger = logging.getLogger(__name__)

FeedbackSink = Callable[[str, "Feedback"], None]
"""Delivers one rendered :class:`Feedback` to the dial identified by the first argument."""


class FeedbackText(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    opacity: float


class FeedbackIndicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: int
    opacity: float


class Feedback(BaseModel):
    """What one dial's touch strip shows: title, percentage text and indicator bar."""

    model_config = ConfigDict(frozen=True)

    title: str
    value: FeedbackText
    indicator: FeedbackIndicator
    muted: bool = False

    @property
    def percentage(self) -> int:
        return self.indicator.value

    def to_payload(self) -> dict[str, Any]:
        """Return the ``setFeedback`` payload layout."""
        return self.model_dump(exclude={"muted"})


def render_feedback(state: EngineState, config: MusicVolConfig | None = None) -> Feedback:
    """Render *state*; an unknown volume renders as 0%."""
    config = config or MusicVolConfig()
    volume = state.volume if state.volume is not None else 0
    muted = state.is_muted
    opacity = config.muted_opacity if muted else 1.0
    return Feedback(
        title=config.muted_title if muted else config.title,
        value=FeedbackText(value=f"{volume}%", opacity=opacity),
        indicator=FeedbackIndicator(value=volume, opacity=opacity),
        muted=muted,
    )


class FeedbackBroadcaster:
    """Push the current state to every registered dial."""

    def __init__(
        self,
        sessions: SessionRegistry,
        state: EngineState,
        sink: FeedbackSink,
        *,
        config: MusicVolConfig | None = None,
    ) -> None:
        self._sessions = sessions
        self._state = state
        self._sink = sink
        self._config = config or MusicVolConfig()

    def render(self) -> Feedback:
        return render_feedback(self._state, self._config)

    def push(self, session_id: str) -> None:
        """Send the current state to a single dial."""
        self._deliver(session_id, self.render())

    def broadcast(self) -> int:
        """Send the current state to every dial; return how many were addressed."""
        feedback = self.render()
        count = 0
        for session in self._sessions:
            self._deliver(session.session_id, feedback)
            count += 1
        return count

    def _deliver(self, session_id: str, feedback: Feedback) -> None:
        try:
            self._sink(session_id, feedback)
        except Exception:
            _logger.exception("Feedback delivery to %s failed", session_id)
