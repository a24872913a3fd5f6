from __future__ import annotations

import pytest
from conftest import FeedbackRecorder

from pymusicvol.config import MusicVolConfig
from pymusicvol.feedback import Feedback, FeedbackBroadcaster, render_feedback
from pymusicvol.sessions import SessionRegistry
from pymusicvol.state.store import EngineState, Muted


def test_render_unmuted() -> None:
    feedback = render_feedback(EngineState(volume=56))

    assert feedback.title == "Apple Music Vol"
    assert feedback.value.value == "56%"
    assert feedback.value.opacity == 1.0
    assert feedback.indicator.value == 56
    assert feedback.muted is False


def test_render_muted_is_dimmed_zero() -> None:
    feedback = render_feedback(EngineState(volume=0, mute=Muted(pre_mute_volume=56)))

    assert feedback.title == "MUTED"
    assert feedback.value.value == "0%"
    assert feedback.value.opacity == pytest.approx(0.4)
    assert feedback.indicator.opacity == pytest.approx(0.4)
    assert feedback.muted is True


def test_render_unknown_volume_as_zero() -> None:
    assert render_feedback(EngineState()).percentage == 0


def test_render_uses_configured_titles() -> None:
    config = MusicVolConfig(title="Music", muted_title="Shh", muted_opacity=0.25)
    feedback = render_feedback(EngineState(volume=0, mute=Muted(pre_mute_volume=9)), config)

    assert feedback.title == "Shh"
    assert feedback.indicator.opacity == pytest.approx(0.25)


def test_payload_layout() -> None:
    payload = render_feedback(EngineState(volume=12)).to_payload()

    assert payload == {
        "title": "Apple Music Vol",
        "value": {"value": "12%", "opacity": 1.0},
        "indicator": {"value": 12, "opacity": 1.0},
    }


def test_broadcast_reaches_every_session(feedback: FeedbackRecorder) -> None:
    registry = SessionRegistry()
    registry.register("a")
    registry.register("b")
    state = EngineState(volume=30)
    broadcaster = FeedbackBroadcaster(registry, state, feedback)

    assert broadcaster.broadcast() == 2
    assert sorted(sid for sid, _ in feedback.sent) == ["a", "b"]

    state.volume = 31
    broadcaster.push("a")
    last = feedback.last_for("a")
    assert last is not None
    assert last.value.value == "31%"


def test_failing_sink_does_not_stop_broadcast(caplog: pytest.LogCaptureFixture) -> None:
    registry = SessionRegistry()
    registry.register("bad")
    registry.register("good")
    delivered: list[str] = []

    def sink(session_id: str, _feedback: Feedback) -> None:
        if session_id == "bad":
            raise RuntimeError("socket gone")
        delivered.append(session_id)

    FeedbackBroadcaster(registry, EngineState(volume=1), sink).broadcast()

    assert delivered == ["good"]
    assert "Feedback delivery to bad failed" in caplog.text
