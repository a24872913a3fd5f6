from __future__ import annotations

import asyncio

import pytest
from conftest import FakeMusicBackend, FeedbackRecorder, settle

from pymusicvol.config import MusicVolConfig
from pymusicvol.engine import VolumeEngine
from pymusicvol.gate import BackendGate
from pymusicvol.poller import ReconciliationPoller
from pymusicvol.state.store import EngineState


@pytest.mark.asyncio
async def test_poll_adopts_external_change(
    backend: FakeMusicBackend,
    feedback: FeedbackRecorder,
    config: MusicVolConfig,
) -> None:
    engine = VolumeEngine(backend, config=config, feedback_sink=feedback, state=EngineState(volume=50))
    engine.sessions.register("ctx")
    backend.volume = 72

    assert await engine.refresh() is True
    assert engine.state.volume == 72
    last = feedback.last_for("ctx")
    assert last is not None
    assert last.value.value == "72%"


@pytest.mark.asyncio
async def test_unchanged_reading_does_not_broadcast(
    backend: FakeMusicBackend,
    feedback: FeedbackRecorder,
    config: MusicVolConfig,
) -> None:
    engine = VolumeEngine(backend, config=config, feedback_sink=feedback, state=EngineState(volume=50))
    engine.sessions.register("ctx")

    assert await engine.refresh() is False
    assert feedback.sent == []


@pytest.mark.asyncio
async def test_poll_does_not_clobber_pending_write(backend: FakeMusicBackend, config: MusicVolConfig) -> None:
    backend.hold_writes = asyncio.Event()
    engine = VolumeEngine(backend, config=config, state=EngineState(volume=50))

    engine.set_volume(40)
    await settle()
    backend.volume = 0

    assert await engine.refresh() is False
    assert engine.state.volume == 40

    backend.hold_writes.set()
    await engine.gate.wait_idle()
    assert engine.state.volume == 40
    assert backend.volume == 40


@pytest.mark.asyncio
async def test_reading_issued_before_a_write_is_discarded(backend: FakeMusicBackend, config: MusicVolConfig) -> None:
    backend.volume = 10
    backend.hold_reads = asyncio.Event()
    engine = VolumeEngine(backend, config=config, state=EngineState(volume=50))

    poll = asyncio.create_task(engine.refresh())
    await settle()
    # The write starts and finishes while the (stale) read is still out.
    engine.set_volume(40)
    await engine.gate.wait_idle()
    backend.hold_reads.set()

    assert await poll is False
    assert engine.state.volume == 40


@pytest.mark.asyncio
async def test_failed_poll_leaves_state_untouched(backend: FakeMusicBackend, config: MusicVolConfig) -> None:
    backend.fail_reads = True
    engine = VolumeEngine(backend, config=config, state=EngineState(volume=64))

    assert await engine.refresh() is False
    assert engine.state.volume == 64


@pytest.mark.asyncio
async def test_poller_reads_immediately_then_periodically(backend: FakeMusicBackend) -> None:
    readings: list[int] = []

    def on_reading(volume: int, _write_started: bool) -> bool:
        readings.append(volume)
        return False

    poller = ReconciliationPoller(BackendGate(backend), on_reading, interval=0.02)
    poller.start()
    await settle()
    assert backend.reads == 1

    await asyncio.sleep(0.07)
    await poller.aclose()

    assert backend.reads >= 3
    assert poller.running is False
    reads = backend.reads
    await asyncio.sleep(0.05)
    assert backend.reads == reads


@pytest.mark.asyncio
async def test_start_is_idempotent(backend: FakeMusicBackend) -> None:
    poller = ReconciliationPoller(BackendGate(backend), lambda _v, _w: False, interval=30.0)

    poller.start()
    poller.start()
    await settle()

    assert backend.reads == 1
    await poller.aclose()


@pytest.mark.asyncio
async def test_poller_survives_backend_failures(backend: FakeMusicBackend) -> None:
    backend.fail_reads = True
    readings: list[int] = []
    poller = ReconciliationPoller(
        BackendGate(backend),
        lambda volume, _w: readings.append(volume) or False,
        interval=0.01,
    )

    poller.start()
    await asyncio.sleep(0.05)
    backend.fail_reads = False
    await asyncio.sleep(0.05)
    await poller.aclose()

    assert backend.reads >= 3
    assert readings
