from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import pytest

from pymusicvol.config import MusicVolConfig
from pymusicvol.exceptions import BackendError
from pymusicvol.feedback import Feedback


@dataclass
class FakeMusicBackend:
    """Scripted backend: records calls, can hold calls open and fail on demand."""

    volume: int = 50
    reads: int = 0
    writes: list[int] = field(default_factory=list)
    fail_reads: bool = False
    fail_write_values: set[int] = field(default_factory=set)
    hold_reads: asyncio.Event | None = None
    hold_writes: asyncio.Event | None = None
    active_writes: int = 0
    max_concurrent_writes: int = 0

    async def read_volume(self) -> int:
        self.reads += 1
        # Value is sampled when the read starts, like a real backend round trip.
        value = self.volume
        if self.hold_reads is not None:
            await self.hold_reads.wait()
        if self.fail_reads:
            raise BackendError("read failed", operation="read")
        return value

    async def write_volume(self, volume: int) -> None:
        self.writes.append(volume)
        self.active_writes += 1
        self.max_concurrent_writes = max(self.max_concurrent_writes, self.active_writes)
        try:
            if self.hold_writes is not None:
                await self.hold_writes.wait()
            if volume in self.fail_write_values:
                raise BackendError(f"write of {volume} failed", operation="write")
            self.volume = volume
        finally:
            self.active_writes -= 1


@dataclass
class FeedbackRecorder:
    sent: list[tuple[str, Feedback]] = field(default_factory=list)

    def __call__(self, session_id: str, feedback: Feedback) -> None:
        self.sent.append((session_id, feedback))

    def last_for(self, session_id: str) -> Feedback | None:
        for sid, feedback in reversed(self.sent):
            if sid == session_id:
                return feedback
        return None


async def settle(rounds: int = 20) -> None:
    """Let ready tasks run without advancing any timer."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def backend() -> FakeMusicBackend:
    return FakeMusicBackend()


@pytest.fixture
def feedback() -> FeedbackRecorder:
    return FeedbackRecorder()


@pytest.fixture
def config() -> MusicVolConfig:
    # Long poll interval: only the immediate first read happens during a test.
    return MusicVolConfig(debounce_seconds=0.01, poll_interval=30.0, backend_timeout=1.0)
