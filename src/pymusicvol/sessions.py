"""Active dial sessions and their per-dial settings."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pymusicvol.exceptions import ConfigError

_logger = logging.getLogger(__name__)

MIN_STEP_SIZE = 1
MAX_STEP_SIZE = 25
DEFAULT_STEP_SIZE = 1


def parse_step_size(value: Any) -> int:
    """Strictly parse a ``stepSize`` setting.

    Accepts ints and numeric strings within ``1..25``.

    Raises
    ------
    ConfigError
        For missing, non-numeric or out-of-range values.
    """
    if value is None or isinstance(value, bool):
        raise ConfigError(f"stepSize must be a number, got {value!r}")
    try:
        step = int(str(value).strip())
    except ValueError:
        try:
            step = int(float(str(value).strip()))
        except (ValueError, OverflowError) as exc:
            raise ConfigError(f"stepSize must be a number, got {value!r}") from exc
    if not MIN_STEP_SIZE <= step <= MAX_STEP_SIZE:
        raise ConfigError(f"stepSize must be within {MIN_STEP_SIZE}..{MAX_STEP_SIZE}, got {step}")
    return step


def coerce_step_size(value: Any, default: int = DEFAULT_STEP_SIZE) -> int:
    """Like :func:`parse_step_size` but falls back to *default* instead of raising."""
    try:
        return parse_step_size(value)
    except ConfigError as exc:
        if value is not None:
            _logger.debug("Ignoring invalid stepSize: %s", exc)
        return default


class DialSettings(BaseModel):
    """Settings the property inspector stores for one dial."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    step_size: int = Field(default=DEFAULT_STEP_SIZE, alias="stepSize")

    @field_validator("step_size", mode="before")
    @classmethod
    def _coerce_step_size(cls, value: Any) -> int:
        return coerce_step_size(value)

    @classmethod
    def from_payload(cls, settings: Mapping[str, Any] | None) -> DialSettings:
        """Build settings from a raw ``payload.settings`` mapping."""
        if not isinstance(settings, Mapping):
            return cls()
        return cls.model_validate(dict(settings))


class Session(BaseModel):
    """One visible dial, keyed by the host's context identifier."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    session_id: str
    settings: DialSettings = Field(default_factory=DialSettings)

    @property
    def step_size(self) -> int:
        return self.settings.step_size


class SessionRegistry:
    """Track which dials are visible.

    The registry only records membership; the engine reacts to the
    empty/non-empty transitions reported by :meth:`register` and
    :meth:`unregister`.
    """

    def __init__(self, *, default_step_size: int = DEFAULT_STEP_SIZE) -> None:
        self._sessions: dict[str, Session] = {}
        self._default_step_size = default_step_size

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def register(self, session_id: str, settings: DialSettings | None = None) -> bool:
        """Add or refresh a session; return ``True`` on the empty to non-empty transition."""
        was_empty = not self._sessions
        self._sessions[session_id] = Session(session_id=session_id, settings=settings or DialSettings())
        return was_empty

    def unregister(self, session_id: str) -> bool:
        """Remove a session; return ``True`` if that left the registry empty."""
        if self._sessions.pop(session_id, None) is None:
            return False
        return not self._sessions

    def update_config(self, session_id: str, settings: DialSettings) -> bool:
        """Replace the stored settings of a known session; unknown ids are ignored."""
        session = self._sessions.get(session_id)
        if session is None:
            return False
        self._sessions[session_id] = session.model_copy(update={"settings": settings})
        return True

    def step_size_for(self, session_id: str | None) -> int:
        session = self._sessions.get(session_id) if session_id is not None else None
        if session is None:
            return self._default_step_size
        return session.step_size
