"""Stream Deck host messages.

Inbound messages are validated into :class:`HostEvent`; outbound messages are
built by the helpers at the bottom of this module.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pymusicvol.feedback import Feedback


class HostEventType(StrEnum):
    WILL_APPEAR = "willAppear"
    WILL_DISAPPEAR = "willDisappear"
    DID_RECEIVE_SETTINGS = "didReceiveSettings"
    DIAL_ROTATE = "dialRotate"
    DIAL_DOWN = "dialDown"
    TOUCH_TAP = "touchTap"


class HostEvent(BaseModel):
    """One inbound message from the Stream Deck application.

    Events this plugin does not handle still validate; ``event`` is kept as
    the raw string so they can be logged and skipped.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    event: str
    context: str | None = None
    action: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_mapping(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def event_type(self) -> HostEventType | None:
        try:
            return HostEventType(self.event)
        except ValueError:
            return None

    @property
    def settings(self) -> dict[str, Any]:
        settings = self.payload.get("settings")
        return settings if isinstance(settings, dict) else {}

    @property
    def ticks(self) -> int:
        value = self.payload.get("ticks")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return int(value)


def parse_host_message(text: str | bytes) -> HostEvent | None:
    """Parse one WebSocket text frame; malformed messages yield ``None``."""
    try:
        return HostEvent.model_validate_json(text)
    except ValidationError:
        return None


def registration_message(register_event: str, plugin_uuid: str) -> dict[str, Any]:
    return {"event": register_event, "uuid": plugin_uuid}


def feedback_message(context: str, feedback: Feedback) -> dict[str, Any]:
    return {"event": "setFeedback", "context": context, "payload": feedback.to_payload()}


def log_message(message: str) -> dict[str, Any]:
    return {"event": "logMessage", "payload": {"message": message}}
