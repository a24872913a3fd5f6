"""Custom exception hierarchy for pymusicvol."""

from __future__ import annotations


class MusicVolError(Exception):
    """Base exception for all pymusicvol errors."""


class ConfigError(MusicVolError):
    """Invalid or missing configuration."""


class BackendError(MusicVolError):
    """A volume read or write against the audio backend failed."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class BackendTimeoutError(BackendError):
    """The backend did not answer within the configured timeout.

    The gate abandons the call and treats it exactly like any other
    backend failure.
    """


class HostConnectionError(MusicVolError):
    """The Stream Deck host WebSocket could not be reached."""
