"""Plugin configuration for pymusicvol."""

from __future__ import annotations

import argparse
import dataclasses
import json
import os
from collections.abc import Sequence
from typing import Any

from pymusicvol.exceptions import ConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(value.strip())
    except ValueError as exc:
        raise ConfigError(f"{env_key} must be a {kind.__name__}, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class MusicVolConfig:
    """Engine and plugin configuration.

    Parameters
    ----------
    debounce_seconds : float
        Window over which dial ticks are summed before a single write.
    poll_interval : float
        Seconds between reconciliation reads while at least one dial is visible.
    backend_timeout : float
        Upper bound for every backend read or write.  A call that takes longer
        is abandoned and treated as a failure.
    unknown_baseline : int
        Volume a rotation starts from when the current volume has never been
        read.
    default_step_size : int
        Step size used for dials without a valid ``stepSize`` setting.
    app_name : str
        Scripting name of the application whose volume is controlled.
    osascript_path : str
        Executable used to run the JavaScript for Automation snippets.
    action_uuid : str
        Stream Deck action identifier this plugin answers to.
    title : str
        Feedback title shown while unmuted.
    muted_title : str
        Feedback title shown while muted.
    muted_opacity : float
        Opacity of the value text and indicator while muted.
    log_prefix : str
        Prefix for diagnostic lines forwarded to the Stream Deck log.
    forward_logs : bool
        Forward INFO and above log records to the Stream Deck log.
    """

    debounce_seconds: float = 0.05
    poll_interval: float = 2.0
    backend_timeout: float = 5.0
    unknown_baseline: int = 50
    default_step_size: int = 1
    app_name: str = "Music"
    osascript_path: str = "osascript"
    action_uuid: str = "com.dbhagen.apple-music-volume.control"
    title: str = "Apple Music Vol"
    muted_title: str = "MUTED"
    muted_opacity: float = 0.4
    log_prefix: str = "[AppleMusicVol]"
    forward_logs: bool = True

    @classmethod
    def from_env(cls, **overrides: Any) -> MusicVolConfig:
        """Create configuration from ``MUSICVOL_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        ConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "MUSICVOL_APP_NAME": "app_name",
            "MUSICVOL_OSASCRIPT": "osascript_path",
            "MUSICVOL_ACTION_UUID": "action_uuid",
            "MUSICVOL_TITLE": "title",
            "MUSICVOL_MUTED_TITLE": "muted_title",
            "MUSICVOL_LOG_PREFIX": "log_prefix",
        }
        _ENV_NUMBER_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "MUSICVOL_DEBOUNCE_SECONDS": ("debounce_seconds", float),
            "MUSICVOL_POLL_INTERVAL": ("poll_interval", float),
            "MUSICVOL_BACKEND_TIMEOUT": ("backend_timeout", float),
            "MUSICVOL_UNKNOWN_BASELINE": ("unknown_baseline", int),
            "MUSICVOL_DEFAULT_STEP_SIZE": ("default_step_size", int),
            "MUSICVOL_MUTED_OPACITY": ("muted_opacity", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, kind) in _ENV_NUMBER_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, kind)

        if "forward_logs" not in overrides:
            config_kwargs["forward_logs"] = _env_bool(env.get("MUSICVOL_FORWARD_LOGS"), True)

        config_kwargs.update(overrides)

        config = cls(**config_kwargs)
        config.validate()
        return config

    def validate(self) -> None:
        """Reject values the engine cannot run with."""
        if self.debounce_seconds <= 0:
            raise ConfigError("debounce_seconds must be positive")
        if self.poll_interval <= 0:
            raise ConfigError("poll_interval must be positive")
        if self.backend_timeout <= 0:
            raise ConfigError("backend_timeout must be positive")
        if not 0 <= self.unknown_baseline <= 100:
            raise ConfigError("unknown_baseline must be within 0..100")
        if not 0.0 <= self.muted_opacity <= 1.0:
            raise ConfigError("muted_opacity must be within 0..1")


@dataclasses.dataclass(frozen=True)
class PluginRegistration:
    """Connection details the Stream Deck application passes on launch."""

    port: int
    plugin_uuid: str
    register_event: str
    info: dict[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def url(self) -> str:
        return f"ws://localhost:{self.port}"

    @classmethod
    def from_argv(cls, argv: Sequence[str]) -> PluginRegistration:
        """Parse ``-port P -pluginUUID U -registerEvent E -info JSON``.

        Unknown arguments are ignored; the host may add more in future
        versions.  Malformed ``-info`` JSON yields an empty dict.
        """
        parser = build_registration_parser()
        namespace, _unknown = parser.parse_known_args(list(argv))
        return cls.from_namespace(namespace)

    @classmethod
    def from_namespace(cls, namespace: argparse.Namespace) -> PluginRegistration:
        if namespace.port is None or not namespace.pluginUUID or not namespace.registerEvent:
            raise ConfigError("-port, -pluginUUID and -registerEvent are required")
        info: dict[str, Any] = {}
        if namespace.info:
            try:
                decoded = json.loads(namespace.info)
            except json.JSONDecodeError:
                decoded = {}
            if isinstance(decoded, dict):
                info = decoded
        return cls(
            port=namespace.port,
            plugin_uuid=namespace.pluginUUID,
            register_event=namespace.registerEvent,
            info=info,
        )


def build_registration_parser(parser: argparse.ArgumentParser | None = None) -> argparse.ArgumentParser:
    """Add the Stream Deck launch arguments to *parser* (or a new one)."""
    if parser is None:
        parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-port", type=int, default=None)
    parser.add_argument("-pluginUUID", default=None)
    parser.add_argument("-registerEvent", default=None)
    parser.add_argument("-info", default=None)
    return parser
