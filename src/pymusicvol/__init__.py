"""pymusicvol - Coalescing Stream Deck dial controller for Apple Music volume."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pymusicvol")
except PackageNotFoundError:
    __version__ = "0+local"
from pymusicvol._backend import OsascriptBackend, VolumeBackend
from pymusicvol.config import MusicVolConfig, PluginRegistration
from pymusicvol.engine import VolumeEngine
from pymusicvol.exceptions import (
    BackendError,
    BackendTimeoutError,
    ConfigError,
    HostConnectionError,
    MusicVolError,
)
from pymusicvol.feedback import Feedback, FeedbackBroadcaster, render_feedback
from pymusicvol.gate import BackendGate
from pymusicvol.plugin import MusicVolPlugin, run_plugin
from pymusicvol.poller import ReconciliationPoller
from pymusicvol.rotation import RotationAccumulator
from pymusicvol.sessions import DialSettings, Session, SessionRegistry
from pymusicvol.state.store import EngineState, Muted, Unmuted, VolumeStore

__all__ = [
    "__version__",
    "BackendError",
    "BackendGate",
    "BackendTimeoutError",
    "ConfigError",
    "DialSettings",
    "EngineState",
    "Feedback",
    "FeedbackBroadcaster",
    "HostConnectionError",
    "MusicVolConfig",
    "MusicVolError",
    "MusicVolPlugin",
    "Muted",
    "OsascriptBackend",
    "PluginRegistration",
    "ReconciliationPoller",
    "RotationAccumulator",
    "Session",
    "SessionRegistry",
    "Unmuted",
    "VolumeBackend",
    "VolumeEngine",
    "VolumeStore",
    "render_feedback",
    "run_plugin",
]
