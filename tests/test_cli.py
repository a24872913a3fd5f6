from __future__ import annotations

import logging
from typing import Any

import pytest

from pymusicvol import cli
from pymusicvol._logging import HostLogHandler
from pymusicvol.config import MusicVolConfig, PluginRegistration
from pymusicvol.exceptions import HostConnectionError

ARGV = ["-port", "28196", "-pluginUUID", "ABC", "-registerEvent", "registerPlugin", "-info", "{}"]


def test_missing_registration_args_exit_with_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-port", "28196"])

    assert excinfo.value.code == 2
    assert "pymusicvol" in capsys.readouterr().err


def test_main_runs_plugin_with_parsed_registration(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    async def fake_run_plugin(registration: PluginRegistration, *, config: MusicVolConfig) -> None:
        seen["registration"] = registration
        seen["config"] = config

    monkeypatch.setattr(cli, "run_plugin", fake_run_plugin)
    monkeypatch.setenv("MUSICVOL_POLL_INTERVAL", "3")

    assert cli.main([*ARGV, "--log-level", "DEBUG"]) == 0
    assert seen["registration"].url == "ws://localhost:28196"
    assert seen["registration"].plugin_uuid == "ABC"
    assert seen["config"].poll_interval == 3.0


def test_connection_failure_returns_nonzero(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_run_plugin(registration: PluginRegistration, *, config: MusicVolConfig) -> None:
        raise HostConnectionError("refused")

    monkeypatch.setattr(cli, "run_plugin", fake_run_plugin)

    assert cli.main(ARGV) == 1


def test_log_handler_prefixes_and_respects_level() -> None:
    sent: list[dict[str, Any]] = []
    handler = HostLogHandler(sent.append, prefix="[Vol]")
    logger = logging.getLogger("pymusicvol.tests.loghandler")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.addHandler(handler)
    try:
        logger.debug("hidden")
        logger.info("Volume %d", 42)
    finally:
        logger.removeHandler(handler)

    assert sent == [{"event": "logMessage", "payload": {"message": "[Vol] Volume 42"}}]


def test_log_handler_failure_does_not_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    errors: list[logging.LogRecord] = []

    def broken(_message: Any) -> None:
        raise OSError("socket gone")

    handler = HostLogHandler(broken)
    monkeypatch.setattr(handler, "handleError", errors.append)
    handler.emit(logging.makeLogRecord({"msg": "hello", "levelno": logging.INFO}))

    assert len(errors) == 1
