"""Command-line entry point launched by the Stream Deck application."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from pymusicvol.config import MusicVolConfig, PluginRegistration, build_registration_parser
from pymusicvol.exceptions import ConfigError, HostConnectionError
from pymusicvol.plugin import run_plugin


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pymusicvol",
        description="Stream Deck dial plugin controlling the Music app volume.",
    )
    build_registration_parser(parser)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr and the Stream Deck log.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args, _unknown = parser.parse_known_args(list(sys.argv[1:] if argv is None else argv))

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        registration = PluginRegistration.from_namespace(args)
        config = MusicVolConfig.from_env()
    except ConfigError as exc:
        parser.error(str(exc))

    try:
        asyncio.run(run_plugin(registration, config=config))
    except HostConnectionError as exc:
        print(f"pymusicvol: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0
