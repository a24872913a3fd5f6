#!/usr/bin/env python3
"""Manual check of the Music app backend through the serialized gate.

Run on a Mac with the Music app open:

    python scripts/probe_backend.py read
    python scripts/probe_backend.py write 35
    python scripts/probe_backend.py burst 10 20 30

``burst`` queues every target in the same tick; only the last one should
reach the app.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pymusicvol import BackendGate, MusicVolConfig, OsascriptBackend  # noqa: E402
from pymusicvol.exceptions import BackendError  # noqa: E402


class _CountingBackend(OsascriptBackend):
    """Print every call that actually reaches ``osascript``."""

    async def write_volume(self, volume: int) -> None:
        started = time.monotonic()
        await super().write_volume(volume)
        print(f"  backend write {volume} took {time.monotonic() - started:.3f}s")


async def _run(args: argparse.Namespace) -> int:
    config = MusicVolConfig.from_env(app_name=args.app) if args.app else MusicVolConfig.from_env()
    gate = BackendGate(_CountingBackend(config), timeout=config.backend_timeout)

    if args.command == "read":
        try:
            print(f"volume: {await gate.request_read()}")
        except BackendError as exc:
            print(f"read failed: {exc}", file=sys.stderr)
            return 1
        return 0

    targets = [args.volume] if args.command == "write" else args.volumes
    for target in targets:
        gate.request_write(target)
    await gate.wait_idle()
    try:
        print(f"volume now: {await gate.request_read()}")
    except BackendError as exc:
        print(f"read-back failed: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--app", help="Application name (default: MUSICVOL_APP_NAME or Music)")
    parser.add_argument("--verbose", action="store_true", help="Log osascript invocations")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("read", help="Read the current volume")
    write = sub.add_parser("write", help="Set the volume once")
    write.add_argument("volume", type=int)
    burst = sub.add_parser("burst", help="Queue several targets in one tick")
    burst.add_argument("volumes", type=int, nargs="+")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
