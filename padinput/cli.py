"""Command that prints gamepad events as they arrive."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from typing import Optional, Sequence

from padinput.codes import INPUT_DIR_PATH
from padinput.context import Gilrs
from padinput.types import GilrsError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _non_negative_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {text}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text}")
    return value


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an integer: {text}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {text}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="padinput", description="Print gamepad events as they arrive.")
    parser.add_argument("--input-dir", default=str(INPUT_DIR_PATH), help="directory of device nodes")
    parser.add_argument("--no-watch", action="store_true", help="do not watch for new devices")
    parser.add_argument(
        "--timeout",
        type=_non_negative_float,
        default=None,
        help="stop after this many seconds without an event (default: wait forever)",
    )
    parser.add_argument("--count", type=_non_negative_int, default=None, help="stop after this many events")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVELS,
        default=os.environ.get("PADINPUT_LOG", "WARNING").upper(),
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print every gamepad event; returns the exit status."""
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level)

    try:
        ctx = Gilrs(args.input_dir, watch=not args.no_watch)
    except GilrsError as exc:
        print(f"padinput: {exc}", file=sys.stderr)
        return 1

    with ctx:
        seen = 0
        idle_since = time.monotonic()
        try:
            while args.count is None or seen < args.count:
                wait = None
                if args.timeout is not None:
                    wait = max(0.0, args.timeout - (time.monotonic() - idle_since))
                event = ctx.next_event_blocking(wait)
                if event is None:
                    if args.timeout is not None and time.monotonic() - idle_since >= args.timeout:
                        break
                    continue
                print(event, flush=True)
                seen += 1
                idle_since = time.monotonic()
        except KeyboardInterrupt:
            return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())