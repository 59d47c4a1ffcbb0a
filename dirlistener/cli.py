"""Command line entry point of the directory listener."""

from __future__ import annotations

import argparse
import os
import sys

from .monitor import Listener, WatchdogBackend
from .rules import RuleError, Watch, read_config

LISTENER_RULES = "/etc/listener.conf"


class _UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise _UsageError(message)


def _usage(prog: str) -> str:
    return (
        f"Usage: {prog} [options]\n\nAvailable options are:\n"
        "  -c, --config FILE    Take config options from FILE\n"
        "  -d, --debug          Run in the foreground\n"
        "  -h, --help           This help\n"
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the parser for the command line options."""
    parser = _Parser(prog="listener", add_help=False)
    parser.add_argument("-c", "--config", default=LISTENER_RULES, metavar="FILE")
    parser.add_argument("-d", "--debug", action="store_true")
    parser.add_argument("-h", "--help", action="store_true")
    return parser


def _close_standard_descriptors() -> None:
    sys.stdout.flush()
    sys.stderr.flush()
    devnull = os.open(os.devnull, os.O_RDWR)
    for fd in (0, 1, 2):
        os.dup2(devnull, fd)
    os.close(devnull)


def _serve(watches: list[Watch], debug: bool) -> int:
    listener = Listener(WatchdogBackend(), debug)
    try:
        listener.load(watches)
        listener.run()
    except OSError as exc:
        print(f"add_watch: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        listener.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the listener; returns the process exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except _UsageError as exc:
        print(f"{parser.prog}: {exc}", file=sys.stderr)
        return 1

    if args.help:
        sys.stderr.write(_usage(parser.prog))
        return 0
    if args.debug:
        print("Running in debug mode", flush=True)

    try:
        watches = read_config(args.config)
    except RuleError as exc:
        print(exc, file=sys.stderr)
        return 1

    if not args.debug:
        _close_standard_descriptors()
        if hasattr(os, "fork"):
            try:
                pid = os.fork()
            except OSError as exc:
                print(f"fork: {exc}", file=sys.stderr)
                return 1
            if pid:
                return 0
    return _serve(watches, args.debug)


if __name__ == "__main__":
    sys.exit(main())