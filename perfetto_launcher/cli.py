"""
perfetto-launcher CLI — open the bundled Perfetto UI against a local
trace_processor_shell.

Zero external dependencies — uses only the Python standard library.

Usage:
    perfetto-launcher                 Start the trace processor and the UI
    perfetto-launcher <trace-file>    Same, preloading the given trace
"""

from __future__ import annotations

import argparse
import signal
import sys

from .backend import BackendError
from .config import find_dist_dir, get_settings, load_dotenv
from .launcher import LauncherContext, LauncherError, run
from .ports import PortAllocationError

VERSION = "0.1.0"


def _raise_system_exit(signum, _frame):
    # Unwinds through run() so the trace processor gets stopped
    raise SystemExit(128 + signum)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perfetto-launcher",
        description="perfetto-launcher — serve the Perfetto UI with a local trace processor",
    )
    parser.add_argument(
        "--version", action="version", version=f"perfetto-launcher {VERSION}",
    )
    parser.add_argument(
        "trace_file", nargs="?", default=None,
        help="Trace file to preload in the trace processor",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    print("=== Perfetto Launcher ===\n")

    dist_dir = find_dist_dir()
    print(f"Dist directory: {dist_dir}\n")

    load_dotenv(dist_dir / ".env")
    try:
        settings = get_settings(dist_dir)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    context = LauncherContext(dist_dir, settings, trace_file=args.trace_file)

    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _raise_system_exit)

    try:
        run(context)
    except (LauncherError, BackendError, PortAllocationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
