"""
trace_processor_shell process management.

Spawns the trace processor in HTTP-RPC mode on loopback, with the UI's
origins on its CORS allow-list, and makes sure it is stopped again.

No external dependencies — stdlib only.
"""

from __future__ import annotations

import os
import subprocess
import sys
from contextlib import contextmanager
from pathlib import Path

from .ports import LOOPBACK

STOP_TIMEOUT = 5.0


class BackendError(Exception):
    """The trace processor could not be started."""


def cors_origins(ui_port: int) -> str:
    return f"http://localhost:{ui_port},http://127.0.0.1:{ui_port}"


def build_backend_command(
    executable: str | Path,
    rpc_port: int,
    ui_port: int,
    trace_file: str | Path | None = None,
) -> list[str]:
    """Argument list for trace_processor_shell.

    A trace_file that does not exist is reported on stderr and left out;
    the backend then starts with no trace loaded.
    """
    cmd = [
        str(executable),
        "-D",
        "--http-ip-address", LOOPBACK,
        "--http-port", str(rpc_port),
        "--http-additional-cors-origins", cors_origins(ui_port),
    ]
    if trace_file:
        if os.path.isfile(trace_file):
            cmd.append(os.path.abspath(trace_file))
        else:
            print(f"perfetto-launcher: warning: trace file not found: {trace_file}", file=sys.stderr)
            print("  Continuing without preloading a trace.", file=sys.stderr)
    return cmd


def launch_backend(
    executable: str | Path,
    rpc_port: int,
    ui_port: int,
    trace_file: str | Path | None = None,
) -> subprocess.Popen:
    """Spawn trace_processor_shell with stdout/stderr inherited."""
    cmd = build_backend_command(executable, rpc_port, ui_port, trace_file)
    try:
        return subprocess.Popen(cmd, stdin=subprocess.DEVNULL)
    except OSError as e:
        raise BackendError(f"failed to start {executable}: {e}") from e


def stop_backend(process: subprocess.Popen, timeout: float = STOP_TIMEOUT) -> None:
    """Terminate the process, escalating to kill if it does not exit in time."""
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


@contextmanager
def running_backend(
    executable: str | Path,
    rpc_port: int,
    ui_port: int,
    trace_file: str | Path | None = None,
):
    """Launch the backend for the duration of the with-block."""
    process = launch_backend(executable, rpc_port, ui_port, trace_file)
    try:
        yield process
    finally:
        stop_backend(process)
