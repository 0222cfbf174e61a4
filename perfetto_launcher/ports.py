"""
Free-port allocation for the two local servers (trace processor RPC + UI),
and a readiness poll for the RPC port once the backend is spawned.

No external dependencies — stdlib only.
"""

from __future__ import annotations

import socket
import time

LOOPBACK = "127.0.0.1"
MAX_PORT = 65535
DEFAULT_ATTEMPTS = 20


class PortAllocationError(Exception):
    """Could not find two distinct free ports."""


def _ephemeral_port(host: str = LOOPBACK) -> int:
    """Bind port 0, read back the OS-assigned port, release it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return s.getsockname()[1]


def _can_bind(port: int, host: str = LOOPBACK) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
        except OSError:
            return False
    return True


def acquire_port_near(offset: int, attempts: int = DEFAULT_ATTEMPTS, host: str = LOOPBACK) -> int:
    """
    Return a free port at (ephemeral port + offset).

    Each attempt asks the OS for an ephemeral port, adds the offset and checks
    the result is actually bindable.  Candidates past 65535 count as a miss.
    After `attempts` misses a plain ephemeral port is returned.
    """
    if offset < 0:
        raise ValueError(f"port offset must be >= 0, got {offset}")

    for _ in range(attempts):
        candidate = _ephemeral_port(host) + offset
        if candidate > MAX_PORT:
            continue
        if _can_bind(candidate, host):
            return candidate

    return _ephemeral_port(host)


def acquire_port_pair(
    rpc_offset: int = 1,
    ui_offset: int = 0,
    attempts: int = DEFAULT_ATTEMPTS,
    host: str = LOOPBACK,
    ui_host: str | None = None,
) -> tuple[int, int]:
    """Allocate (rpc_port, ui_port); the UI port is re-drawn until it differs.

    The UI port is checked on ui_host (default: host), the interface the UI
    server will actually bind.
    """
    rpc_port = acquire_port_near(rpc_offset, attempts, host)
    for _ in range(attempts):
        ui_port = acquire_port_near(ui_offset, attempts, ui_host or host)
        if ui_port != rpc_port:
            return rpc_port, ui_port
    raise PortAllocationError(
        f"could not allocate a UI port distinct from RPC port {rpc_port} "
        f"after {attempts} attempts"
    )


def wait_for_port(
    port: int,
    timeout: float,
    host: str = LOOPBACK,
    interval: float = 0.1,
    process=None,
) -> bool:
    """
    Poll until a TCP connection to host:port succeeds.

    Returns True once connected, False on timeout.  When `process` (a Popen)
    is given and exits while waiting, returns False immediately.
    """
    deadline = time.monotonic() + timeout
    while True:
        if process is not None and process.poll() is not None:
            return False
        try:
            with socket.create_connection((host, port), timeout=interval):
                return True
        except OSError:
            pass
        if time.monotonic() >= deadline:
            return False
        time.sleep(interval)
