"""
Launch sequence: check the dist layout, pick ports, start the trace
processor, serve the UI and open the browser.
"""

from __future__ import annotations

import sys
import webbrowser
from pathlib import Path

from .backend import running_backend
from .config import DEFAULT_SETTINGS
from .ports import acquire_port_pair, wait_for_port
from .server import make_server

UI_HOST = "0.0.0.0"


class LauncherError(Exception):
    """Fatal startup error; nothing is served."""


class LauncherContext:
    """Everything one launch needs, built once at startup."""

    def __init__(self, root: str | Path, settings: dict | None = None, trace_file: str | None = None):
        self.root = Path(root).resolve()
        self.settings = dict(DEFAULT_SETTINGS)
        if settings:
            self.settings.update(settings)
        self.trace_file = trace_file

        # Set by run()
        self.rpc_port: int | None = None
        self.ui_port: int | None = None
        self.backend = None

    @property
    def backend_path(self) -> Path:
        return self.root / self.settings["backend_name"]

    @property
    def entry_path(self) -> Path:
        return self.root / self.settings["entry_file"]


def check_layout(context: LauncherContext) -> None:
    """Raise LauncherError unless the backend and entry HTML are in place."""
    if not context.backend_path.is_file():
        raise LauncherError(
            f"{context.settings['backend_name']} not found at {context.backend_path}\n"
            "Make sure the launcher is placed in the Perfetto dist directory."
        )
    if not context.entry_path.is_file():
        raise LauncherError(f"{context.settings['entry_file']} not found at {context.entry_path}")


def ui_url(ui_port: int, rpc_port: int) -> str:
    return f"http://localhost:{ui_port}/?rpc_port={rpc_port}"


def open_browser(url: str) -> bool:
    """Best-effort browser launch; prints manual instructions on failure."""
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        print(f"perfetto-launcher: warning: failed to open browser: {e}", file=sys.stderr)
        opened = False
    else:
        if not opened:
            print("perfetto-launcher: warning: no browser available.", file=sys.stderr)
    if not opened:
        print(f"Please open {url} manually.")
    return opened


def _print_ready(context: LauncherContext, url: str) -> None:
    print("\n=== Perfetto is ready! ===")
    print(f"  UI Server:            {url}")
    print(f"  Trace Processor RPC:  http://127.0.0.1:{context.rpc_port}/")
    print("\nPress Ctrl+C to stop.\n")


def run(context: LauncherContext) -> None:
    """Run until interrupted.  The backend is stopped on every exit path."""
    settings = context.settings
    check_layout(context)

    context.rpc_port, context.ui_port = acquire_port_pair(
        settings["rpc_port_offset"],
        settings["ui_port_offset"],
        settings["port_attempts"],
        ui_host=UI_HOST,
    )

    print("Starting trace_processor_shell...")
    print(f"  Path: {context.backend_path}")
    print(f"  HTTP port: {context.rpc_port}")
    print(f"  CORS origins: http://localhost:{context.ui_port}, http://127.0.0.1:{context.ui_port}")

    with running_backend(context.backend_path, context.rpc_port, context.ui_port, context.trace_file) as backend:
        context.backend = backend

        print("\nWaiting for trace_processor to start...")
        ready = wait_for_port(context.rpc_port, settings["ready_timeout"], process=backend)
        if backend.poll() is not None:
            raise LauncherError(f"trace_processor_shell exited during startup (status {backend.returncode})")
        if not ready:
            print(
                f"perfetto-launcher: warning: trace_processor not reachable on port {context.rpc_port} "
                f"after {settings['ready_timeout']}s; continuing anyway.",
                file=sys.stderr,
            )

        print(f"\nStarting HTTP server on port {context.ui_port}...")
        try:
            httpd = make_server(
                context.root,
                context.ui_port,
                host=UI_HOST,
                entry_file=settings["entry_file"],
                log_requests=settings["log_requests"],
            )
        except OSError as e:
            raise LauncherError(f"failed to start HTTP server on port {context.ui_port}: {e}") from e

        url = ui_url(context.ui_port, context.rpc_port)
        _print_ready(context, url)
        if settings["open_browser"]:
            open_browser(url)

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nShutting down...")
        finally:
            httpd.server_close()

    print("Goodbye!")
