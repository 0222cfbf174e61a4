"""
UI server — stdlib HTTP server for the bundled Perfetto UI.

Serves:
  - /               — <dist>/index.html
  - /<path>         — any file under the dist directory

Only GET is handled.  Paths resolving outside the dist directory get 403,
missing or unreadable files 404, a broken dist directory 500.  Every
response carries Access-Control-Allow-Origin: * so the UI can be loaded from
whatever port the launcher picked.
"""
from __future__ import annotations

import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from .resolver import ENTRY_FILE, ResolveError, resolve

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".wasm": "application/wasm",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".map": "application/json",
}
DEFAULT_MIME_TYPE = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"


def get_mime_type(path: str | Path) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def _text(status: int, message: str) -> tuple[int, str, bytes]:
    return status, TEXT_PLAIN, message.encode("utf-8")


def respond(canonical_path: Path) -> tuple[int, str, bytes]:
    """Read a resolved file.  Returns (status, content_type, body)."""
    try:
        data = Path(canonical_path).read_bytes()
    except OSError:
        # permission denied, removed since resolve, or a directory
        return _text(404, "Not Found")
    return 200, get_mime_type(canonical_path), data


def handle_request(root: str | Path, request_path: str, entry_file: str = ENTRY_FILE) -> tuple[int, str, bytes]:
    """Resolve and read request_path under root; map failures to HTTP statuses."""
    try:
        canonical = resolve(root, request_path, entry_file)
    except ResolveError as e:
        return _text(e.status, e.message)
    return respond(canonical)


class LauncherHTTPServer(ThreadingHTTPServer):
    """Threading HTTP server bound to one immutable dist directory."""

    daemon_threads = True

    def __init__(self, server_address, root: Path, entry_file: str = ENTRY_FILE, log_requests: bool = False):
        self.root = Path(root)
        self.entry_file = entry_file
        self.log_requests = log_requests
        super().__init__(server_address, StaticHandler)


class StaticHandler(BaseHTTPRequestHandler):
    server: LauncherHTTPServer

    def _send(self, status: int, content_type: str, body: bytes):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        try:
            status, content_type, body = handle_request(self.server.root, self.path, self.server.entry_file)
        except Exception as e:
            print(f"perfetto-launcher: error serving {self.path}: {e!r}", file=sys.stderr)
            status, content_type, body = _text(500, "Internal Error")
        try:
            self._send(status, content_type, body)
        except (BrokenPipeError, ConnectionResetError):
            # Browser went away mid-response
            pass

    def log_message(self, format, *args):
        # Quiet logs unless enabled in settings
        if self.server.log_requests:
            super().log_message(format, *args)


def make_server(
    root: str | Path,
    port: int,
    host: str = "0.0.0.0",
    entry_file: str = ENTRY_FILE,
    log_requests: bool = False,
) -> LauncherHTTPServer:
    """Bind the UI server.  Raises OSError if the port cannot be bound."""
    root_canonical = Path(root).resolve()
    return LauncherHTTPServer((host, port), root_canonical, entry_file, log_requests)
