import threading
import urllib.error
import urllib.request
from pathlib import Path

import pytest

from perfetto_launcher.server import make_server

INDEX_HTML = b"<!doctype html><title>Perfetto UI</title>"
APP_JS = b"console.log('perfetto');"


@pytest.fixture
def dist_dir(tmp_path: Path) -> Path:
    """A dist layout plus a sibling directory sharing the name prefix."""
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "index.html").write_bytes(INDEX_HTML)
    (dist / "app.js").write_bytes(APP_JS)
    (dist / "data.bin").write_bytes(b"\x00\x01\x02\x03")
    (dist / "engine.wasm").write_bytes(b"\x00asm\x01\x00\x00\x00")
    assets = dist / "assets"
    assets.mkdir()
    (assets / "style.CSS").write_bytes(b"body { margin: 0; }")
    (assets / "my file.json").write_bytes(b"{}")

    evil = tmp_path / "dist-evil"
    evil.mkdir()
    (evil / "secret.txt").write_bytes(b"sibling secret")
    (tmp_path / "secret.txt").write_bytes(b"top secret")
    return dist


@pytest.fixture
def ui_server(dist_dir):
    """A UI server on an ephemeral loopback port, served from a thread."""
    httpd = make_server(dist_dir, 0, host="127.0.0.1")
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()
    thread.join(timeout=5)


@pytest.fixture
def fetch(ui_server):
    """GET a path from ui_server; returns (status, headers, body) for any status."""
    port = ui_server.server_address[1]

    def _fetch(path: str):
        url = f"http://127.0.0.1:{port}{path}"
        try:
            with urllib.request.urlopen(url, timeout=5) as resp:
                return resp.status, resp.headers, resp.read()
        except urllib.error.HTTPError as e:
            with e:
                return e.code, e.headers, e.read()

    return _fetch
