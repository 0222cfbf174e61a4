"""
Tests for the perfetto-launcher command line.
"""
import os

import pytest

from perfetto_launcher import cli
from perfetto_launcher.backend import BackendError
from perfetto_launcher.launcher import LauncherError


@pytest.fixture
def dist_env(dist_dir, monkeypatch):
    monkeypatch.setenv("PERFETTO_DIST_DIR", str(dist_dir))
    for key in list(os.environ):
        if key.startswith("PERFETTO_LAUNCHER_"):
            monkeypatch.delenv(key)
    # keep the test process's SIGTERM disposition untouched
    monkeypatch.setattr(cli.signal, "signal", lambda *_args: None)
    return dist_dir


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--version"])
    assert exc.value.code == 0
    assert "perfetto-launcher 0.1.0" in capsys.readouterr().out


def test_too_many_arguments():
    with pytest.raises(SystemExit) as exc:
        cli.main(["a.pftrace", "b.pftrace"])
    assert exc.value.code == 2


def test_builds_context_from_dist_dir(dist_env, monkeypatch, capsys):
    (dist_env / "launcher.json").write_text('{"ready_timeout": 1.5}')
    seen = {}
    monkeypatch.setattr(cli, "run", lambda context: seen.setdefault("context", context))

    assert cli.main(["trace.pftrace"]) == 0
    context = seen["context"]
    assert context.root == dist_env.resolve()
    assert context.trace_file == "trace.pftrace"
    assert context.settings["ready_timeout"] == 1.5
    out = capsys.readouterr().out
    assert "=== Perfetto Launcher ===" in out
    assert f"Dist directory: {dist_env.resolve()}" in out


def test_dotenv_in_dist_dir_is_loaded(dist_env, monkeypatch):
    (dist_env / ".env").write_text("PERFETTO_LAUNCHER_OPEN_BROWSER=false\n")
    # teardown removes whatever load_dotenv sets
    monkeypatch.setenv("PERFETTO_LAUNCHER_OPEN_BROWSER", "unset")
    monkeypatch.delenv("PERFETTO_LAUNCHER_OPEN_BROWSER")
    seen = {}
    monkeypatch.setattr(cli, "run", lambda context: seen.setdefault("context", context))

    assert cli.main([]) == 0
    assert seen["context"].settings["open_browser"] is False
    assert seen["context"].trace_file is None


def test_missing_backend_exits_1(dist_env, capsys):
    assert cli.main([]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "not found at" in err


@pytest.mark.parametrize("error", [
    LauncherError("entry missing"),
    BackendError("failed to start tps"),
])
def test_startup_errors_exit_1(dist_env, monkeypatch, capsys, error):
    def fail(_context):
        raise error

    monkeypatch.setattr(cli, "run", fail)
    assert cli.main([]) == 1
    assert str(error) in capsys.readouterr().err


def test_bad_setting_exits_1(dist_env, monkeypatch, capsys):
    monkeypatch.setenv("PERFETTO_LAUNCHER_READY_TIMEOUT", "soon")
    assert cli.main([]) == 1
    assert "PERFETTO_LAUNCHER_READY_TIMEOUT" in capsys.readouterr().err


def test_ctrl_c_exits_cleanly(dist_env, monkeypatch):
    def interrupted(_context):
        raise KeyboardInterrupt

    monkeypatch.setattr(cli, "run", interrupted)
    assert cli.main([]) == 0


def test_sigterm_handler_raises_system_exit():
    with pytest.raises(SystemExit) as exc:
        cli._raise_system_exit(15, None)
    assert exc.value.code == 143


def test_negative_port_offset_exits_1(dist_env, monkeypatch, capsys):
    monkeypatch.setenv("PERFETTO_LAUNCHER_RPC_PORT_OFFSET", "-1")
    monkeypatch.setattr(cli, "run", lambda _context: pytest.fail("run() reached"))
    assert cli.main([]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "PERFETTO_LAUNCHER_RPC_PORT_OFFSET" in err


@pytest.mark.parametrize("content", ['{"port_attempts": [20]}', '{"port_attempts": 0}'])
def test_bad_settings_file_exits_1(dist_env, monkeypatch, capsys, content):
    (dist_env / "launcher.json").write_text(content)
    monkeypatch.setattr(cli, "run", lambda _context: pytest.fail("run() reached"))
    assert cli.main([]) == 1
    assert "port_attempts in launcher.json" in capsys.readouterr().err


def test_numeric_string_in_settings_file_is_accepted(dist_env, monkeypatch):
    (dist_env / "launcher.json").write_text('{"port_attempts": "20"}')
    seen = {}
    monkeypatch.setattr(cli, "run", lambda context: seen.setdefault("context", context))
    assert cli.main([]) == 0
    assert seen["context"].settings["port_attempts"] == 20
