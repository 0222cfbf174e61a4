"""
Configuration management for perfetto-launcher.

Dist directory:  where index.html and trace_processor_shell live
Settings file:   <dist>/launcher.json   (optional overrides)
Environment:     PERFETTO_LAUNCHER_<KEY> (wins over the settings file)
.env file:       <dist>/.env            (loaded into the environment first)

No external dependencies — stdlib only.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path


# -------------------------------------------------------------------
# Load .env from the dist directory (if present)
# -------------------------------------------------------------------

def load_dotenv(env_path: Path) -> dict:
    """Apply KEY=value lines from env_path to os.environ.

    Variables already in the environment are left alone.  `export KEY=...`
    lines are accepted.  Returns the variables that were set; {} when the
    file is missing or unreadable.
    """
    try:
        lines = Path(env_path).read_text().splitlines()
    except OSError:
        return {}

    applied = {}
    for line in lines:
        line = line.strip()
        if line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key in os.environ:
            continue
        applied[key] = value.strip().strip("'\"")
    os.environ.update(applied)
    return applied


# -------------------------------------------------------------------
# Paths
# -------------------------------------------------------------------

DIST_DIR_ENV = "PERFETTO_DIST_DIR"
SETTINGS_FILE_NAME = "launcher.json"
ENV_PREFIX = "PERFETTO_LAUNCHER_"

# Console-script wrappers live here; the dist is never next to them
_SCRIPT_DIR_NAMES = ("bin", "Scripts")

# argv[0] points in here under `python -m perfetto_launcher.cli`
_PACKAGE_DIR = Path(__file__).resolve().parent


def default_backend_name() -> str:
    if os.name == "nt":
        return "trace_processor_shell.exe"
    return "trace_processor_shell"


def find_dist_dir() -> Path:
    """
    Locate the dist directory.  Priority:
      1. PERFETTO_DIST_DIR env var
      2. Directory of the frozen executable (PyInstaller-style bundle)
      3. Directory of the running script (run_launcher.py inside the dist),
         unless it is a console-script dir or this package itself
      4. Current working directory
    """
    env = os.environ.get(DIST_DIR_ENV)
    if env:
        return Path(env).expanduser().resolve()

    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent

    if sys.argv and sys.argv[0]:
        script_dir = Path(sys.argv[0]).resolve().parent
        if script_dir.name not in _SCRIPT_DIR_NAMES and script_dir != _PACKAGE_DIR:
            return script_dir

    return Path.cwd().resolve()


# -------------------------------------------------------------------
# Settings
# -------------------------------------------------------------------

DEFAULT_SETTINGS: dict = {
    "entry_file": "index.html",
    "backend_name": default_backend_name(),
    "rpc_port_offset": 1,
    "ui_port_offset": 0,
    "port_attempts": 20,
    "ready_timeout": 10.0,
    "open_browser": True,
    "log_requests": False,
}

_TRUE_VALUES = ("1", "true", "yes", "on")


def _coerce(raw: str, default):
    """Convert an env var string to the type of the default value."""
    if isinstance(default, bool):
        return raw.strip().lower() in _TRUE_VALUES
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def _from_json(value, default):
    """Check a launcher.json value against the default's type.

    Strings go through the env-var coercion, so "20" works for an int.
    """
    if isinstance(value, str):
        return _coerce(value, default)
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    raise ValueError(value)


# Lowest accepted value for numeric settings
_MINIMUMS = {
    "rpc_port_offset": 0,
    "ui_port_offset": 0,
    "port_attempts": 1,
    "ready_timeout": 0.0,
}


def get_file_settings(root: Path) -> dict:
    """Load <root>/launcher.json (returns {} if missing or unreadable)."""
    path = Path(root) / SETTINGS_FILE_NAME
    if path.exists():
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError):
            return {}
        if isinstance(data, dict):
            return data
    return {}


def get_settings(root: Path) -> dict:
    """
    Resolve launcher settings.  Priority:
      1. PERFETTO_LAUNCHER_<KEY> env vars (e.g. PERFETTO_LAUNCHER_READY_TIMEOUT)
      2. <root>/launcher.json
      3. DEFAULT_SETTINGS
    Unknown keys in launcher.json are ignored.  A value of the wrong type or
    below its minimum raises ValueError naming where it came from.
    """
    settings = dict(DEFAULT_SETTINGS)
    sources = {}

    for key, value in get_file_settings(root).items():
        if key not in settings:
            continue
        source = f"{key} in {SETTINGS_FILE_NAME}"
        try:
            settings[key] = _from_json(value, DEFAULT_SETTINGS[key])
        except ValueError:
            raise ValueError(f"invalid value for {source}: {value!r}") from None
        sources[key] = source

    for key, default in DEFAULT_SETTINGS.items():
        env_name = ENV_PREFIX + key.upper()
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            settings[key] = _coerce(raw, default)
        except ValueError:
            raise ValueError(f"invalid value for {env_name}: {raw!r}") from None
        sources[key] = env_name

    for key, minimum in _MINIMUMS.items():
        if settings[key] < minimum:
            raise ValueError(
                f"{sources.get(key, key)} must be >= {minimum}, got {settings[key]!r}"
            )

    return settings
