#!/usr/bin/env python3
"""
Launcher for the bundled Perfetto UI.
Copy this script (and the perfetto_launcher package) into the Perfetto dist
directory, next to index.html and trace_processor_shell.
Usage: python run_launcher.py [trace-file]
"""
from __future__ import annotations

import os
import sys

# Make the perfetto_launcher package next to this script importable
LAUNCHER_ROOT = os.path.dirname(os.path.abspath(__file__))
if LAUNCHER_ROOT not in sys.path:
    sys.path.insert(0, LAUNCHER_ROOT)

from perfetto_launcher.cli import main

if __name__ == "__main__":
    sys.exit(main())
