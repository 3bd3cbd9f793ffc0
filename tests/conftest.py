"""Shared pytest configuration for the editor companion suite."""

import sys
from pathlib import Path

# tests/ is not a package; make ``tests.infrastructure`` and the library importable.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def pytest_configure(config):
    config.addinivalue_line("markers", "subprocess: spawns a real child process")
