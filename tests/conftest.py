"""Top-level pytest configuration for logfanout tests."""

from __future__ import annotations

import os
import sys

import pytest

# Ensure the project root is importable so `logfanout` and `tests.*` resolve
# without an editable install.
project_tests_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(project_tests_dir)
if project_root not in sys.path:
    sys.path.insert(0, project_root)


def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover - configuration hook
    config.addinivalue_line("markers", "logfanout: logfanout unit tests")
