"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so imports like
``import cocktail_mcp`` resolve correctly regardless of the working directory
pytest chooses.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()


@pytest.fixture(autouse=True)
def reset_adapter_registry():
    """Reset the adapter registry before each test to avoid cross-test state."""
    from cocktail_mcp.adapters import reset_adapters

    reset_adapters()
    yield
    reset_adapters()


@pytest.fixture(autouse=True)
def isolate_settings_env(monkeypatch, tmp_path):
    """Keep real BAR_ASSISTANT_* variables and .env files out of tests."""
    for name in list(os.environ):
        if name.startswith("BAR_ASSISTANT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
