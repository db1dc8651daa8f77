"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from procflow.config import Config, reload_config

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

FIXTURES_DIR = PROJECT_ROOT / "tests" / "fixtures"

# Script splitting its arguments between stdout and stderr
SPLIT_SCRIPT = FIXTURES_DIR / "split_output.sh"

OUT = ["hello world", "no worry"]
ERR = ["e=omg", "e=windows"]
ALL = [OUT[0], ERR[0], OUT[1], ERR[1]]


@pytest.fixture
def split_command() -> list[str]:
    """Command printing ALL, OUT lines on stdout and ERR lines on stderr."""
    return ["bash", str(SPLIT_SCRIPT), *ALL]


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Create temporary workspace directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def config() -> Config:
    """Configuration independent from the PROCFLOW_* environment."""
    return Config()


@pytest.fixture(autouse=True)
def _reset_global_config(monkeypatch: pytest.MonkeyPatch):
    """Keep the global configuration from leaking between tests."""
    for name in list(os.environ):
        if name.startswith("PROCFLOW_"):
            monkeypatch.delenv(name)
    reload_config()
    yield
    reload_config()
