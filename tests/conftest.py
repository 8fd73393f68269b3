"""Shared pytest fixtures for the solver test suite.

Provides:
- isolated_settings (autouse): removes settings overrides from the process
  environment and runs each test from an empty directory, so no stray
  variables or .env file change the documented defaults.
"""

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Every test starts from default settings."""
    for name in Settings.model_fields:
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(name.lower(), raising=False)
    monkeypatch.chdir(tmp_path)
