# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator

import pytest

from mrktr.config.settings import Settings

_PROVIDER_ENV_VARS = [p["env"] for p in Settings.PROVIDERS]


@pytest.fixture(autouse=True)
def clear_provider_keys(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Unset provider API keys so no test reaches a real backend."""
    for env_var in _PROVIDER_ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)
    yield
