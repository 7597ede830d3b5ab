"""Shared fixtures: every test gets its own HEALTHSCOPE_HOME."""

import pytest

from healthscope.config import get_settings


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the config dir at a temp directory and drop cached settings."""
    home = tmp_path / "home"
    monkeypatch.setenv("HEALTHSCOPE_HOME", str(home))
    for key in ("HEALTHSCOPE_ANTHROPIC_API_KEY", "HEALTHSCOPE_ANTHROPIC_MODEL"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield home
    get_settings.cache_clear()
