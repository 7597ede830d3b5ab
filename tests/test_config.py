# Tests for Settings
# Created: 2026-10-02

import json

from healthscope.config import (
    DEFAULT_SYSTEM_PROMPT,
    Settings,
    get_config_dir,
    get_config_path,
    get_settings,
)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.anthropic_model == "claude-3-5-sonnet-latest"
        assert settings.request_timeout == 60.0
        assert settings.max_history_notes == 10
        assert settings.system_prompt == DEFAULT_SYSTEM_PROMPT
        assert settings.auto_analyze is True

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("HEALTHSCOPE_ANTHROPIC_MODEL", "claude-3-5-haiku-latest")
        monkeypatch.setenv("HEALTHSCOPE_AUTO_ANALYZE", "false")
        settings = Settings()
        assert settings.anthropic_model == "claude-3-5-haiku-latest"
        assert settings.auto_analyze is False

    def test_config_dir_override(self, isolated_home):
        assert get_config_dir() == isolated_home
        assert isolated_home.is_dir()

    def test_save_and_load(self):
        Settings(anthropic_model="claude-3-opus-latest", anthropic_api_key="sk-secret").save()

        data = json.loads(get_config_path().read_text())
        assert data["anthropic_model"] == "claude-3-opus-latest"
        assert "anthropic_api_key" not in data
        assert Settings.load().anthropic_model == "claude-3-opus-latest"

    def test_env_wins_over_file(self, monkeypatch):
        Settings(anthropic_model="claude-3-opus-latest").save()
        monkeypatch.setenv("HEALTHSCOPE_ANTHROPIC_MODEL", "claude-3-5-haiku-latest")
        assert Settings.load().anthropic_model == "claude-3-5-haiku-latest"

    def test_unreadable_file_uses_defaults(self):
        get_config_path().write_text("{not json")
        assert Settings.load().anthropic_model == "claude-3-5-sonnet-latest"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
        get_settings.cache_clear()
        assert get_settings() is not None

    def test_unknown_model_warns(self, caplog):
        with caplog.at_level("WARNING"):
            settings = Settings(anthropic_model="claude-next")
        assert settings.anthropic_model == "claude-next"
        assert "not a known model" in caplog.text
