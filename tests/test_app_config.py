"""Tests for application configuration loading."""

from pathlib import Path

from aicademy.config.app_config import (
    CONFIG_FILE,
    clear_config_cache,
    get_provider_config,
    load_app_config,
)


def _write_config(text: str) -> None:
    path = Path.cwd() / CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    clear_config_cache()


class TestLoadAppConfig:
    """Tests for load_app_config."""

    def test_defaults_without_file(self):
        clear_config_cache()
        config = load_app_config()

        assert config.tutor.default_provider == "ollama"
        assert config.tutor.recent_attempts == 5
        assert config.database.path == "db/aicademy.db"
        assert config.demo.email_domain == "aicademy.edu"
        assert config.demo.admin_key is None
        assert config.classes.code_length == 6
        assert set(config.providers) == {"ollama", "lmstudio", "openai"}

    def test_cached(self):
        assert load_app_config() is load_app_config()

    def test_yaml_sections_merge_with_defaults(self):
        _write_config(
            """
providers:
  ollama:
    base_url: http://gpu-box:11434/v1
    default_model: llama3.1
tutor:
  temperature: 0.3
demo:
  email_domain: school.test
"""
        )

        config = load_app_config()

        assert config.tutor.temperature == 0.3
        assert config.tutor.max_tokens == 1024
        assert config.demo.email_domain == "school.test"
        assert config.demo.password == "demo123"
        assert get_provider_config("ollama").default_model == "llama3.1"
        assert get_provider_config("openai") is None

    def test_environment_overrides(self, monkeypatch):
        _write_config("database:\n  path: db/from-yaml.db\n")
        monkeypatch.setenv("AICADEMY_DB_PATH", "/srv/aicademy.db")
        monkeypatch.setenv("AICADEMY_ADMIN_KEY", "s3cret")

        config = load_app_config(force_reload=True)

        assert config.database.path == "/srv/aicademy.db"
        assert config.demo.admin_key == "s3cret"

    def test_empty_file_uses_defaults(self):
        _write_config("")

        config = load_app_config()

        assert config.auth.session_ttl_hours == 24 * 7
        assert "ollama" in config.providers


class TestProviderConfig:
    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert get_provider_config("openai").get_api_key() == "sk-test"

    def test_no_key_env(self):
        assert get_provider_config("ollama").get_api_key() is None
