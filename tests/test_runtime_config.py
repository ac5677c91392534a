"""Tests for specflow.config.runtime_config."""

from specflow.config import runtime_config
from specflow.config.runtime_config import (
    EngineSettings,
    get_cli_path,
    get_default,
    get_driver_setting,
    get_max_retries,
    get_path_templates,
    reset_config,
)


class TestMaxRetries:
    def test_yaml_default(self):
        assert get_max_retries() == 3

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SPECFLOW_MAX_RETRIES", "5")

        assert get_max_retries() == 5

    def test_negative_clamped(self, monkeypatch):
        monkeypatch.setenv("SPECFLOW_MAX_RETRIES", "-2")

        assert get_max_retries() == 0

    def test_non_integer_ignored(self, monkeypatch):
        monkeypatch.setenv("SPECFLOW_MAX_RETRIES", "many")

        assert get_max_retries() == 3


class TestLookups:
    def test_cli_path_default_and_override(self, monkeypatch):
        assert get_cli_path("claude_code") == "claude"
        assert get_cli_path("unknown_engine") == "unknown_engine"

        monkeypatch.setenv("SPECFLOW_GEMINI_CLI", "/usr/local/bin/gemini")
        assert get_cli_path("gemini") == "/usr/local/bin/gemini"

    def test_default_env_override(self, monkeypatch):
        monkeypatch.setenv("SPECFLOW_DEFAULT_AGENT", "gemini")

        assert get_default("agent") == "gemini"
        assert get_default("environment") == "local"

    def test_driver_settings(self, monkeypatch):
        assert get_driver_setting("max_cycles", 1) == 50
        monkeypatch.setenv("SPECFLOW_DRIVER_MAX_WORKERS", "8")
        assert get_driver_setting("max_workers", 1) == 8

    def test_path_templates(self):
        templates = get_path_templates()

        assert templates["design_file"] == "docs/design/{module_path}.md"
        assert templates["review_file"] == "docs/design/{module_path}/design_review.md"

    def test_missing_yaml_uses_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setattr(runtime_config, "_CONFIG_PATH", tmp_path / "absent.yaml")
        reset_config()

        assert get_max_retries() == 3
        assert get_cli_path("gemini") == "gemini"


class TestEngineSettings:
    def test_from_config(self, monkeypatch):
        monkeypatch.setenv("SPECFLOW_MAX_RETRIES", "1")
        monkeypatch.setenv("SPECFLOW_DOCS_DIR", "architecture")
        monkeypatch.setenv("SPECFLOW_DEFAULT_ENVIRONMENT", "cli")

        settings = EngineSettings.from_config()

        assert settings.max_retries == 1
        assert settings.docs_dir == "architecture"
        assert settings.default_environment == "cli"
        assert settings.base_branch == "main"
        assert settings.timeout_seconds == 1800
        assert settings.path_templates["design_file"] == "docs/design/{module_path}.md"
