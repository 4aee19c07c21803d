"""Tests for configuration management."""
from __future__ import annotations

import pytest

from src.shared.config import ScenarioEngineConfig, SharedConfig


class TestSharedConfig:
    def test_default_values(self, monkeypatch: pytest.MonkeyPatch):
        """Log level defaults to info."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        config = SharedConfig()
        assert config.log_level == "info"

    def test_env_override_log_level(self, monkeypatch: pytest.MonkeyPatch):
        """LOG_LEVEL overrides the default log level."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = SharedConfig()
        assert config.log_level == "debug"


class TestScenarioEngineConfig:
    def test_default_values(self, monkeypatch: pytest.MonkeyPatch):
        """No spec files and both analyzer flags off by default."""
        for name in (
            "SWAGGER_FILE_PATHS",
            "NO_EXTERNAL_DEPENDENCY_RESOURCE_TYPE",
            "FILER_TOP_LEVEL_RESOURCE_TYPE",
        ):
            monkeypatch.delenv(name, raising=False)
        config = ScenarioEngineConfig()
        assert config.swagger_file_paths == []
        assert config.no_external_dependency_resource_type is False
        assert config.filer_top_level_resource_type is False

    def test_inherits_shared_defaults(self, monkeypatch: pytest.MonkeyPatch):
        """Engine config inherits the shared log level default."""
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert ScenarioEngineConfig().log_level == "info"

    def test_env_override_swagger_file_paths(self, monkeypatch: pytest.MonkeyPatch):
        """SWAGGER_FILE_PATHS is parsed as a JSON list."""
        monkeypatch.setenv("SWAGGER_FILE_PATHS", '["a/a.json", "b/b.json"]')
        config = ScenarioEngineConfig()
        assert config.swagger_file_paths == ["a/a.json", "b/b.json"]

    def test_env_override_flags(self, monkeypatch: pytest.MonkeyPatch):
        """Analyzer flags are read from the environment."""
        monkeypatch.setenv("NO_EXTERNAL_DEPENDENCY_RESOURCE_TYPE", "true")
        monkeypatch.setenv("FILER_TOP_LEVEL_RESOURCE_TYPE", "1")
        config = ScenarioEngineConfig()
        assert config.no_external_dependency_resource_type is True
        assert config.filer_top_level_resource_type is True
