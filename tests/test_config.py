"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from convo_dispatch.config import ConfigurationError, Settings


def _settings(**overrides) -> Settings:
    values = {
        "analysis_endpoint": "",
        "analysis_api_key": "",
        "priority_conv_ids": [],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self):
        settings = _settings()
        assert settings.timezone == "Asia/Jerusalem"
        assert settings.min_candidates == 3
        assert settings.include_sender is False
        assert settings.normalize_conv_ids is True
        assert settings.client_max_retries == 1
        assert settings.dispatch_max_concurrency == 1
        assert settings.db_path.as_posix() == "data.db"
        assert settings.output_dir.as_posix() == "runs"

    def test_from_yaml_missing_file(self, tmp_path):
        settings = Settings.from_yaml(
            tmp_path / "nonexistent.yaml",
            analysis_endpoint="https://analysis.example/api",
        )
        assert settings.min_candidates == 3
        assert settings.analysis_endpoint == "https://analysis.example/api"

    def test_from_yaml_with_overrides(self, tmp_path):
        config_file = tmp_path / "test.yaml"
        config_file.write_text("min_candidates: 5\ninclude_sender: true\n")
        settings = Settings.from_yaml(config_file, min_candidates=7)
        assert settings.min_candidates == 7
        assert settings.include_sender is True

    def test_env_vars_are_read(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_ENDPOINT", "https://env.example/analyze")
        monkeypatch.setenv("DB_PATH", "/var/lib/chat/data.db")
        settings = Settings(_env_file=None)
        assert settings.analysis_endpoint == "https://env.example/analyze"
        assert settings.db_path.as_posix() == "/var/lib/chat/data.db"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"timezone": "Not/AZone"},
            {"min_candidates": -1},
            {"dispatch_max_concurrency": 0},
            {"client_max_retries": 0},
        ],
    )
    def test_invalid_values_are_rejected(self, overrides):
        with pytest.raises(ValidationError):
            _settings(**overrides)

    def test_from_yaml_wraps_invalid_values(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("timezone: Not/AZone\n")
        with pytest.raises(ConfigurationError, match="timezone"):
            Settings.from_yaml(config_file)

    def test_zero_min_candidates_is_allowed(self):
        assert _settings(min_candidates=0).min_candidates == 0


def test_require_endpoint_raises_when_blank():
    with pytest.raises(ConfigurationError, match="ANALYSIS_ENDPOINT"):
        _settings(analysis_endpoint="   ").require_endpoint()


def test_require_endpoint_strips_value():
    settings = _settings(analysis_endpoint=" https://analysis.example/api ")
    assert settings.require_endpoint() == "https://analysis.example/api"


def test_auth_headers_without_key():
    assert _settings().auth_headers() == {"content-type": "application/json"}


def test_auth_headers_with_key():
    headers = _settings(analysis_api_key="secret").auth_headers()
    assert headers["authorization"] == "Bearer secret"
    assert headers["content-type"] == "application/json"


def test_resolved_priority_ids_drops_blanks():
    settings = _settings(priority_conv_ids=["a@g.us", " ", "", " b@c.us "])
    assert settings.resolved_priority_conv_ids() == {"a@g.us", "b@c.us"}
