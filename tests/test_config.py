"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from chatops.config import (
    BotSettings,
    RunnerEnvironment,
    get_runner_environment,
    get_settings,
    parse_plugin_list,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "CHATOPS_GITHUB_TOKEN",
        "CHATOPS_PLUGINS",
        "CHATOPS_LOG_LEVEL",
        "CHATOPS_LOG_FORMAT",
        "CHATOPS_METRICS_GATEWAY_URL",
        "GITHUB_EVENT_NAME",
        "GITHUB_API_URL",
        "GITHUB_OUTPUT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestBotSettings:
    """Tests for BotSettings."""

    def test_defaults(self, clean_env):
        clean_env.setenv("CHATOPS_GITHUB_TOKEN", "ghp_token")

        settings = get_settings()

        assert settings.github_token == "ghp_token"
        assert settings.plugins == "dog"
        assert settings.enabled_plugins == ["dog"]
        assert settings.bot_login == "github-actions[bot]"
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"
        assert settings.metrics_gateway_url is None

    def test_load_from_env(self, clean_env):
        clean_env.setenv("CHATOPS_GITHUB_TOKEN", "  ghp_token  ")
        clean_env.setenv("CHATOPS_PLUGINS", "dog, hold ,,pony")
        clean_env.setenv("CHATOPS_LOG_LEVEL", "debug")
        clean_env.setenv("CHATOPS_LOG_FORMAT", "Console")
        clean_env.setenv("CHATOPS_METRICS_GATEWAY_URL", "http://pushgateway:9091")

        settings = get_settings()

        assert settings.github_token == "ghp_token"
        assert settings.enabled_plugins == ["dog", "hold", "pony"]
        assert settings.log_level == "DEBUG"
        assert settings.log_format == "console"
        assert settings.metrics_gateway_url == "http://pushgateway:9091"

    def test_missing_token_raises(self, clean_env):
        with pytest.raises(ValidationError) as exc_info:
            get_settings()

        assert exc_info.value.errors()[0]["loc"] == ("github_token",)

    def test_blank_token_raises(self, clean_env):
        with pytest.raises(ValidationError):
            BotSettings(github_token="   ")

    def test_blank_plugin_list_falls_back_to_default(self, clean_env):
        settings = BotSettings(github_token="t", plugins=" , ")

        assert settings.enabled_plugins == ["dog"]

    @pytest.mark.parametrize("field, value", [("log_level", "LOUD"), ("log_format", "xml")])
    def test_invalid_observability_settings(self, clean_env, field, value):
        with pytest.raises(ValidationError):
            BotSettings(github_token="t", **{field: value})

    def test_blank_gateway_is_none(self, clean_env):
        assert BotSettings(github_token="t", metrics_gateway_url=" ").metrics_gateway_url is None


class TestRunnerEnvironment:
    """Tests for RunnerEnvironment."""

    def test_defaults(self, clean_env):
        runner = get_runner_environment()

        assert runner.event_name == ""
        assert runner.api_url == "https://api.github.com"
        assert runner.output is None

    def test_load_from_env(self, clean_env):
        clean_env.setenv("GITHUB_EVENT_NAME", "issue_comment")
        clean_env.setenv("GITHUB_API_URL", "https://github.example.com/api/v3/")
        clean_env.setenv("GITHUB_OUTPUT", "/tmp/out")

        runner = RunnerEnvironment()

        assert runner.event_name == "issue_comment"
        assert runner.api_url == "https://github.example.com/api/v3"
        assert runner.output == "/tmp/out"

    def test_invalid_api_url(self, clean_env):
        with pytest.raises(ValidationError):
            RunnerEnvironment(api_url="ftp://example.com")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("dog", ["dog"]),
        (" dog , hold ", ["dog", "hold"]),
        ("dog,,hold,", ["dog", "hold"]),
        ("", []),
        (" , ", []),
    ],
)
def test_parse_plugin_list(value, expected):
    assert parse_plugin_list(value) == expected
