"""Dispatcher configuration using pydantic-settings.

Two settings classes are read from the environment:

- BotSettings: the bot's own inputs, prefixed with CHATOPS_
  (e.g. CHATOPS_GITHUB_TOKEN, CHATOPS_PLUGINS).
- RunnerEnvironment: the variables GitHub Actions exports for every run,
  prefixed with GITHUB_ (e.g. GITHUB_EVENT_NAME, GITHUB_RUN_ID).

The GitHub token is the only required setting. It is checked during
dispatch, after the payload, so that a missing credential is reported as
the failure of the whole invocation.
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PLUGINS = "dog"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_plugin_list(value: str) -> List[str]:
    """Split a comma-separated plugin list, dropping blanks.

    Example:
        >>> parse_plugin_list(" dog, hold,,pony ")
        ['dog', 'hold', 'pony']
    """
    return [name.strip() for name in value.split(",") if name.strip()]


class BotSettings(BaseSettings):
    """Bot configuration from environment variables.

    All environment variables are prefixed with CHATOPS_.

    Required fields:
    - github_token: GitHub API token used by plugins for comments and labels
    """

    model_config = SettingsConfigDict(
        env_prefix="CHATOPS_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    # Comma-separated names of the plugins to enable
    plugins: str = DEFAULT_PLUGINS

    # Login of the bot account, used to find comments it posted earlier
    bot_login: str = "github-actions[bot]"

    # Guidelines linked from the help plugin's comments
    help_guidelines_url: str = "https://www.kubernetes.dev/docs/guide/help-wanted/"

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------
    log_level: str = "INFO"

    # "json" for machine-readable logs, "console" for local runs
    log_format: str = "json"

    # Prometheus Pushgateway URL; metrics are not pushed when unset
    metrics_gateway_url: Optional[str] = None

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v.strip()

    @field_validator("plugins")
    @classmethod
    def validate_plugins(cls, v: str) -> str:
        """Fall back to the default plugin when the list is blank."""
        if not parse_plugin_list(v):
            return DEFAULT_PLUGINS
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return fmt

    @field_validator("metrics_gateway_url")
    @classmethod
    def validate_metrics_gateway_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def enabled_plugins(self) -> List[str]:
        """Plugin names parsed from the comma-separated list."""
        return parse_plugin_list(self.plugins)


class RunnerEnvironment(BaseSettings):
    """GitHub Actions runtime variables describing the current run.

    All environment variables are prefixed with GITHUB_. Every field has a
    default so that local runs can set only what they need.
    """

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_",
        case_sensitive=False,
    )

    event_name: str = ""

    # Path of the JSON file holding the webhook payload
    event_path: Optional[str] = None

    run_id: str = "0"
    run_number: str = "0"
    repository: str = ""
    sha: str = ""
    ref: str = ""
    actor: str = ""
    workflow: str = ""
    api_url: str = "https://api.github.com"

    # Path of the file step outputs are appended to
    output: Optional[str] = None

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate that the API URL is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_url must start with http:// or https://")
        return v.rstrip("/")


def get_settings() -> BotSettings:
    """Create and return BotSettings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return BotSettings()


def get_runner_environment() -> RunnerEnvironment:
    """Create and return RunnerEnvironment instance."""
    return RunnerEnvironment()
