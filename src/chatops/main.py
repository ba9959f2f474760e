"""Command line entry point for the ChatOps dispatcher.

Runs one dispatch per process, the way a GitHub Actions step does:
reads the runner environment and the webhook payload file, dispatches the
event, pushes metrics when a Pushgateway is configured, and exits with
status 0 on success or 1 on a fatal failure.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from chatops.config import BotSettings, get_runner_environment, get_settings
from chatops.dispatcher import EventDispatcher
from chatops.metrics import get_metrics
from chatops.outputs import GitHubOutputWriter

logger = structlog.get_logger()


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog on top of the standard logging module.

    Args:
        level: Minimum log level name.
        fmt: "json" for one JSON object per line, "console" for a
            human-readable rendering.
    """
    logging.basicConfig(format="%(message)s", level=level, force=True)

    renderer = (
        structlog.dev.ConsoleRenderer()
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: BotSettings) -> None:
    logger.info(
        "Dispatcher configuration",
        github_token=_redact_secret(settings.github_token),
        plugins=settings.enabled_plugins,
        bot_login=settings.bot_login,
        log_level=settings.log_level,
        metrics_gateway_url=settings.metrics_gateway_url,
    )


def load_payload(event_path: Optional[str]) -> Optional[Any]:
    """Read the JSON webhook payload GitHub Actions stored on disk.

    Returns:
        The decoded payload, or None when the file is missing or is not
        valid JSON. Dispatch reports a None payload as invalid.
    """
    if not event_path:
        logger.warning("No event payload path configured")
        return None

    try:
        with Path(event_path).open(encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, ValueError) as e:
        logger.error("Failed to read event payload", event_path=event_path, error=str(e))
        return None


async def run() -> int:
    """Run one dispatch and return the process exit code."""
    try:
        settings: Optional[BotSettings] = get_settings()
    except ValidationError:
        # Reported by the dispatcher once the payload has been checked.
        settings = None

    if settings is None:
        configure_logging()
    else:
        configure_logging(settings.log_level, settings.log_format)
        _log_configuration(settings)

    runner = get_runner_environment()
    outputs = GitHubOutputWriter(runner.output)
    metrics = get_metrics()

    dispatcher = EventDispatcher(runner, outputs, metrics=metrics)
    result = await dispatcher.dispatch(load_payload(runner.event_path))

    if settings is not None and settings.metrics_gateway_url:
        metrics.push(settings.metrics_gateway_url)

    return 0 if result.success else 1


def main() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
