"""Event dispatcher: the single entry point for one inbound webhook event.

Drives one event through the dispatch flow:
payload validation → settings → context → plugin registration → demux →
fan-out → summary outputs.

Routing collapses three distinct comment-like webhooks (issue_comment,
pull_request_review, pull_request_review_comment) into the generic comment
category, so that comment plugins see "a comment body plus whatever issue,
pull request or review accompanies it" regardless of which webhook
produced it.

Only two failures are fatal to an invocation: an invalid payload and a
missing credential. Both are reported once through the OutputWriter and
abort before any handler runs. Per-plugin failures never escalate.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from pydantic import SecretStr, ValidationError

from chatops.config import BotSettings, RunnerEnvironment, get_settings
from chatops.handlers.fanout import EventHandlers
from chatops.metrics import DispatchMetrics, get_metrics
from chatops.models import EventContext, HandlerCategory, HandlerResult
from chatops.outputs import OutputWriter
from chatops.plugins import builtin_plugins
from chatops.plugins.models import Plugin, PluginConfiguration
from chatops.plugins.registry import PluginRegistry
from chatops.validator import (
    Predicate,
    has_comment,
    has_issue,
    has_pull_request,
    has_review,
    is_valid_event,
    satisfies,
)

logger = structlog.get_logger()

# Raw event name -> (category, shape predicates). Event names not listed
# here are logged no-ops.
DEMUX_TABLE: Dict[str, Tuple[HandlerCategory, Tuple[Predicate, ...]]] = {
    "issues": (HandlerCategory.ISSUE, (has_issue,)),
    "issue_comment": (HandlerCategory.GENERIC_COMMENT, (has_comment, has_issue)),
    "pull_request": (HandlerCategory.PULL_REQUEST, (has_pull_request,)),
    "pull_request_review": (HandlerCategory.GENERIC_COMMENT, (has_review,)),
    "pull_request_review_comment": (HandlerCategory.GENERIC_COMMENT, (has_comment,)),
    "push": (HandlerCategory.PUSH, ()),
}


class DispatchError(Exception):
    """Fatal error aborting a whole dispatch before any handler runs."""


@dataclass
class DispatchResult:
    """Outcome of one dispatch.

    Attributes:
        success: False only for fatal errors.
        category: Handler category invoked, or None for a no-op.
        results: Plugin name -> HandlerResult of the invoked category.
        outputs: Summary outputs emitted through the OutputWriter.
        error: Fatal error message, if any.
    """

    success: bool
    category: Optional[HandlerCategory] = None
    results: Dict[str, HandlerResult] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


def classify_event(event_name: str, payload: Any) -> Optional[HandlerCategory]:
    """Map a raw event name and payload to exactly one category, or None.

    Returns None both for unknown event names and for known names whose
    payload lacks the substructures the branch requires.
    """
    entry = DEMUX_TABLE.get(event_name)
    if entry is None:
        return None
    category, predicates = entry
    if not satisfies(payload, predicates):
        return None
    return category


def _describe_validation_error(error: ValidationError) -> str:
    details = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "settings"
        details.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "Invalid configuration: " + "; ".join(details)


class EventDispatcher:
    """Routes one webhook event to the plugins interested in it.

    All collaborators are injected so that tests can replace the
    settings source, the output channel and the plugin catalogue.

    Attributes:
        runner: GitHub Actions run description (event name, run ids...).
        outputs: Sink for summary outputs and the invocation failure.
        settings_factory: Callable returning BotSettings; may raise
            pydantic.ValidationError for missing configuration.
        plugins: Catalogue of available plugins, or None for the built-in
            catalogue built from the settings.
        registry: Registry holding the plugins enabled for this dispatch.
        handlers: Fan-out engine bound to the registry.
    """

    def __init__(
        self,
        runner: RunnerEnvironment,
        outputs: OutputWriter,
        settings_factory: Callable[[], BotSettings] = get_settings,
        plugins: Optional[Sequence[Plugin]] = None,
        metrics: Optional[DispatchMetrics] = None,
    ):
        self.runner = runner
        self.outputs = outputs
        self.settings_factory = settings_factory
        self.plugins = plugins
        self.metrics = metrics or get_metrics()
        self.registry = PluginRegistry()
        self.handlers = EventHandlers(self.registry, metrics=self.metrics)
        self.log = logger.bind(
            event_name=runner.event_name,
            event_guid=runner.run_id,
        )

    async def dispatch(self, payload: Any) -> DispatchResult:
        """Dispatch one event payload.

        Never raises for fatal errors: they are reported through
        ``outputs.set_failed`` and returned as ``success=False``.

        Args:
            payload: Decoded webhook payload, or None when unavailable.

        Returns:
            DispatchResult describing what happened.
        """
        event_name = self.runner.event_name
        self.log.info("Starting event dispatch")

        try:
            result = await self._dispatch(payload)
        except DispatchError as e:
            return self._fail(str(e))
        except Exception as e:
            self.log.exception("Unexpected dispatch error")
            return self._fail(str(e) or type(e).__name__)

        self.metrics.record_dispatch(
            event_name, "success" if result.category is not None else "ignored"
        )
        self.log.info(
            "Event dispatch completed",
            category=result.category.value if result.category else None,
            handler_count=len(result.results),
        )
        return result

    async def _dispatch(self, payload: Any) -> DispatchResult:
        if not is_valid_event(payload):
            raise DispatchError("Invalid event payload")

        settings = self._load_settings()
        context = self._build_context(settings)
        enabled = settings.enabled_plugins

        self.log.info("Enabled plugins", plugins=enabled)
        self._register_plugins(enabled, settings)

        category = classify_event(context.event_name, payload)
        results: Dict[str, HandlerResult] = {}
        if category is None:
            self.log.info(
                "No handler category for event",
                known_event=context.event_name in DEMUX_TABLE,
            )
        else:
            self.log.info("Demuxed event", category=category.value)
            results = await self.handlers.handle(category, payload, context)

        summary = {
            "event_name": context.event_name,
            "event_guid": context.event_guid,
            "repository": context.repository,
            "plugins_enabled": ",".join(enabled),
        }
        for name, value in summary.items():
            self.outputs.set_output(name, value)

        return DispatchResult(
            success=True,
            category=category,
            results=results,
            outputs=summary,
        )

    def _load_settings(self) -> BotSettings:
        try:
            return self.settings_factory()
        except ValidationError as e:
            raise DispatchError(_describe_validation_error(e)) from e

    def _build_context(self, settings: BotSettings) -> EventContext:
        runner = self.runner
        return EventContext(
            event_name=runner.event_name,
            event_guid=runner.run_id,
            repository=runner.repository,
            sha=runner.sha,
            ref=runner.ref,
            actor=runner.actor,
            workflow=runner.workflow,
            run_id=runner.run_id,
            run_number=runner.run_number,
            github_token=SecretStr(settings.github_token),
            api_url=runner.api_url,
        )

    def _register_plugins(self, enabled: List[str], settings: BotSettings) -> None:
        """Register the catalogue plugins named in ``enabled``.

        Catalogue entries are copied with an enabled configuration rather
        than mutated, so one catalogue can serve several dispatchers.
        """
        catalogue = self.plugins if self.plugins is not None else builtin_plugins(settings)
        available = {plugin.name: plugin for plugin in catalogue}

        for name in enabled:
            plugin = available.get(name)
            if plugin is None:
                self.log.warning("Unknown plugin requested", plugin=name)
                continue
            self.registry.register(
                replace(plugin, config=PluginConfiguration(enabled=True))
            )
            self.log.info("Registered plugin", plugin=name)

    def _fail(self, message: str) -> DispatchResult:
        self.log.error("Event dispatch failed", error=message)
        self.outputs.set_failed(message)
        self.metrics.record_dispatch(self.runner.event_name, "failure")
        return DispatchResult(success=False, error=message)
