"""Concurrent fan-out of plugin handlers for one event.

For a given handler category the engine looks up every enabled plugin
serving it, starts one asyncio task per handler, waits for all of them to
settle, and folds the outcomes into a mapping keyed by plugin name.

Failure semantics:
- A handler that raises is converted into a failed HandlerResult carrying
  the exception message. It never affects sibling handlers.
- The join is a barrier: slow or failing handlers neither cancel nor
  starve the others.
- A task that fails outside the handler's own code is left out of the
  result map and logged.

There are no retries, no timeouts and no bound on concurrency at this
layer. Handlers may race on remote repository state; plugins are expected
to target disjoint labels and comments.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import structlog

from chatops.metrics import DispatchMetrics, get_metrics
from chatops.models import EventContext, HandlerCategory, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.models import Handler, Payload, Plugin
from chatops.plugins.registry import PluginRegistry
from chatops.validator import REQUIRED_SHAPES, is_valid_event, satisfies

logger = structlog.get_logger()


class EventHandlers:
    """Runs all matching plugin handlers of a category concurrently.

    Attributes:
        registry: Registry consulted for the handlers of each category.
        metrics: Prometheus metrics updated with handler outcomes.
    """

    def __init__(
        self,
        registry: PluginRegistry,
        metrics: Optional[DispatchMetrics] = None,
    ):
        self.registry = registry
        self.metrics = metrics or get_metrics()

    async def handle_issue_event(
        self, payload: Payload, context: EventContext
    ) -> Dict[str, HandlerResult]:
        return await self.handle(HandlerCategory.ISSUE, payload, context)

    async def handle_issue_comment_event(
        self, payload: Payload, context: EventContext
    ) -> Dict[str, HandlerResult]:
        return await self.handle(HandlerCategory.ISSUE_COMMENT, payload, context)

    async def handle_pull_request_event(
        self, payload: Payload, context: EventContext
    ) -> Dict[str, HandlerResult]:
        return await self.handle(HandlerCategory.PULL_REQUEST, payload, context)

    async def handle_push_event(
        self, payload: Payload, context: EventContext
    ) -> Dict[str, HandlerResult]:
        return await self.handle(HandlerCategory.PUSH, payload, context)

    async def handle_review_event(
        self, payload: Payload, context: EventContext
    ) -> Dict[str, HandlerResult]:
        return await self.handle(HandlerCategory.REVIEW, payload, context)

    async def handle_generic_comment_event(
        self, payload: Payload, context: EventContext
    ) -> Dict[str, HandlerResult]:
        return await self.handle(HandlerCategory.GENERIC_COMMENT, payload, context)

    async def handle_review_comment_event(
        self, payload: Payload, context: EventContext
    ) -> Dict[str, HandlerResult]:
        """Review comments are served by generic comment handlers."""
        return await self.handle_generic_comment_event(payload, context)

    async def handle(
        self,
        category: HandlerCategory,
        payload: Payload,
        context: EventContext,
    ) -> Dict[str, HandlerResult]:
        """Invoke every enabled handler of ``category`` and collect results.

        Args:
            category: The handler category to run.
            payload: Raw webhook payload.
            context: Immutable context of the event.

        Returns:
            Mapping from plugin name to the HandlerResult of its handler.

        Raises:
            ValueError: If ``category`` is unknown or the payload lacks the
                substructures the category requires.
        """
        if not isinstance(category, HandlerCategory):
            raise ValueError(f"Unknown handler category: {category!r}")
        if not is_valid_event(payload) or not satisfies(
            payload, REQUIRED_SHAPES[category]
        ):
            raise ValueError(
                f"Payload does not match the {category.value} event shape"
            )

        log = logger.bind(
            event_name=context.event_name,
            event_guid=context.event_guid,
            category=category.value,
        )
        entries = self.registry.get_handlers(category)

        log.info("Processing event", handler_count=len(entries))

        start_time = time.perf_counter()
        tasks: List["asyncio.Task[HandlerResult]"] = [
            asyncio.create_task(
                self._invoke(category, plugin, handler, payload, context),
                name=f"{category.value}:{plugin.name}",
            )
            for plugin, handler in entries
        ]
        outcomes: List[Any] = await asyncio.gather(*tasks, return_exceptions=True)
        elapsed = time.perf_counter() - start_time

        log.info(
            "Completed handlers",
            handler_count=len(entries),
            elapsed_ms=round(elapsed * 1000, 1),
        )
        self.metrics.record_fanout_duration(category.value, elapsed)

        results: Dict[str, HandlerResult] = {}
        for (plugin, _), outcome in zip(entries, outcomes):
            if isinstance(outcome, BaseException):
                log.error(
                    "Handler task did not settle",
                    plugin=plugin.name,
                    error=repr(outcome),
                )
                continue
            results[plugin.name] = outcome

        return results

    async def _invoke(
        self,
        category: HandlerCategory,
        plugin: Plugin,
        handler: Handler,
        payload: Payload,
        context: EventContext,
    ) -> HandlerResult:
        """Run one handler with its own agent, converting errors to results."""
        plugin_log = logger.bind(
            event_name=context.event_name,
            event_guid=context.event_guid,
            plugin=plugin.name,
        )
        agent = PluginAgent()

        try:
            plugin_log.info("Executing handler")
            result = await handler(payload, context, agent)
            if isinstance(result, dict):
                result = HandlerResult.model_validate(result)
            elif not isinstance(result, HandlerResult):
                raise TypeError(
                    f"Handler returned {type(result).__name__}, expected HandlerResult"
                )
        except Exception as e:
            error_message = str(e) or type(e).__name__
            plugin_log.error("Handler failed", error=error_message, exc_info=True)
            self.metrics.record_handler(category.value, plugin.name, "error")
            return HandlerResult.failed(error_message)

        plugin_log.info(
            "Handler completed",
            success=result.success,
            took_action=result.took_action,
            agent_outputs=agent.get_outputs(),
            agent_failure=agent.get_failure_message(),
        )
        self.metrics.record_handler(
            category.value,
            plugin.name,
            "success" if result.success else "failure",
        )
        return result
