"""Helpers shared by the built-in plugin handlers."""

import functools
from typing import Any

import structlog

from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.models import Handler, Payload

logger = structlog.get_logger()


def plugin_logger(plugin_name: str, context: EventContext) -> Any:
    """Logger bound to the event and the plugin."""
    return logger.bind(
        event_name=context.event_name,
        event_guid=context.event_guid,
        plugin=plugin_name,
    )


def guarded(plugin_name: str):
    """Turn errors raised by a plugin handler into a failed result.

    The wrapped handler records the error on its agent and returns
    ``HandlerResult(success=False)`` instead of raising, which is the
    contract built-in plugins follow.
    """

    def decorator(func: Handler) -> Handler:
        @functools.wraps(func)
        async def wrapper(
            payload: Payload, context: EventContext, agent: PluginAgent
        ) -> HandlerResult:
            try:
                return await func(payload, context, agent)
            except Exception as e:
                message = str(e) or type(e).__name__
                plugin_logger(plugin_name, context).error(
                    "Plugin error", error=message, exc_info=True
                )
                agent.set_failed(message)
                return HandlerResult.failed(message)

        return wrapper

    return decorator
