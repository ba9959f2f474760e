"""Plugin declaration models.

A plugin is a named bundle of async handlers, one optional handler per
HandlerCategory, plus optional help metadata and an enable flag. Plugins
are declared once at import time and owned by the PluginRegistry after
registration.

Handlers share one signature:

    async def handler(payload, context, agent) -> HandlerResult

where ``payload`` is the raw webhook payload (already checked for the
substructures the category promises), ``context`` is the immutable
EventContext and ``agent`` is a PluginAgent owned by this invocation.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from chatops.models import EventContext, HandlerCategory, HandlerResult
from chatops.plugins.agent import PluginAgent

Payload = Dict[str, Any]

Handler = Callable[[Payload, EventContext, PluginAgent], Awaitable[HandlerResult]]


@dataclass
class PluginHandlers:
    """Capability map of a plugin: which categories it processes."""

    issue: Optional[Handler] = None
    issue_comment: Optional[Handler] = None
    pull_request: Optional[Handler] = None
    push: Optional[Handler] = None
    review: Optional[Handler] = None
    generic_comment: Optional[Handler] = None

    def for_category(self, category: HandlerCategory) -> Optional[Handler]:
        """Return the handler serving ``category``, if the plugin has one.

        Raises:
            ValueError: If the category is not a known HandlerCategory.
        """
        if category is HandlerCategory.ISSUE:
            return self.issue
        if category is HandlerCategory.ISSUE_COMMENT:
            return self.issue_comment
        if category is HandlerCategory.PULL_REQUEST:
            return self.pull_request
        if category is HandlerCategory.PUSH:
            return self.push
        if category is HandlerCategory.REVIEW:
            return self.review
        if category is HandlerCategory.GENERIC_COMMENT:
            return self.generic_comment
        raise ValueError(f"Unknown handler category: {category!r}")

    def categories(self) -> List[HandlerCategory]:
        """Categories for which a handler is declared, in enum order."""
        return [c for c in HandlerCategory if self.for_category(c) is not None]


@dataclass
class PluginCommand:
    name: str
    description: str
    example: Optional[str] = None


@dataclass
class PluginHelp:
    description: str
    commands: List[PluginCommand] = field(default_factory=list)


@dataclass
class PluginConfiguration:
    """Mutable activation settings of a registered plugin.

    Attributes:
        enabled: Plugins run unless this is explicitly False.
        options: Free-form plugin specific settings.
    """

    enabled: bool = True
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Plugin:
    """A registered behavior module.

    Attributes:
        name: Unique registry key.
        handlers: Which categories the plugin processes, and how.
        help: Optional human-readable help metadata.
        config: Optional activation settings. None means enabled.
    """

    name: str
    handlers: PluginHandlers
    help: Optional[PluginHelp] = None
    config: Optional[PluginConfiguration] = None

    @property
    def is_enabled(self) -> bool:
        return self.config is None or self.config.enabled is not False
