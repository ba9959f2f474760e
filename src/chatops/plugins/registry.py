"""Plugin registry: the single source of truth for active plugins.

The registry keeps plugins in registration order, keyed by name. Every
per-category lookup recomputes the enabled view, so toggling a plugin's
``config.enabled`` takes effect on the next query.
"""

from typing import Dict, List, Optional, Tuple

import structlog

from chatops.models import HandlerCategory
from chatops.plugins.models import Handler, Plugin

logger = structlog.get_logger()

HandlerEntry = Tuple[Plugin, Handler]


class PluginRegistry:
    """Ordered collection of plugins with per-category handler indices.

    Example:
        >>> registry = PluginRegistry()
        >>> registry.register(dog_plugin)
        >>> [p.name for p, _ in registry.get_generic_comment_handlers()]
        ['dog']
    """

    def __init__(self) -> None:
        self._plugins: Dict[str, Plugin] = {}

    def register(self, plugin: Plugin) -> None:
        """Insert or overwrite a plugin by name.

        Re-registering a name replaces the previous plugin but keeps its
        original position in the registration order.
        """
        if plugin.name in self._plugins:
            logger.debug("Replacing registered plugin", plugin=plugin.name)
        self._plugins[plugin.name] = plugin

    def get(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    def get_all(self) -> List[Plugin]:
        return list(self._plugins.values())

    def get_enabled(self) -> List[Plugin]:
        """Return plugins whose configuration does not disable them.

        A plugin without configuration is enabled. Only an explicit
        ``enabled=False`` excludes it.
        """
        return [plugin for plugin in self._plugins.values() if plugin.is_enabled]

    def get_handlers(self, category: HandlerCategory) -> List[HandlerEntry]:
        """Return (plugin, handler) pairs of enabled plugins serving ``category``.

        Args:
            category: The handler category to look up.

        Returns:
            Pairs in registration order.

        Raises:
            ValueError: If ``category`` is not a HandlerCategory.
        """
        if not isinstance(category, HandlerCategory):
            raise ValueError(f"Unknown handler category: {category!r}")

        entries: List[HandlerEntry] = []
        for plugin in self.get_enabled():
            handler = plugin.handlers.for_category(category)
            if handler is not None:
                entries.append((plugin, handler))
        return entries

    def get_issue_handlers(self) -> List[HandlerEntry]:
        return self.get_handlers(HandlerCategory.ISSUE)

    def get_issue_comment_handlers(self) -> List[HandlerEntry]:
        return self.get_handlers(HandlerCategory.ISSUE_COMMENT)

    def get_pull_request_handlers(self) -> List[HandlerEntry]:
        return self.get_handlers(HandlerCategory.PULL_REQUEST)

    def get_push_handlers(self) -> List[HandlerEntry]:
        return self.get_handlers(HandlerCategory.PUSH)

    def get_review_handlers(self) -> List[HandlerEntry]:
        return self.get_handlers(HandlerCategory.REVIEW)

    def get_generic_comment_handlers(self) -> List[HandlerEntry]:
        return self.get_handlers(HandlerCategory.GENERIC_COMMENT)

    def __len__(self) -> int:
        return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins
