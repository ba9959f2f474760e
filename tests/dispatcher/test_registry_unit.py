"""Unit tests for PluginRegistry and the plugin declaration models."""

import pytest

from chatops.models import HandlerCategory, HandlerResult
from chatops.plugins.models import Plugin, PluginConfiguration, PluginHandlers
from chatops.plugins.registry import PluginRegistry


async def _noop(payload, context, agent):
    return HandlerResult.skipped()


async def _other(payload, context, agent):
    return HandlerResult(success=True, took_action=True)


def _plugin(name, config=None, **handlers):
    if not handlers:
        handlers = {"generic_comment": _noop}
    return Plugin(name=name, handlers=PluginHandlers(**handlers), config=config)


class TestEnabled:
    def test_plugin_without_config_is_enabled(self):
        registry = PluginRegistry()
        registry.register(_plugin("dog"))

        assert [p.name for p in registry.get_enabled()] == ["dog"]

    def test_only_explicit_false_disables(self):
        registry = PluginRegistry()
        registry.register(_plugin("a", config=PluginConfiguration()))
        registry.register(_plugin("b", config=PluginConfiguration(enabled=False)))
        registry.register(_plugin("c"))

        assert [p.name for p in registry.get_enabled()] == ["a", "c"]
        assert len(registry) == 3

    def test_toggling_config_takes_effect_on_next_query(self):
        registry = PluginRegistry()
        plugin = _plugin("dog", config=PluginConfiguration())
        registry.register(plugin)
        assert len(registry.get_generic_comment_handlers()) == 1

        plugin.config.enabled = False

        assert registry.get_generic_comment_handlers() == []


class TestRegister:
    def test_last_registration_wins_and_keeps_position(self):
        registry = PluginRegistry()
        registry.register(_plugin("a"))
        registry.register(_plugin("b"))
        replacement = _plugin("a", pull_request=_other)
        registry.register(replacement)

        assert [p.name for p in registry.get_all()] == ["a", "b"]
        assert registry.get("a") is replacement
        assert registry.get_generic_comment_handlers()[0][0].name == "b"

    def test_contains_and_get(self):
        registry = PluginRegistry()
        registry.register(_plugin("hold"))

        assert "hold" in registry
        assert "dog" not in registry
        assert registry.get("dog") is None


class TestHandlerLookup:
    def test_handlers_in_registration_order(self):
        registry = PluginRegistry()
        for name in ("c", "a", "b"):
            registry.register(_plugin(name))

        entries = registry.get_handlers(HandlerCategory.GENERIC_COMMENT)

        assert [plugin.name for plugin, _ in entries] == ["c", "a", "b"]
        assert all(handler is _noop for _, handler in entries)

    def test_plugins_without_category_are_skipped(self):
        registry = PluginRegistry()
        registry.register(_plugin("wip", pull_request=_other))
        registry.register(_plugin("dog"))

        assert [p.name for p, _ in registry.get_pull_request_handlers()] == ["wip"]
        assert [p.name for p, _ in registry.get_generic_comment_handlers()] == ["dog"]
        assert registry.get_issue_handlers() == []
        assert registry.get_issue_comment_handlers() == []
        assert registry.get_push_handlers() == []
        assert registry.get_review_handlers() == []

    def test_unknown_category_rejected(self):
        registry = PluginRegistry()
        with pytest.raises(ValueError):
            registry.get_handlers("status")

    def test_every_category_accessor(self):
        handlers = {category.value: _noop for category in HandlerCategory}
        registry = PluginRegistry()
        registry.register(Plugin(name="all", handlers=PluginHandlers(**handlers)))

        for category in HandlerCategory:
            assert len(registry.get_handlers(category)) == 1


def test_plugin_handlers_categories():
    handlers = PluginHandlers(push=_noop, issue=_noop)

    assert handlers.categories() == [HandlerCategory.ISSUE, HandlerCategory.PUSH]
    assert handlers.for_category(HandlerCategory.PUSH) is _noop
    assert handlers.for_category(HandlerCategory.REVIEW) is None
