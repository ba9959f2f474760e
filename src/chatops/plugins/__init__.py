"""Plugin system: declarations, the registry and the built-in plugins."""

from typing import List, Optional

from chatops.config import BotSettings
from chatops.plugins.agent import PluginAgent
from chatops.plugins.approve import approve_plugin
from chatops.plugins.assign import assign_plugin
from chatops.plugins.cat import cat_plugin
from chatops.plugins.dog import dog_plugin
from chatops.plugins.help import create_help_plugin
from chatops.plugins.hold import hold_plugin
from chatops.plugins.lgtm import lgtm_plugin
from chatops.plugins.merge_commit_blocker import create_merge_commit_blocker_plugin
from chatops.plugins.models import (
    Handler,
    Payload,
    Plugin,
    PluginCommand,
    PluginConfiguration,
    PluginHandlers,
    PluginHelp,
)
from chatops.plugins.pony import pony_plugin
from chatops.plugins.registry import PluginRegistry
from chatops.plugins.shrug import shrug_plugin
from chatops.plugins.size import size_plugin
from chatops.plugins.stage import stage_plugin
from chatops.plugins.wip import wip_plugin
from chatops.plugins.yuks import yuks_plugin

__all__ = [
    "Handler",
    "Payload",
    "Plugin",
    "PluginAgent",
    "PluginCommand",
    "PluginConfiguration",
    "PluginHandlers",
    "PluginHelp",
    "PluginRegistry",
    "builtin_plugins",
]


def builtin_plugins(settings: Optional[BotSettings] = None) -> List[Plugin]:
    """Return the catalogue of plugins shipped with the dispatcher.

    Args:
        settings: Bot settings; the help and merge commit blocker plugins
            read the bot login (and the guidelines URL) from them when given.
    """
    if settings is None:
        help_plugin = create_help_plugin()
        merge_commit_blocker_plugin = create_merge_commit_blocker_plugin()
    else:
        help_plugin = create_help_plugin(
            guidelines_url=settings.help_guidelines_url,
            bot_login=settings.bot_login,
        )
        merge_commit_blocker_plugin = create_merge_commit_blocker_plugin(settings.bot_login)
    return [
        approve_plugin,
        assign_plugin,
        cat_plugin,
        dog_plugin,
        help_plugin,
        hold_plugin,
        lgtm_plugin,
        merge_commit_blocker_plugin,
        pony_plugin,
        shrug_plugin,
        size_plugin,
        stage_plugin,
        wip_plugin,
        yuks_plugin,
    ]
