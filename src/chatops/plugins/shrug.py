"""Shrug plugin: toggles the 'shrug' label, shrugging back on removal."""

import re

from chatops.github.client import GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import (
    extract_comment,
    split_repository,
    target_number,
    target_state,
)
from chatops.plugins.models import (
    Payload,
    Plugin,
    PluginCommand,
    PluginHandlers,
    PluginHelp,
)

PLUGIN_NAME = "shrug"

SHRUG_LABEL = "shrug"

# Escaped so that markdown renders the arms and the underscores.
SHRUG_COMMENT = "¯\\\\\\_(ツ)\\_/¯"

SHRUG_RE = re.compile(r"^/shrug\s*$", re.IGNORECASE | re.MULTILINE)
UNSHRUG_RE = re.compile(r"^/unshrug\s*$", re.IGNORECASE | re.MULTILINE)


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    issue_number = target_number(payload)
    if comment is None or issue_number is None or target_state(payload) != "open":
        return HandlerResult.skipped()

    body = comment.body.strip()
    if SHRUG_RE.search(body):
        wants_shrug = True
    elif UNSHRUG_RE.search(body):
        wants_shrug = False
    else:
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context).bind(issue_number=issue_number)
    owner, repo = split_repository(payload, context.repository)

    github = GitHubClient.from_context(context)
    try:
        has_shrug = SHRUG_LABEL in await github.get_label_names(owner, repo, issue_number)

        if has_shrug and not wants_shrug:
            log.info("Removing shrug label")
            await github.create_comment(owner, repo, issue_number, SHRUG_COMMENT)
            await github.remove_label(owner, repo, issue_number, SHRUG_LABEL)
            action = "shrug-removed"
            message = f"Removed {SHRUG_LABEL} label from #{issue_number}"
        elif wants_shrug and not has_shrug:
            log.info("Adding shrug label")
            await github.add_labels(owner, repo, issue_number, [SHRUG_LABEL])
            action = "shrug-added"
            message = f"Added {SHRUG_LABEL} label to #{issue_number}"
        else:
            return HandlerResult.skipped()
    finally:
        await github.close()

    agent.took_action()
    agent.set_output("shrug_action", action)
    agent.set_output("issue_number", str(issue_number))
    return HandlerResult(success=True, took_action=True, message=message)


shrug_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description="Adds or removes the shrug label from issues and pull requests",
        commands=[
            PluginCommand("/shrug", "Applies the 'shrug' label", "/shrug"),
            PluginCommand("/unshrug", "Removes the 'shrug' label", "/unshrug"),
        ],
    ),
)
