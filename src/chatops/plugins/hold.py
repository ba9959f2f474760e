"""Hold plugin: toggles the do-not-merge/hold label on pull requests."""

import re

from chatops.github.client import GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import (
    extract_comment,
    is_pull_request,
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

PLUGIN_NAME = "hold"

HOLD_LABEL = "do-not-merge/hold"

HOLD_RE = re.compile(r"^/hold(\s.*)?$", re.IGNORECASE | re.MULTILINE)
HOLD_CANCEL_RE = re.compile(
    r"^/(remove-hold|hold\s+cancel|unhold)(\s.*)?$", re.IGNORECASE | re.MULTILINE
)


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    if comment is None or not is_pull_request(payload):
        return HandlerResult.skipped()

    pr_number = target_number(payload)
    if pr_number is None or target_state(payload) != "open":
        return HandlerResult.skipped()

    body = comment.body.strip()
    # "/hold cancel" also matches HOLD_RE, so cancellation wins.
    if HOLD_CANCEL_RE.search(body):
        needs_label = False
    elif HOLD_RE.search(body):
        needs_label = True
    else:
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context).bind(issue_number=pr_number)
    owner, repo = split_repository(payload, context.repository)

    github = GitHubClient.from_context(context)
    try:
        has_label = HOLD_LABEL in await github.get_label_names(owner, repo, pr_number)

        if has_label and not needs_label:
            log.info("Removing hold label")
            await github.remove_label(owner, repo, pr_number, HOLD_LABEL)
            action = "hold-removed"
            message = f"Removed {HOLD_LABEL} label from #{pr_number}"
        elif needs_label and not has_label:
            log.info("Adding hold label")
            await github.add_labels(owner, repo, pr_number, [HOLD_LABEL])
            action = "hold-added"
            message = f"Added {HOLD_LABEL} label to #{pr_number}"
        else:
            return HandlerResult.skipped()
    finally:
        await github.close()

    agent.took_action()
    agent.set_output("hold_action", action)
    agent.set_output("issue_number", str(pr_number))
    return HandlerResult(success=True, took_action=True, message=message)


hold_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description=(
            "Adds or removes the 'do-not-merge/hold' label from pull requests to "
            "temporarily prevent merging without withholding approval."
        ),
        commands=[
            PluginCommand("/hold", "Applies the 'do-not-merge/hold' label to a PR", "/hold"),
            PluginCommand(
                "/hold cancel",
                "Removes the 'do-not-merge/hold' label from a PR",
                "/hold cancel",
            ),
            PluginCommand(
                "/unhold",
                "Removes the 'do-not-merge/hold' label from a PR (alias for /hold cancel)",
                "/unhold",
            ),
            PluginCommand(
                "/remove-hold",
                "Removes the 'do-not-merge/hold' label from a PR (alias for /hold cancel)",
                "/remove-hold",
            ),
        ],
    ),
)
