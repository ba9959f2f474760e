"""WIP plugin: labels pull requests that are drafts or titled "WIP"."""

import re

from chatops.github.client import GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import split_repository
from chatops.plugins.models import Payload, Plugin, PluginHandlers, PluginHelp

PLUGIN_NAME = "wip"

WIP_LABEL = "do-not-merge/work-in-progress"

# "WIP: fix bug", "[WIP] feature", "wip - update docs"
TITLE_RE = re.compile(r"^\W*WIP\W", re.IGNORECASE)

RELEVANT_ACTIONS = frozenset(
    {"opened", "reopened", "edited", "ready_for_review", "converted_to_draft"}
)


def needs_wip_label(title: str, draft: bool) -> bool:
    return draft or bool(TITLE_RE.match(title))


@guarded(PLUGIN_NAME)
async def handle_pull_request(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    log = plugin_logger(PLUGIN_NAME, context)

    action = payload.get("action")
    if action not in RELEVANT_ACTIONS:
        log.debug("Skipping pull request action", action=action)
        return HandlerResult.skipped()

    pull_request = payload["pull_request"]
    pr_number = pull_request["number"]
    needs_label = needs_wip_label(
        pull_request.get("title") or "", bool(pull_request.get("draft"))
    )
    log = log.bind(issue_number=pr_number)
    owner, repo = split_repository(payload, context.repository)

    github = GitHubClient.from_context(context)
    try:
        has_label = WIP_LABEL in await github.get_label_names(owner, repo, pr_number)
        log.info("Checked WIP state", has_label=has_label, needs_label=needs_label)

        if needs_label and not has_label:
            await github.add_labels(owner, repo, pr_number, [WIP_LABEL])
            wip_action = "label-added"
            message = f"Added {WIP_LABEL} label to PR #{pr_number}"
        elif has_label and not needs_label:
            await github.remove_label(owner, repo, pr_number, WIP_LABEL)
            wip_action = "label-removed"
            message = f"Removed {WIP_LABEL} label from PR #{pr_number}"
        else:
            log.info("No action needed")
            return HandlerResult.skipped()
    finally:
        await github.close()

    agent.took_action()
    agent.set_output("wip_action", wip_action)
    agent.set_output("issue_number", str(pr_number))
    return HandlerResult(success=True, took_action=True, message=message)


wip_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(pull_request=handle_pull_request),
    help=PluginHelp(
        description=(
            "Applies the 'do-not-merge/work-in-progress' label to pull requests "
            "whose title starts with 'WIP' or that are drafts, and removes it "
            "once the prefix is gone and the pull request is ready for review."
        ),
    ),
)
