"""Stage plugin: marks issues as alpha, beta or stable.

At most one stage/* label is kept: adding a stage removes the others.
"""

import re

from chatops.github.client import GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import extract_comment, split_repository, target_number
from chatops.plugins.models import (
    Payload,
    Plugin,
    PluginCommand,
    PluginHandlers,
    PluginHelp,
)

PLUGIN_NAME = "stage"

STAGES = ("alpha", "beta", "stable")
STAGE_LABELS = tuple(f"stage/{stage}" for stage in STAGES)

STAGE_RE = re.compile(
    r"^/(?:(remove)-)?stage\s+(alpha|beta|stable)\s*$", re.IGNORECASE | re.MULTILINE
)


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    issue_number = target_number(payload)
    if comment is None or issue_number is None:
        return HandlerResult.skipped()

    commands = [
        (bool(match.group(1)), f"stage/{match.group(2).lower()}")
        for match in STAGE_RE.finditer(comment.body.strip())
    ]
    if not commands:
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context).bind(issue_number=issue_number)
    owner, repo = split_repository(payload, context.repository)
    took_action = False

    github = GitHubClient.from_context(context)
    try:
        labels = set(await github.get_label_names(owner, repo, issue_number))

        for remove, label in commands:
            if remove and label in labels:
                await github.remove_label(owner, repo, issue_number, label)
                labels.discard(label)
                log.info("Removed stage label", label=label)
                took_action = True
            elif not remove and label not in labels:
                for other in STAGE_LABELS:
                    if other != label and other in labels:
                        await github.remove_label(owner, repo, issue_number, other)
                        labels.discard(other)
                        log.info("Removed conflicting stage label", label=other)
                await github.add_labels(owner, repo, issue_number, [label])
                labels.add(label)
                log.info("Added stage label", label=label)
                took_action = True
    finally:
        await github.close()

    if not took_action:
        return HandlerResult.skipped()

    agent.took_action()
    agent.set_output("stage_action", "stage-updated")
    agent.set_output("issue_number", str(issue_number))
    return HandlerResult(
        success=True,
        took_action=True,
        message=f"Updated stage labels on #{issue_number}",
    )


stage_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description=(
            "Labels the stage of an issue as alpha, beta or stable. Only one stage "
            "label can be applied at a time."
        ),
        commands=[
            PluginCommand(f"/stage {stage}", f"Applies the 'stage/{stage}' label", f"/stage {stage}")
            for stage in STAGES
        ]
        + [
            PluginCommand(
                f"/remove-stage {stage}",
                f"Removes the 'stage/{stage}' label",
                f"/remove-stage {stage}",
            )
            for stage in STAGES
        ],
    ),
)
