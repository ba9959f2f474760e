"""Size plugin: labels pull requests by the number of lines they change."""

from dataclasses import dataclass

from chatops.github.client import GitHubAPIError, GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import split_repository
from chatops.plugins.models import Payload, Plugin, PluginHandlers, PluginHelp

PLUGIN_NAME = "size"

LABEL_PREFIX = "size/"

RELEVANT_ACTIONS = frozenset({"opened", "reopened", "synchronize", "edited"})


@dataclass(frozen=True)
class SizeThresholds:
    """Lower bounds, in changed lines, of each size above XS."""

    s: int = 10
    m: int = 30
    l: int = 100
    xl: int = 500
    xxl: int = 1000


DEFAULT_SIZES = SizeThresholds()


def size_label(line_count: int, sizes: SizeThresholds = DEFAULT_SIZES) -> str:
    """Return the size/* label for a pull request changing ``line_count`` lines."""
    if line_count < sizes.s:
        return "size/XS"
    if line_count < sizes.m:
        return "size/S"
    if line_count < sizes.l:
        return "size/M"
    if line_count < sizes.xl:
        return "size/L"
    if line_count < sizes.xxl:
        return "size/XL"
    return "size/XXL"


@guarded(PLUGIN_NAME)
async def handle_pull_request(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    log = plugin_logger(PLUGIN_NAME, context)

    action = payload.get("action")
    if action not in RELEVANT_ACTIONS:
        log.debug("Skipping pull request action", action=action)
        return HandlerResult.skipped()

    pr_number = payload["pull_request"]["number"]
    owner, repo = split_repository(payload, context.repository)
    log = log.bind(issue_number=pr_number)

    github = GitHubClient.from_context(context)
    try:
        files = await github.list_pull_request_files(owner, repo, pr_number)
        total_changes = sum(
            (f.get("additions") or 0) + (f.get("deletions") or 0) for f in files
        )
        new_label = size_label(total_changes)
        log.info("Computed size label", lines_changed=total_changes, label=new_label)

        labels = await github.get_label_names(owner, repo, pr_number)
        for old_label in labels:
            if old_label.startswith(LABEL_PREFIX) and old_label != new_label:
                try:
                    await github.remove_label(owner, repo, pr_number, old_label)
                except GitHubAPIError as e:
                    log.warning("Failed to remove old size label", label=old_label, error=str(e))

        if new_label in labels:
            log.info("Size label already present")
            return HandlerResult.skipped()

        await github.add_labels(owner, repo, pr_number, [new_label])
    finally:
        await github.close()

    agent.took_action()
    agent.set_output("size_label", new_label)
    agent.set_output("size_lines", str(total_changes))
    agent.set_output("issue_number", str(pr_number))
    return HandlerResult(
        success=True,
        took_action=True,
        message=f"Added {new_label} label to PR #{pr_number} ({total_changes} lines changed)",
    )


size_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(pull_request=handle_pull_request),
    help=PluginHelp(
        description=(
            "Labels pull requests by the number of lines changed, from 'size/XS' "
            "for very small changes to 'size/XXL' for very large ones."
        ),
    ),
)
