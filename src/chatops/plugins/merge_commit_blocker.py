"""Merge commit blocker plugin: flags pull requests containing merge commits."""

from typing import Any, Dict, List

from chatops.github.client import GitHubAPIError, GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import split_repository
from chatops.plugins.models import Payload, Plugin, PluginHandlers, PluginHelp

PLUGIN_NAME = "merge-commit-blocker"

MERGE_COMMITS_LABEL = "do-not-merge/contains-merge-commits"

RELEVANT_ACTIONS = frozenset({"opened", "reopened", "synchronize"})

COMMENT_BODY = (
    f"Adding label `{MERGE_COMMITS_LABEL}` because PR contains merge commits, "
    "which are not allowed in this repository.\n"
    "Use `git rebase` to reapply your commits on top of the target branch. "
    "Detailed instructions for doing so can be found "
    "[here](https://git-scm.com/book/en/v2/Git-Branching-Rebasing)."
)


def has_merge_commits(commits: List[Dict[str, Any]]) -> bool:
    """A merge commit is one with more than one parent."""
    return any(len(commit.get("parents") or []) > 1 for commit in commits)


async def delete_old_comments(
    github: GitHubClient, owner: str, repo: str, pr_number: int, bot_login: str, log
) -> None:
    """Delete the bot's earlier merge commit notices; failures are only logged."""
    try:
        for comment in await github.list_comments(owner, repo, pr_number):
            user = comment.get("user") or {}
            if user.get("login") == bot_login and MERGE_COMMITS_LABEL in (
                comment.get("body") or ""
            ):
                log.info("Deleting old bot comment", comment_id=comment["id"])
                await github.delete_comment(owner, repo, comment["id"])
    except GitHubAPIError as e:
        log.warning("Failed to delete old comments", error=str(e))


def create_merge_commit_blocker_plugin(bot_login: str = "github-actions[bot]") -> Plugin:
    """Build the plugin; ``bot_login`` identifies the notices it may delete."""

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
            commits = await github.list_pull_request_commits(owner, repo, pr_number)
            needs_label = has_merge_commits(commits)
            has_label = MERGE_COMMITS_LABEL in await github.get_label_names(
                owner, repo, pr_number
            )
            log.info(
                "Checked merge commits",
                commit_count=len(commits),
                has_label=has_label,
                needs_label=needs_label,
            )

            if has_label and not needs_label:
                await github.remove_label(owner, repo, pr_number, MERGE_COMMITS_LABEL)
                await delete_old_comments(github, owner, repo, pr_number, bot_login, log)
                blocker_action = "label-removed"
                message = f"Removed {MERGE_COMMITS_LABEL} label from PR #{pr_number}"
            elif needs_label and not has_label:
                await github.add_labels(owner, repo, pr_number, [MERGE_COMMITS_LABEL])
                await github.create_comment(owner, repo, pr_number, COMMENT_BODY)
                blocker_action = "label-added"
                message = f"Added {MERGE_COMMITS_LABEL} label to PR #{pr_number}"
            else:
                return HandlerResult.skipped()
        finally:
            await github.close()

        agent.took_action()
        agent.set_output("merge_commit_blocker_action", blocker_action)
        agent.set_output("issue_number", str(pr_number))
        return HandlerResult(success=True, took_action=True, message=message)

    return Plugin(
        name=PLUGIN_NAME,
        handlers=PluginHandlers(pull_request=handle_pull_request),
        help=PluginHelp(
            description=(
                "Adds the 'do-not-merge/contains-merge-commits' label to pull "
                "requests that contain merge commits, enforcing a rebase-only "
                "workflow. The label is removed once the merge commits are gone."
            ),
        ),
    )
