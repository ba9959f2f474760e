"""Help plugin: manages the "help wanted" and "good first issue" labels.

Commands:
- /help: label the issue "help wanted" and explain what that means
- /remove-help: remove both labels and prune the bot's explanations
- /good-first-issue: label the issue "good first issue" (and "help wanted")
- /remove-good-first-issue: remove the "good first issue" label
"""

import re
from typing import Optional

from chatops.github.client import GitHubAPIError, GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import (
    extract_comment,
    quoted_response,
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

PLUGIN_NAME = "help"

HELP_LABEL = "help wanted"
GOOD_FIRST_ISSUE_LABEL = "good first issue"

DEFAULT_GUIDELINES_URL = "https://www.kubernetes.dev/docs/guide/help-wanted/"
DEFAULT_BOT_LOGIN = "github-actions[bot]"

HELP_RE = re.compile(r"^/help\s*$", re.IGNORECASE | re.MULTILINE)
HELP_REMOVE_RE = re.compile(r"^/remove-help\s*$", re.IGNORECASE | re.MULTILINE)
GOOD_FIRST_ISSUE_RE = re.compile(r"^/good-first-issue\s*$", re.IGNORECASE | re.MULTILINE)
GOOD_FIRST_ISSUE_REMOVE_RE = re.compile(
    r"^/remove-good-first-issue\s*$", re.IGNORECASE | re.MULTILINE
)

# Leading sentences of the bot's explanations, used to find them again
HELP_PRUNE_MATCH = "This request has been marked as needing help from a contributor."
GOOD_FIRST_ISSUE_PRUNE_MATCH = "This request has been marked as suitable for new contributors."


def help_message(guidelines_url: str, summary: Optional[str] = None) -> str:
    """Explanation posted when an issue is labeled "help wanted"."""
    if summary:
        requirements = (
            f"### Guidelines\n{summary}\n\n"
            f"For more details on the requirements of such an issue, please see "
            f"[here]({guidelines_url}) and ensure that they are met."
        )
    else:
        requirements = (
            f"Please ensure the request meets the requirements listed "
            f"[here]({guidelines_url})."
        )
    return f"""
{HELP_PRUNE_MATCH}

{requirements}

If this request no longer meets these requirements, the label can be removed
by commenting with the `/remove-help` command.
"""


def good_first_issue_message(guidelines_url: str, summary: Optional[str] = None) -> str:
    """Explanation posted when an issue is labeled "good first issue"."""
    url = f"{guidelines_url}#good-first-issue"
    if summary:
        requirements = (
            f"### Guidelines\n{summary}\n\n"
            f"For more details on the requirements of such an issue, please see "
            f"[here]({url}) and ensure that they are met."
        )
    else:
        requirements = (
            f"Please ensure the request meets the requirements listed [here]({url})."
        )
    return f"""
{GOOD_FIRST_ISSUE_PRUNE_MATCH}

{requirements}

If this request no longer meets these requirements, the label can be removed
by commenting with the `/remove-good-first-issue` command.
"""


async def prune_comments(
    github: GitHubClient,
    owner: str,
    repo: str,
    issue_number: int,
    bot_login: str,
    prune_match: str,
    log,
) -> int:
    """Delete the bot's earlier comments containing ``prune_match``.

    Failures are logged and swallowed; the label change has already
    happened by the time comments are pruned.

    Returns:
        Number of deleted comments.
    """
    pruned = 0
    try:
        for comment in await github.list_comments(owner, repo, issue_number):
            author = (comment.get("user") or {}).get("login")
            if author == bot_login and prune_match in (comment.get("body") or ""):
                await github.delete_comment(owner, repo, comment["id"])
                log.info("Pruned comment", comment_id=comment["id"])
                pruned += 1
    except GitHubAPIError as e:
        log.error("Failed to prune comments", error=str(e))
    return pruned


def create_help_plugin(
    guidelines_url: str = DEFAULT_GUIDELINES_URL,
    bot_login: str = DEFAULT_BOT_LOGIN,
    guidelines_summary: Optional[str] = None,
) -> Plugin:
    """Build the help plugin for a set of contribution guidelines.

    Args:
        guidelines_url: Page describing what a help-wanted issue needs.
        bot_login: Login of the account the bot comments as.
        guidelines_summary: Optional markdown summary inlined in comments.
    """

    @guarded(PLUGIN_NAME)
    async def handle_generic_comment(
        payload: Payload, context: EventContext, agent: PluginAgent
    ) -> HandlerResult:
        comment = extract_comment(payload)
        if comment is None:
            return HandlerResult.skipped()

        issue_number = target_number(payload)
        if issue_number is None or target_state(payload) != "open":
            return HandlerResult.skipped()

        body = comment.body.strip()
        if not any(
            pattern.search(body)
            for pattern in (
                HELP_RE,
                HELP_REMOVE_RE,
                GOOD_FIRST_ISSUE_RE,
                GOOD_FIRST_ISSUE_REMOVE_RE,
            )
        ):
            return HandlerResult.skipped()

        log = plugin_logger(PLUGIN_NAME, context).bind(issue_number=issue_number)
        owner, repo = split_repository(payload, context.repository)

        github = GitHubClient.from_context(context)
        try:
            labels = await github.get_label_names(owner, repo, issue_number)
            has_help = HELP_LABEL in labels
            has_good_first_issue = GOOD_FIRST_ISSUE_LABEL in labels

            if has_help and HELP_REMOVE_RE.search(body):
                await github.remove_label(owner, repo, issue_number, HELP_LABEL)
                log.info("Removed label", label=HELP_LABEL)
                await prune_comments(
                    github, owner, repo, issue_number, bot_login, HELP_PRUNE_MATCH, log
                )

                if has_good_first_issue:
                    await github.remove_label(
                        owner, repo, issue_number, GOOD_FIRST_ISSUE_LABEL
                    )
                    log.info("Removed label", label=GOOD_FIRST_ISSUE_LABEL)
                    await prune_comments(
                        github,
                        owner,
                        repo,
                        issue_number,
                        bot_login,
                        GOOD_FIRST_ISSUE_PRUNE_MATCH,
                        log,
                    )

                agent.took_action()
                agent.set_output("help_action", "help-removed")
                agent.set_output("issue_number", str(issue_number))
                return HandlerResult(
                    success=True,
                    took_action=True,
                    message=f"Removed help labels from #{issue_number}",
                )

            if not has_good_first_issue and GOOD_FIRST_ISSUE_RE.search(body):
                await github.create_comment(
                    owner,
                    repo,
                    issue_number,
                    quoted_response(
                        good_first_issue_message(guidelines_url, guidelines_summary),
                        body,
                        comment.html_url,
                    ),
                )
                await github.add_labels(owner, repo, issue_number, [GOOD_FIRST_ISSUE_LABEL])
                log.info("Added label", label=GOOD_FIRST_ISSUE_LABEL)

                if not has_help:
                    await github.add_labels(owner, repo, issue_number, [HELP_LABEL])
                    log.info("Added label", label=HELP_LABEL)

                agent.took_action()
                agent.set_output("help_action", "good-first-issue-added")
                agent.set_output("issue_number", str(issue_number))
                return HandlerResult(
                    success=True,
                    took_action=True,
                    message=f"Added good-first-issue label to #{issue_number}",
                )

            if not has_help and HELP_RE.search(body):
                await github.create_comment(
                    owner,
                    repo,
                    issue_number,
                    quoted_response(
                        help_message(guidelines_url, guidelines_summary),
                        body,
                        comment.html_url,
                    ),
                )
                await github.add_labels(owner, repo, issue_number, [HELP_LABEL])
                log.info("Added label", label=HELP_LABEL)

                agent.took_action()
                agent.set_output("help_action", "help-added")
                agent.set_output("issue_number", str(issue_number))
                return HandlerResult(
                    success=True,
                    took_action=True,
                    message=f"Added help label to #{issue_number}",
                )

            if has_good_first_issue and GOOD_FIRST_ISSUE_REMOVE_RE.search(body):
                await github.remove_label(owner, repo, issue_number, GOOD_FIRST_ISSUE_LABEL)
                log.info("Removed label", label=GOOD_FIRST_ISSUE_LABEL)
                await prune_comments(
                    github,
                    owner,
                    repo,
                    issue_number,
                    bot_login,
                    GOOD_FIRST_ISSUE_PRUNE_MATCH,
                    log,
                )

                agent.took_action()
                agent.set_output("help_action", "good-first-issue-removed")
                agent.set_output("issue_number", str(issue_number))
                return HandlerResult(
                    success=True,
                    took_action=True,
                    message=f"Removed good-first-issue label from #{issue_number}",
                )
        finally:
            await github.close()

        log.debug("Labels already in the requested state")
        return HandlerResult.skipped()

    return Plugin(
        name=PLUGIN_NAME,
        handlers=PluginHandlers(generic_comment=handle_generic_comment),
        help=PluginHelp(
            description=(
                "Adds or removes the 'help wanted' and 'good first issue' labels "
                "from issues."
            ),
            commands=[
                PluginCommand("/help", "Applies the 'help wanted' label to an issue", "/help"),
                PluginCommand(
                    "/remove-help",
                    "Removes the 'help wanted' and 'good first issue' labels from an issue",
                    "/remove-help",
                ),
                PluginCommand(
                    "/good-first-issue",
                    "Applies the 'good first issue' and 'help wanted' labels to an issue",
                    "/good-first-issue",
                ),
                PluginCommand(
                    "/remove-good-first-issue",
                    "Removes the 'good first issue' label from an issue",
                    "/remove-good-first-issue",
                ),
            ],
        ),
    )

