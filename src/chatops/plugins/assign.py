"""Assign plugin: assignees and review requests from comment commands.

Commands may name users (with or without a leading '@'); without names
they apply to the commenter:
- /assign, /unassign: issue and pull request assignees
- /cc, /uncc: review requests, pull requests only
"""

import re
from typing import List, Tuple

from chatops.github.client import GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import (
    extract_comment,
    is_pull_request,
    split_repository,
    target_number,
)
from chatops.plugins.models import (
    Payload,
    Plugin,
    PluginCommand,
    PluginHandlers,
    PluginHelp,
)

PLUGIN_NAME = "assign"

ASSIGN_RE = re.compile(
    r"^(/unassign|/assign)((?:[ \t]+@?[-\w]+)*)[ \t]*$", re.IGNORECASE | re.MULTILINE
)
CC_RE = re.compile(
    r"^(/(un)?cc)((?:[ \t]+@?[-/\w]+)*)[ \t]*$", re.IGNORECASE | re.MULTILINE
)


def parse_logins(text: str) -> List[str]:
    """Split command arguments into logins, dropping any leading '@'."""
    return [part.lstrip("@") for part in text.split() if part.lstrip("@")]


def parse_assign_commands(body: str, commenter: str) -> Tuple[List[str], List[str]]:
    """Return (logins to assign, logins to unassign) requested by ``body``."""
    to_add: List[str] = []
    to_remove: List[str] = []
    for match in ASSIGN_RE.finditer(body):
        logins = parse_logins(match.group(2)) or [commenter]
        if match.group(1).lower() == "/unassign":
            to_remove.extend(logins)
        else:
            to_add.extend(logins)
    return to_add, to_remove


def parse_cc_commands(body: str, commenter: str) -> Tuple[List[str], List[str]]:
    """Return (reviewers to request, reviewers to unrequest) from ``body``."""
    to_request: List[str] = []
    to_unrequest: List[str] = []
    for match in CC_RE.finditer(body):
        logins = parse_logins(match.group(3)) or [commenter]
        if match.group(2):
            to_unrequest.extend(logins)
        else:
            to_request.extend(logins)
    return to_request, to_unrequest


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    issue_number = target_number(payload)
    if comment is None or issue_number is None:
        return HandlerResult.skipped()

    to_add, to_remove = parse_assign_commands(comment.body, comment.author)
    to_request: List[str] = []
    to_unrequest: List[str] = []
    if is_pull_request(payload):
        to_request, to_unrequest = parse_cc_commands(comment.body, comment.author)

    if not (to_add or to_remove or to_request or to_unrequest):
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context).bind(issue_number=issue_number)
    owner, repo = split_repository(payload, context.repository)

    github = GitHubClient.from_context(context)
    try:
        if to_remove:
            log.info("Removing assignees", assignees=to_remove)
            await github.remove_assignees(owner, repo, issue_number, to_remove)
        if to_add:
            log.info("Adding assignees", assignees=to_add)
            await github.add_assignees(owner, repo, issue_number, to_add)
        if to_unrequest:
            log.info("Removing review requests", reviewers=to_unrequest)
            await github.remove_requested_reviewers(owner, repo, issue_number, to_unrequest)
        if to_request:
            log.info("Requesting reviews", reviewers=to_request)
            await github.request_reviewers(owner, repo, issue_number, to_request)
    finally:
        await github.close()

    agent.took_action()
    # Review requests are reported over assignee changes when both happen.
    if to_request or to_unrequest:
        agent.set_output("assign_action", "reviewers-updated")
    else:
        agent.set_output("assign_action", "assignees-updated")
    agent.set_output("issue_number", str(issue_number))
    return HandlerResult(success=True, took_action=True)


assign_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description=(
            "Assigns or unassigns users on issues and pull requests, and requests "
            "or withdraws reviews on pull requests."
        ),
        commands=[
            PluginCommand(
                "/assign",
                "Assigns the commenter or the named users to the issue or PR",
                "/assign @user1 @user2",
            ),
            PluginCommand(
                "/unassign",
                "Removes the commenter or the named users from the assignees",
                "/unassign @user1",
            ),
            PluginCommand(
                "/cc",
                "Requests a review from the commenter or the named users on a PR",
                "/cc @user1 @user2",
            ),
            PluginCommand(
                "/uncc",
                "Withdraws the review request of the named users on a PR",
                "/uncc @user1",
            ),
        ],
    ),
)
