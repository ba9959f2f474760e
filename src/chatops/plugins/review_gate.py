"""Review-gated labels shared by the lgtm and approve plugins.

Both plugins keep one merge-gating label in sync with reviewer intent:
- A command comment from a collaborator adds or removes the label.
- A submitted review adds it (approved) or removes it (changes requested).
- New commits pushed to the pull request remove it again.

Authors can never gate their own pull request, but may withdraw the label.
"""

import re
from dataclasses import dataclass
from typing import Optional

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
from chatops.plugins.models import Payload, PluginHandlers


@dataclass(frozen=True)
class ReviewGate:
    """Describes one review-gated label.

    Attributes:
        plugin_name: Name of the owning plugin, used in logs.
        label: The label kept in sync.
        command_re: Comment command that asks for the label.
        cancel_re: Comment command that withdraws it.
        output_prefix: Prefix of the agent outputs ("lgtm" -> lgtm_action).
        added_action: Value of the action output when the label is added.
        removed_action: Value of the action output when it is removed.
        self_gate_comment: Reply to an author gating their own PR; takes
            ``login``.
        not_collaborator_comment: Reply to a non-collaborator; takes
            ``login``.
        new_commits_comment: Posted when new commits drop the label.
    """

    plugin_name: str
    label: str
    command_re: "re.Pattern[str]"
    cancel_re: "re.Pattern[str]"
    output_prefix: str
    added_action: str
    removed_action: str
    self_gate_comment: str
    not_collaborator_comment: str
    new_commits_comment: str


def _login(section: object) -> Optional[str]:
    if not isinstance(section, dict):
        return None
    user = section.get("user")
    return user.get("login") if isinstance(user, dict) else None


def _author(payload: Payload) -> Optional[str]:
    return _login(payload.get("issue")) or _login(payload.get("pull_request"))


async def _apply(
    gate: ReviewGate,
    github: GitHubClient,
    owner: str,
    repo: str,
    pr_number: int,
    wanted: bool,
    agent: PluginAgent,
    log,
) -> HandlerResult:
    has_label = gate.label in await github.get_label_names(owner, repo, pr_number)

    if has_label and not wanted:
        log.info("Removing label", label=gate.label)
        await github.remove_label(owner, repo, pr_number, gate.label)
        action = gate.removed_action
        message = f"Removed {gate.label} label from #{pr_number}"
    elif wanted and not has_label:
        log.info("Adding label", label=gate.label)
        await github.add_labels(owner, repo, pr_number, [gate.label])
        action = gate.added_action
        message = f"Added {gate.label} label to #{pr_number}"
    else:
        return HandlerResult.skipped()

    agent.took_action()
    agent.set_output(f"{gate.output_prefix}_action", action)
    agent.set_output("issue_number", str(pr_number))
    return HandlerResult(success=True, took_action=True, message=message)


def review_wish(gate: ReviewGate, payload: Payload) -> Optional[bool]:
    """What a submitted review asks for: True to add, False to remove.

    Returns None for reviews that say nothing about the label, including
    reviews whose body carries a command, which comment handling covers.
    """
    if payload.get("action") != "submitted" or not isinstance(
        payload.get("pull_request"), dict
    ):
        return None
    review = payload["review"]
    body = review.get("body") or ""
    if gate.command_re.search(body) or gate.cancel_re.search(body):
        return None

    state = (review.get("state") or "").lower()
    if state == "approved":
        return True
    if state == "changes_requested":
        return False
    return None


def command_wish(gate: ReviewGate, body: str) -> Optional[bool]:
    """What a comment asks for: True to add, False to remove, None if nothing."""
    if gate.command_re.search(body):
        return True
    if gate.cancel_re.search(body):
        return False
    return None


def create_review_gate_handlers(gate: ReviewGate) -> PluginHandlers:
    """Build the generic comment and pull request handlers for ``gate``."""

    @guarded(gate.plugin_name)
    async def handle_generic_comment(
        payload: Payload, context: EventContext, agent: PluginAgent
    ) -> HandlerResult:
        owner, repo = split_repository(payload, context.repository)

        if isinstance(payload.get("review"), dict):
            wanted = review_wish(gate, payload)
            if wanted is None:
                return HandlerResult.skipped()
            pr_number = payload["pull_request"]["number"]
            actor = _login(payload["review"])
            check_collaborator = False
        else:
            comment = extract_comment(payload)
            if comment is None or not is_pull_request(payload):
                return HandlerResult.skipped()
            pr_number = target_number(payload)
            if pr_number is None or target_state(payload) != "open":
                return HandlerResult.skipped()
            wanted = command_wish(gate, comment.body.strip())
            if wanted is None:
                return HandlerResult.skipped()
            actor = comment.author
            check_collaborator = True

        log = plugin_logger(gate.plugin_name, context).bind(
            issue_number=pr_number, actor=actor
        )
        author = _author(payload)

        github = GitHubClient.from_context(context)
        try:
            if wanted and author and actor == author:
                log.info("Author tried to gate their own pull request")
                await github.create_comment(
                    owner, repo, pr_number, gate.self_gate_comment.format(login=actor)
                )
                return HandlerResult.skipped()

            if check_collaborator and not await github.is_collaborator(owner, repo, actor):
                log.info("Commenter is not a collaborator")
                await github.create_comment(
                    owner,
                    repo,
                    pr_number,
                    gate.not_collaborator_comment.format(login=actor),
                )
                return HandlerResult.skipped()

            return await _apply(gate, github, owner, repo, pr_number, wanted, agent, log)
        finally:
            await github.close()

    @guarded(gate.plugin_name)
    async def handle_pull_request(
        payload: Payload, context: EventContext, agent: PluginAgent
    ) -> HandlerResult:
        if payload.get("action") != "synchronize":
            return HandlerResult.skipped()

        pr_number = payload["pull_request"]["number"]
        owner, repo = split_repository(payload, context.repository)
        log = plugin_logger(gate.plugin_name, context).bind(issue_number=pr_number)

        github = GitHubClient.from_context(context)
        try:
            if gate.label not in await github.get_label_names(owner, repo, pr_number):
                return HandlerResult.skipped()

            log.info("Removing label after new commits", label=gate.label)
            await github.remove_label(owner, repo, pr_number, gate.label)
            await github.create_comment(owner, repo, pr_number, gate.new_commits_comment)
        finally:
            await github.close()

        agent.took_action()
        agent.set_output(f"{gate.output_prefix}_action", gate.removed_action)
        agent.set_output(f"{gate.output_prefix}_reason", "new-commits")
        agent.set_output("issue_number", str(pr_number))
        return HandlerResult(
            success=True,
            took_action=True,
            message=f"Removed {gate.label} label from #{pr_number} due to new commits",
        )

    return PluginHandlers(
        generic_comment=handle_generic_comment,
        pull_request=handle_pull_request,
    )
