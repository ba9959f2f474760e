"""Approve plugin: manages the 'approved' label, restricted to collaborators."""

import re

from chatops.plugins.models import Plugin, PluginCommand, PluginHelp
from chatops.plugins.review_gate import ReviewGate, create_review_gate_handlers

PLUGIN_NAME = "approve"

APPROVED_LABEL = "approved"

APPROVE_GATE = ReviewGate(
    plugin_name=PLUGIN_NAME,
    label=APPROVED_LABEL,
    command_re=re.compile(r"^/approve(\s+no-issue)?\s*$", re.IGNORECASE | re.MULTILINE),
    cancel_re=re.compile(
        r"^/(remove-approve|approve\s+cancel)\s*$", re.IGNORECASE | re.MULTILINE
    ),
    output_prefix="approve",
    added_action="approved-added",
    removed_action="approved-removed",
    self_gate_comment="@{login} you cannot approve your own PR.",
    not_collaborator_comment="@{login} changing approval is restricted to collaborators",
    new_commits_comment="New changes are detected. Approved label has been removed.",
)

approve_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=create_review_gate_handlers(APPROVE_GATE),
    help=PluginHelp(
        description=(
            "Manages the 'approved' label, which is used to gate merging. "
            "Approval is restricted to collaborators."
        ),
        commands=[
            PluginCommand("/approve", "Adds the 'approved' label to a PR", "/approve"),
            PluginCommand(
                "/approve no-issue",
                "Adds the 'approved' label to a PR without requiring an associated issue",
                "/approve no-issue",
            ),
            PluginCommand(
                "/approve cancel", "Removes the 'approved' label from a PR", "/approve cancel"
            ),
            PluginCommand(
                "/remove-approve",
                "Removes the 'approved' label from a PR (alias for /approve cancel)",
                "/remove-approve",
            ),
        ],
    ),
)
