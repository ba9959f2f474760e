"""LGTM plugin: manages the 'lgtm' label that gates merging."""

import re

from chatops.plugins.models import Plugin, PluginCommand, PluginHelp
from chatops.plugins.review_gate import ReviewGate, create_review_gate_handlers

PLUGIN_NAME = "lgtm"

LGTM_LABEL = "lgtm"

LGTM_GATE = ReviewGate(
    plugin_name=PLUGIN_NAME,
    label=LGTM_LABEL,
    command_re=re.compile(r"^/lgtm(\s+no-issue)?\s*$", re.IGNORECASE | re.MULTILINE),
    cancel_re=re.compile(
        r"^/(remove-lgtm|lgtm\s+cancel)\s*$", re.IGNORECASE | re.MULTILINE
    ),
    output_prefix="lgtm",
    added_action="lgtm-added",
    removed_action="lgtm-removed",
    self_gate_comment="@{login} you cannot LGTM your own PR.",
    not_collaborator_comment="@{login} changing LGTM is restricted to collaborators",
    new_commits_comment="New changes are detected. LGTM label has been removed.",
)

lgtm_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=create_review_gate_handlers(LGTM_GATE),
    help=PluginHelp(
        description=(
            "Manages the 'lgtm' (Looks Good To Me) label, which is typically "
            "used to gate merging."
        ),
        commands=[
            PluginCommand("/lgtm", "Adds the 'lgtm' label to a PR", "/lgtm"),
            PluginCommand("/lgtm cancel", "Removes the 'lgtm' label from a PR", "/lgtm cancel"),
            PluginCommand(
                "/remove-lgtm",
                "Removes the 'lgtm' label from a PR (alias for /lgtm cancel)",
                "/remove-lgtm",
            ),
        ],
    ),
)
