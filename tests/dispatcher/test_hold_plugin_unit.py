"""Unit tests for the hold plugin."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatops.plugins.agent import PluginAgent
from chatops.plugins.hold import HOLD_LABEL, handle_generic_comment


def run_async(coro):
    return asyncio.run(coro)


def _handle(payload, context, labels, agent=None):
    client = AsyncMock()
    client.get_label_names.return_value = labels
    with patch("chatops.plugins.hold.GitHubClient") as cls:
        cls.from_context = MagicMock(return_value=client)
        result = run_async(handle_generic_comment(payload, context, agent or PluginAgent()))
    return result, client


def _with_body(payload, body):
    payload = dict(payload)
    payload["comment"] = dict(payload["comment"], body=body)
    return payload


@pytest.mark.parametrize("body", ["/hold", "/HOLD until tests pass", "lgtm\n/hold"])
def test_hold_adds_label(context, pr_comment_payload, body):
    agent = PluginAgent()

    result, client = _handle(_with_body(pr_comment_payload, body), context, [], agent)

    assert result.took_action is True
    client.add_labels.assert_awaited_once_with("acme", "widgets", 7, [HOLD_LABEL])
    assert agent.get_outputs() == {"hold_action": "hold-added", "issue_number": "7"}


@pytest.mark.parametrize("body", ["/hold cancel", "/unhold", "/remove-hold"])
def test_cancel_removes_label(context, pr_comment_payload, body):
    agent = PluginAgent()

    result, client = _handle(
        _with_body(pr_comment_payload, body), context, [HOLD_LABEL], agent
    )

    assert result.took_action is True
    client.remove_label.assert_awaited_once_with("acme", "widgets", 7, HOLD_LABEL)
    client.add_labels.assert_not_awaited()
    assert agent.get_outputs()["hold_action"] == "hold-removed"


def test_no_change_when_already_held(context, pr_comment_payload):
    result, client = _handle(_with_body(pr_comment_payload, "/hold"), context, [HOLD_LABEL])

    assert result.took_action is False
    client.add_labels.assert_not_awaited()


def test_issues_are_ignored(context, comment_payload):
    result, client = _handle(_with_body(comment_payload, "/hold"), context, [])

    assert result.took_action is False
    client.get_label_names.assert_not_awaited()


def test_closed_pull_requests_are_ignored(context, pr_comment_payload):
    payload = _with_body(pr_comment_payload, "/hold")
    payload["issue"] = dict(payload["issue"], state="closed")

    result, client = _handle(payload, context, [])

    assert result.took_action is False


def test_review_on_open_pull_request(context):
    payload = {
        "review": {"body": "/hold", "user": {"login": "reviewer"}},
        "pull_request": {"number": 11, "state": "open"},
        "repository": {"full_name": "acme/widgets"},
    }

    result, client = _handle(payload, context, [])

    assert result.took_action is True
    client.add_labels.assert_awaited_once_with("acme", "widgets", 11, [HOLD_LABEL])
