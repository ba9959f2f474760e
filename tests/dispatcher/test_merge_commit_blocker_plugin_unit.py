"""Unit tests for the merge commit blocker plugin."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatops.github.client import GitHubAPIError
from chatops.plugins.agent import PluginAgent
from chatops.plugins.merge_commit_blocker import (
    COMMENT_BODY,
    MERGE_COMMITS_LABEL,
    create_merge_commit_blocker_plugin,
    has_merge_commits,
)

BOT = "chatops-bot"

LINEAR = [{"sha": "a", "parents": [{"sha": "0"}]}, {"sha": "b", "parents": [{"sha": "a"}]}]
WITH_MERGE = LINEAR + [{"sha": "m", "parents": [{"sha": "b"}, {"sha": "x"}]}]


def run_async(coro):
    return asyncio.run(coro)


def _payload(action="synchronize"):
    return {
        "action": action,
        "pull_request": {"number": 4, "state": "open"},
        "repository": {"full_name": "acme/widgets"},
    }


def _handle(payload, context, commits, labels, comments=(), agent=None):
    client = AsyncMock()
    client.list_pull_request_commits.return_value = commits
    client.get_label_names.return_value = labels
    client.list_comments.return_value = list(comments)
    handler = create_merge_commit_blocker_plugin(BOT).handlers.pull_request
    with patch("chatops.plugins.merge_commit_blocker.GitHubClient") as cls:
        cls.from_context = MagicMock(return_value=client)
        result = run_async(handler(payload, context, agent or PluginAgent()))
    return result, client


def test_has_merge_commits():
    assert has_merge_commits(WITH_MERGE) is True
    assert has_merge_commits(LINEAR) is False
    assert has_merge_commits([{"sha": "a"}]) is False


def test_merge_commit_adds_label_and_comment(context):
    agent = PluginAgent()

    result, client = _handle(_payload("opened"), context, WITH_MERGE, [], agent=agent)

    assert result.took_action is True
    client.add_labels.assert_awaited_once_with("acme", "widgets", 4, [MERGE_COMMITS_LABEL])
    client.create_comment.assert_awaited_once_with("acme", "widgets", 4, COMMENT_BODY)
    assert agent.get_outputs() == {
        "merge_commit_blocker_action": "label-added",
        "issue_number": "4",
    }


def test_rebased_pull_request_drops_label_and_bot_notices(context):
    comments = [
        {"id": 1, "user": {"login": BOT}, "body": f"Adding label `{MERGE_COMMITS_LABEL}`"},
        {"id": 2, "user": {"login": "someone"}, "body": MERGE_COMMITS_LABEL},
        {"id": 3, "user": {"login": BOT}, "body": "unrelated"},
    ]

    result, client = _handle(_payload(), context, LINEAR, [MERGE_COMMITS_LABEL], comments)

    assert result.took_action is True
    client.remove_label.assert_awaited_once_with("acme", "widgets", 4, MERGE_COMMITS_LABEL)
    client.delete_comment.assert_awaited_once_with("acme", "widgets", 1)


def test_comment_cleanup_failure_is_tolerated(context):
    client = AsyncMock()
    client.list_pull_request_commits.return_value = LINEAR
    client.get_label_names.return_value = [MERGE_COMMITS_LABEL]
    client.list_comments.side_effect = GitHubAPIError("GitHub API error: 502", status_code=502)
    handler = create_merge_commit_blocker_plugin(BOT).handlers.pull_request
    with patch("chatops.plugins.merge_commit_blocker.GitHubClient") as cls:
        cls.from_context = MagicMock(return_value=client)
        result = run_async(handler(_payload(), context, PluginAgent()))

    assert result.success is True
    assert result.took_action is True


@pytest.mark.parametrize(
    "commits, labels", [(LINEAR, []), (WITH_MERGE, [MERGE_COMMITS_LABEL])]
)
def test_label_already_in_sync(context, commits, labels):
    result, client = _handle(_payload(), context, commits, labels)

    assert result.took_action is False
    client.add_labels.assert_not_awaited()
    client.remove_label.assert_not_awaited()


def test_edited_pull_request_skipped(context):
    result, client = _handle(_payload("edited"), context, WITH_MERGE, [])

    assert result.took_action is False
    client.list_pull_request_commits.assert_not_awaited()
