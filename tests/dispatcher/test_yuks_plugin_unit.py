"""Unit tests for the yuks plugin."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from chatops.plugins.agent import PluginAgent
from chatops.plugins.yuks import (
    JokeFetchError,
    escape_markdown,
    fetch_joke,
    handle_generic_comment,
)


def run_async(coro):
    return asyncio.run(coro)


def _with_body(payload, body):
    payload = dict(payload)
    payload["comment"] = dict(payload["comment"], body=body)
    return payload


def _fetch(handler, retries=5):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await fetch_joke(http, retries=retries)

    return run_async(scenario())


def test_escape_markdown():
    assert escape_markdown("Why? Because, it's fun!") == "Why? Because, it's fun!"
    assert escape_markdown("*bold* <b>") == "&#42;bold&#42; &#60;b&#62;"
    assert escape_markdown("é") == "&#233;"


def test_joke_posted(context, comment_payload):
    agent = PluginAgent()
    client = AsyncMock()

    with patch("chatops.plugins.yuks.GitHubClient") as cls, patch(
        "chatops.plugins.yuks.fetch_joke", AsyncMock(return_value="I'm *reading* a book")
    ):
        cls.from_context = MagicMock(return_value=client)
        result = run_async(
            handle_generic_comment(_with_body(comment_payload, "/joke"), context, agent)
        )

    assert result.took_action is True
    body = client.create_comment.await_args.args[3]
    assert body.startswith("I'm &#42;reading&#42; a book")
    assert "[/joke](https://github.com/acme/widgets/issues/42#issuecomment-1)" in body
    assert agent.get_outputs() == {"joke_posted": "true", "issue_number": "42"}


def test_fetch_retries_empty_and_failed_answers():
    answers = iter([httpx.Response(503), httpx.Response(200, json={"joke": ""})])

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["accept"] == "application/json"
        return next(answers, httpx.Response(200, json={"joke": "Dad joke"}))

    assert _fetch(handler) == "Dad joke"


def test_fetch_gives_up():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    with pytest.raises(JokeFetchError):
        _fetch(handler, retries=2)


def test_other_comments_ignored(context, comment_payload):
    with patch("chatops.plugins.yuks.GitHubClient") as cls:
        result = run_async(
            handle_generic_comment(_with_body(comment_payload, "/joke please"), context, PluginAgent())
        )

    assert result.took_action is False
    cls.from_context.assert_not_called()
