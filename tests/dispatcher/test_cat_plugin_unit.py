"""Unit tests for the cat plugin."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from chatops.plugins.agent import PluginAgent
from chatops.plugins.cat import (
    BAD_CATEGORY_MESSAGE,
    CAT_API_URL,
    GRUMPY_IMG,
    UNAVAILABLE_MESSAGE,
    CatAPIError,
    fetch_cat_image,
    handle_generic_comment,
)
from chatops.plugins.images import MAX_IMAGE_SIZE, ImageFetchError


def run_async(coro):
    return asyncio.run(coro)


@pytest.fixture
def github():
    client = AsyncMock()
    with patch("chatops.plugins.cat.GitHubClient") as cls:
        cls.from_context = MagicMock(return_value=client)
        yield client


def _with_body(payload, body):
    payload = dict(payload)
    payload["comment"] = dict(payload["comment"], body=body)
    return payload


def _fetch(handler, category="", movie=False):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await fetch_cat_image(http, category, movie)

    return run_async(scenario())


def test_meow_posts_cat(github, context, comment_payload):
    agent = PluginAgent()
    fetch = AsyncMock(return_value="https://cdn2.thecatapi.com/images/a.jpg")

    with patch("chatops.plugins.cat.fetch_cat_image", fetch):
        result = run_async(
            handle_generic_comment(_with_body(comment_payload, "/meowvie funny"), context, agent)
        )

    assert result.took_action is True
    assert fetch.await_args.args[1:] == ("funny", True)
    body = github.create_comment.await_args.args[3]
    assert body.startswith("![cat](https://cdn2.thecatapi.com/images/a.jpg)")
    assert agent.get_outputs() == {"cat_posted": "true", "issue_number": "42"}


def test_unavailable_api_is_explained_then_failed(github, context, comment_payload):
    agent = PluginAgent()
    fetch = AsyncMock(side_effect=CatAPIError("API error (status 503)"))

    with patch("chatops.plugins.cat.fetch_cat_image", fetch):
        result = run_async(
            handle_generic_comment(_with_body(comment_payload, "/meow"), context, agent)
        )

    assert fetch.await_count == 3
    assert result.success is False
    assert result.message == "Could not find a valid cat image"
    assert github.create_comment.await_args.args[3].startswith(UNAVAILABLE_MESSAGE)


def test_bad_category_is_explained(github, context, comment_payload):
    fetch = AsyncMock(side_effect=CatAPIError("Bad request (status 400)", bad_request=True))

    with patch("chatops.plugins.cat.fetch_cat_image", fetch):
        run_async(
            handle_generic_comment(
                _with_body(comment_payload, "/meow nonsense"), context, PluginAgent()
            )
        )

    assert github.create_comment.await_args.args[3].startswith(BAD_CATEGORY_MESSAGE)


@pytest.mark.parametrize("body", ["meow", "/meows", "/woof"])
def test_other_comments_ignored(github, context, comment_payload, body):
    result = run_async(
        handle_generic_comment(_with_body(comment_payload, body), context, PluginAgent())
    )

    assert result.took_action is False
    github.create_comment.assert_not_awaited()


def test_grumpy_needs_no_api_call():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("unexpected request")

    assert _fetch(handler, category="Grumpy").endswith(GRUMPY_IMG)


def test_fetch_sends_category_and_gif_filter():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(CAT_API_URL):
            seen.append(request.url.params)
            return httpx.Response(200, json=[{"url": "https://cdn2.thecatapi.com/b.gif"}])
        return httpx.Response(200, headers={"content-length": "2048"})

    assert _fetch(handler, category="hats", movie=True) == "https://cdn2.thecatapi.com/b.gif"
    assert seen[0]["category_ids"] == "hats"
    assert seen[0]["mime_types"] == "gif"


def test_fetch_rejects_client_errors_and_long_cats():
    def bad_request(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400)

    with pytest.raises(CatAPIError) as excinfo:
        _fetch(bad_request, category="nope")
    assert excinfo.value.bad_request is True

    def long_cat(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(200, headers={"content-length": str(MAX_IMAGE_SIZE + 1)})
        return httpx.Response(200, json=[{"url": "https://cdn2.thecatapi.com/long.jpg"}])

    with pytest.raises(ImageFetchError, match="Longcat"):
        _fetch(long_cat)
