"""Unit tests for GitHubClient using httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest
from pydantic import SecretStr

from chatops.github import GitHubAPIError, GitHubClient, RateLimitError
from chatops.models import EventContext


def run_async(coro):
    return asyncio.run(coro)


def _client(handler, **kwargs):
    kwargs.setdefault("base_delay", 0.0)
    return GitHubClient(
        token="ghp_test",
        base_url="https://api.github.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _call(handler, method, *args, **kwargs):
    async def scenario():
        async with _client(handler, **kwargs) as client:
            return await getattr(client, method)(*args)

    return run_async(scenario())


def test_from_context_uses_injected_credential():
    context = EventContext(
        event_name="push",
        event_guid="1",
        github_token=SecretStr("ghp_ctx"),
        api_url="https://ghe.example.com/api/v3",
    )

    client = GitHubClient.from_context(context)

    assert client.token == "ghp_ctx"
    assert client.base_url == "https://ghe.example.com/api/v3"


def test_from_context_without_token_raises():
    with pytest.raises(GitHubAPIError):
        GitHubClient.from_context(EventContext(event_name="push", event_guid="1"))


def test_create_comment_sends_body_and_auth():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 99})

    result = _call(handler, "create_comment", "acme", "widgets", 42, "Hello")

    assert result == {"id": 99}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/repos/acme/widgets/issues/42/comments"
    assert request.headers["Authorization"] == "Bearer ghp_test"
    assert json.loads(request.content) == {"body": "Hello"}


def test_get_label_names_accepts_strings_and_objects():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"number": 1, "labels": [{"name": "bug"}, "help wanted", {}]}
        )

    assert _call(handler, "get_label_names", "acme", "widgets", 1) == ["bug", "help wanted"]


def test_remove_label_quotes_name_and_ignores_404():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(404, json={"message": "Label does not exist"})

    _call(handler, "remove_label", "acme", "widgets", 3, "do-not-merge/hold")

    assert seen[0].url.raw_path == b"/repos/acme/widgets/issues/3/labels/do-not-merge%2Fhold"


def test_list_comments_follows_pages():
    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        count = 100 if page == 1 else 2
        return httpx.Response(
            200, json=[{"id": page * 1000 + i} for i in range(count)]
        )

    comments = _call(handler, "list_comments", "acme", "widgets", 3)

    assert len(comments) == 102


def test_retries_server_errors():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(502)
        return httpx.Response(200, json=[{"name": "bug"}])

    result = _call(handler, "add_labels", "acme", "widgets", 1, ["bug"], max_retries=3)

    assert result == [{"name": "bug"}]
    assert len(attempts) == 3


def test_client_error_raises_without_retry():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(422, json={"message": "Validation Failed"})

    with pytest.raises(GitHubAPIError) as exc_info:
        _call(handler, "add_labels", "acme", "widgets", 1, ["bad"])

    assert exc_info.value.status_code == 422
    assert len(attempts) == 1


def test_rate_limit_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403,
            headers={"x-ratelimit-remaining": "0", "retry-after": "30"},
        )

    with pytest.raises(RateLimitError) as exc_info:
        _call(handler, "get_issue", "acme", "widgets", 1)

    assert exc_info.value.retry_after == 30


def test_network_errors_exhaust_retries():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GitHubAPIError, match="after 2 retries"):
        _call(handler, "get_issue", "acme", "widgets", 1, max_retries=2)


@pytest.mark.parametrize("status, expected", [(204, True), (404, False)])
def test_is_collaborator(status, expected):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status)

    assert _call(handler, "is_collaborator", "acme", "widgets", "octocat") is expected
    assert seen[0].url.path == "/repos/acme/widgets/collaborators/octocat"


def test_is_collaborator_propagates_other_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Bad credentials"})

    with pytest.raises(GitHubAPIError) as excinfo:
        _call(handler, "is_collaborator", "acme", "widgets", "octocat")
    assert excinfo.value.status_code == 401


@pytest.mark.parametrize(
    "method, http_method, path, key",
    [
        ("add_assignees", "POST", "/repos/acme/widgets/issues/3/assignees", "assignees"),
        ("remove_assignees", "DELETE", "/repos/acme/widgets/issues/3/assignees", "assignees"),
        ("request_reviewers", "POST", "/repos/acme/widgets/pulls/3/requested_reviewers", "reviewers"),
        (
            "remove_requested_reviewers",
            "DELETE",
            "/repos/acme/widgets/pulls/3/requested_reviewers",
            "reviewers",
        ),
    ],
)
def test_people_operations_send_logins(method, http_method, path, key):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"number": 3})

    _call(handler, method, "acme", "widgets", 3, ["alice", "bob"])

    assert seen[0].method == http_method
    assert seen[0].url.path == path
    assert json.loads(seen[0].content) == {key: ["alice", "bob"]}


@pytest.mark.parametrize(
    "method, path",
    [
        ("list_pull_request_files", "/repos/acme/widgets/pulls/8/files"),
        ("list_pull_request_commits", "/repos/acme/widgets/pulls/8/commits"),
    ],
)
def test_pull_request_listings_follow_pages(method, path):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == path
        page = int(request.url.params["page"])
        return httpx.Response(200, json=[{"page": page}] * (100 if page < 3 else 5))

    assert len(_call(handler, method, "acme", "widgets", 8)) == 205
