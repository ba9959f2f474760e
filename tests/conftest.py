"""Pytest configuration for all tests."""

from typing import Any, Dict

import pytest
from prometheus_client import CollectorRegistry
from pydantic import SecretStr

from chatops.metrics import DispatchMetrics
from chatops.models import EventContext


@pytest.fixture
def metrics() -> DispatchMetrics:
    """Metrics bound to a private registry so tests never collide."""
    return DispatchMetrics(registry=CollectorRegistry())


@pytest.fixture
def context() -> EventContext:
    return EventContext(
        event_name="issue_comment",
        event_guid="1234",
        repository="acme/widgets",
        sha="deadbeef",
        ref="refs/heads/main",
        actor="octocat",
        workflow="chatops",
        run_id="1234",
        run_number="7",
        github_token=SecretStr("ghp_test"),
    )


@pytest.fixture
def comment_payload() -> Dict[str, Any]:
    """issue_comment payload on an open issue."""
    return {
        "action": "created",
        "issue": {"number": 42, "state": "open", "title": "Broken build"},
        "comment": {
            "body": "/woof",
            "user": {"login": "octocat"},
            "html_url": "https://github.com/acme/widgets/issues/42#issuecomment-1",
        },
        "repository": {"full_name": "acme/widgets"},
    }


@pytest.fixture
def pr_comment_payload(comment_payload) -> Dict[str, Any]:
    """issue_comment payload on an open pull request."""
    payload = dict(comment_payload)
    payload["issue"] = {
        "number": 7,
        "state": "open",
        "pull_request": {"url": "https://api.github.com/repos/acme/widgets/pulls/7"},
    }
    return payload
