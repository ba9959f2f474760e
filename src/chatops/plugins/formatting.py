"""Shared payload accessors and markdown helpers for plugins.

Generic comment handlers receive payloads from three different webhooks
(issue_comment, pull_request_review, pull_request_review_comment). The
accessors here hide those differences: a review is treated as a comment,
and the target number comes from the issue or the pull request.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

Payload = Dict[str, Any]


@dataclass
class CommentInfo:
    """The comment-like part of a generic comment payload."""

    body: str
    author: str
    html_url: str


def extract_comment(payload: Payload) -> Optional[CommentInfo]:
    """Return the comment (or review) carried by the payload.

    Returns None when neither is present or the body is empty.
    """
    source = payload.get("comment")
    if not isinstance(source, dict):
        source = payload.get("review")
    if not isinstance(source, dict):
        return None

    body = source.get("body")
    if not isinstance(body, str) or not body:
        return None

    user = source.get("user") or {}
    return CommentInfo(
        body=body,
        author=user.get("login", "") if isinstance(user, dict) else "",
        html_url=source.get("html_url", ""),
    )


def _target(payload: Payload) -> Dict[str, Any]:
    for key in ("issue", "pull_request"):
        value = payload.get(key)
        if isinstance(value, dict):
            return value
    return {}


def target_number(payload: Payload) -> Optional[int]:
    """Number of the issue or pull request the event is about."""
    number = _target(payload).get("number")
    return number if isinstance(number, int) and number > 0 else None


def target_state(payload: Payload) -> Optional[str]:
    """State ("open"/"closed") of the issue or pull request."""
    return _target(payload).get("state")


def is_pull_request(payload: Payload) -> bool:
    """True when the event concerns a pull request.

    Issue comments on pull requests carry ``issue.pull_request``.
    """
    if isinstance(payload.get("pull_request"), dict):
        return True
    issue = payload.get("issue")
    return isinstance(issue, dict) and bool(issue.get("pull_request"))


def split_repository(payload: Payload, fallback: str = "") -> Tuple[str, str]:
    """Return (owner, repo) from ``repository.full_name``.

    Args:
        payload: Raw webhook payload.
        fallback: "{owner}/{repo}" used when the payload has no repository.
    """
    repository = payload.get("repository")
    full_name = ""
    if isinstance(repository, dict):
        full_name = repository.get("full_name") or ""
    owner, _, repo = (full_name or fallback).partition("/")
    return owner, repo


def original_comment_details(markdown: str, original_comment: str, author: str) -> str:
    """Append the triggering comment in a collapsed details block."""
    return f"""{markdown}

<details>
<summary>Original comment by @{author}</summary>

{original_comment}

</details>"""


def quoted_response(message: str, body: str, html_url: str) -> str:
    """Append the triggering comment as a quote linking back to it."""
    quoted = "\n> ".join(body.split("\n"))
    return f"""{message}

<details>
<summary>In response to <a href="{html_url}">this</a>:</summary>

> {quoted}
</details>"""
