"""Payload shape predicates for raw GitHub webhook events.

These functions gate dispatch so that handlers only ever receive payloads
carrying the substructures their category promises. They are pure, never
raise, and can be combined with ``and`` for categories requiring more than
one substructure.

GitHub Webhook Payload Structure (issue_comment event):
{
  "action": "created",
  "issue": {"number": 123, "state": "open", ...},
  "comment": {"body": "/hold", "user": {"login": "octocat"}, ...},
  "repository": {"full_name": "owner/repo", ...}
}
"""

from typing import Any, Callable, Dict, Tuple

from chatops.models import HandlerCategory


def is_valid_event(payload: Any) -> bool:
    """Return True if the payload is a non-null structured object."""
    return isinstance(payload, dict)


def _has_object(payload: Any, key: str) -> bool:
    if not isinstance(payload, dict):
        return False
    return isinstance(payload.get(key), dict)


def has_repository(payload: Any) -> bool:
    """Return True if the payload carries a ``repository`` object."""
    return _has_object(payload, "repository")


def has_issue(payload: Any) -> bool:
    """Return True if the payload carries an ``issue`` object."""
    return _has_object(payload, "issue")


def has_pull_request(payload: Any) -> bool:
    """Return True if the payload carries a ``pull_request`` object."""
    return _has_object(payload, "pull_request")


def has_comment(payload: Any) -> bool:
    """Return True if the payload carries a ``comment`` object."""
    return _has_object(payload, "comment")


def has_review(payload: Any) -> bool:
    """Return True if the payload carries a ``review`` object."""
    return _has_object(payload, "review")


Predicate = Callable[[Any], bool]

# Substructures a payload must carry before handlers of a category see it.
# Generic comments are checked per event name by the dispatcher, since the
# three events funneled into that category carry different shapes.
REQUIRED_SHAPES: Dict[HandlerCategory, Tuple[Predicate, ...]] = {
    HandlerCategory.ISSUE: (has_issue,),
    HandlerCategory.ISSUE_COMMENT: (has_comment, has_issue),
    HandlerCategory.PULL_REQUEST: (has_pull_request,),
    HandlerCategory.PUSH: (),
    HandlerCategory.REVIEW: (has_review,),
    HandlerCategory.GENERIC_COMMENT: (),
}


def satisfies(payload: Any, predicates: Tuple[Predicate, ...]) -> bool:
    """Return True if every predicate holds for the payload."""
    return all(predicate(payload) for predicate in predicates)
