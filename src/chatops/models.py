"""Core event models shared by the dispatcher and its plugins.

This module defines the data models that flow through a single dispatch:
- HandlerCategory: The closed set of handler categories a plugin can serve
- EventContext: Immutable description of the event being processed
- HandlerResult: The outcome a plugin handler reports for one invocation

The models use Pydantic for validation and immutability, consistent with
the configuration approach in config.py.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr


class HandlerCategory(str, Enum):
    """Categories of handlers a plugin may implement.

    Each raw GitHub event is routed to at most one category by the
    dispatcher. The category decides which registry index is consulted
    and which payload substructures are guaranteed to be present.

    Attributes:
        ISSUE: Issue opened, edited, labeled, etc.
        ISSUE_COMMENT: Comment on an issue, with the issue present.
        PULL_REQUEST: Pull request opened, synchronized, edited, etc.
        PUSH: Commits pushed to a ref.
        REVIEW: Pull request review submitted.
        GENERIC_COMMENT: Any comment-like event (issue comment, review,
            review comment) funneled into one category.
    """

    ISSUE = "issue"
    ISSUE_COMMENT = "issue_comment"
    PULL_REQUEST = "pull_request"
    PUSH = "push"
    REVIEW = "review"
    GENERIC_COMMENT = "generic_comment"


class EventContext(BaseModel):
    """Immutable context for the event being dispatched.

    Created once per invocation and handed read-only to every plugin
    handler. The GitHub credential travels here instead of through the
    process environment.

    Attributes:
        event_name: Raw GitHub event name (e.g. "issue_comment").
        event_guid: Correlation identifier for log lines of this event.
        repository: Repository in "{owner}/{repo}" form.
        sha: Commit SHA that triggered the run.
        ref: Git ref that triggered the run.
        actor: Login of the user that triggered the run.
        workflow: Workflow name.
        run_id: Workflow run identifier.
        run_number: Workflow run number.
        github_token: Credential for the GitHub REST API.
        api_url: Base URL of the GitHub REST API.
    """

    model_config = ConfigDict(frozen=True)

    event_name: str
    event_guid: str
    repository: str = Field(default="")
    sha: str = Field(default="")
    ref: str = Field(default="")
    actor: str = Field(default="")
    workflow: str = Field(default="")
    run_id: str = Field(default="")
    run_number: str = Field(default="")
    github_token: SecretStr = Field(default=SecretStr(""))
    api_url: str = Field(default="https://api.github.com")

    @property
    def owner(self) -> str:
        """Repository owner parsed from the repository name."""
        return self.repository.partition("/")[0]

    @property
    def repo(self) -> str:
        """Repository name without the owner prefix."""
        return self.repository.partition("/")[2]


class HandlerResult(BaseModel):
    """Outcome of a single plugin handler invocation.

    Attributes:
        success: False when the handler failed or raised.
        message: Optional human-readable description of what happened.
        took_action: True when the handler produced a user-visible effect
            (a comment, a label change).
        outputs: Optional named string outputs of the handler.

    Handlers may return a plain dict instead; ``tookAction`` is accepted
    for ``took_action`` and unknown keys are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool
    message: Optional[str] = None
    took_action: bool = Field(
        default=False,
        validation_alias=AliasChoices("took_action", "tookAction"),
    )
    outputs: Optional[Dict[str, str]] = None

    @classmethod
    def skipped(cls) -> "HandlerResult":
        """Result for a handler that had nothing to do with the event."""
        return cls(success=True, took_action=False)

    @classmethod
    def failed(cls, message: str) -> "HandlerResult":
        """Result for a handler that failed without taking action."""
        return cls(success=False, took_action=False, message=message)
