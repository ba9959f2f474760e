"""GitHub API client for issue and pull request interactions.

This module provides an async wrapper around the GitHub REST API for the
operations plugins need:
- Reading issues (and pull requests, which are issues) with their labels
- Creating, listing and deleting comments
- Adding and removing labels

Includes rate limiting and retry logic for API resilience. Plugins build a
client from the credential carried by the EventContext.
"""

import asyncio
import random
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import structlog

from chatops.models import EventContext

logger = structlog.get_logger()


class GitHubAPIError(Exception):
    """A GitHub REST call failed.

    Attributes:
        message: What went wrong.
        status_code: HTTP status of the failed response, if there was one.
        response_body: Raw body of the failed response.
        request_url: URL of the failed call.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """The token ran out of API quota.

    Attributes:
        reset_at: Epoch seconds at which the quota refills.
        retry_after: Seconds until a retry may succeed.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Issue, comment and label operations over the GitHub REST API.

    Transient failures (timeouts, connection errors, 408/429/5xx) are
    retried with jittered exponential backoff; quota exhaustion is raised
    immediately as RateLimitError.

    Attributes:
        token: Credential sent as a bearer token.
        base_url: REST root, api.github.com or a GitHub Enterprise /api/v3.
        max_retries: Retries after the first attempt.
        base_delay: First backoff ceiling in seconds, doubled per retry.
        max_delay: Upper bound of any single backoff.
        timeout: Per-request timeout in seconds.

    Example:
        >>> async with GitHubClient.from_context(context) as client:
        ...     await client.create_comment("owner", "repo", 123, "Hello!")
    """

    # Statuses worth another attempt
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            token: Credential for the Authorization header.
            base_url: REST root; trailing slashes are dropped.
            transport: Replacement httpx transport, for tests.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_context(cls, context: EventContext, **kwargs: Any) -> "GitHubClient":
        """Build a client from the credential injected into the context.

        Raises:
            GitHubAPIError: If the context carries no token.
        """
        token = context.github_token.get_secret_value()
        if not token:
            raise GitHubAPIError("GitHub token not found in event context")
        return cls(token=token, base_url=context.api_url, **kwargs)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "chatops-dispatcher/1.0",
        }

    async def close(self) -> None:
        """Release the underlying connection pool."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _calculate_backoff(self, attempt: int) -> float:
        """Full-jitter backoff for retry number ``attempt`` (0-based)."""
        exponential_delay = self.base_delay * (2 ** attempt)
        capped_delay = min(exponential_delay, self.max_delay)
        return random.uniform(0, capped_delay)

    @staticmethod
    def _parse_int_header(headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    def _rate_limit_error(self, response: httpx.Response) -> RateLimitError:
        """Build a RateLimitError from the rate limit headers of a response."""
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            reset_at=reset_at,
            retry_after=retry_after,
            limit=self._parse_int_header(response.headers, "x-ratelimit-limit"),
        )

        return RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
            request_url=str(response.url),
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one API call, retrying transient failures.

        Returns:
            The first non-retryable successful response.

        Raises:
            RateLimitError: As soon as the quota is exhausted.
            GitHubAPIError: For 4xx/5xx answers, or once retries run out.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(
                    method=method,
                    url=path,
                    json=json_data,
                    params=params,
                )
            except httpx.TimeoutException as e:
                last_exception = e
                reason = "Request timeout, retrying"
            except httpx.RequestError as e:
                last_exception = e
                reason = "Request error, retrying"
            else:
                remaining = self._parse_int_header(
                    response.headers, "x-ratelimit-remaining"
                )
                if response.status_code == 429 or (
                    response.status_code == 403 and remaining == 0
                ):
                    raise self._rate_limit_error(response)

                if (
                    response.status_code in self.RETRYABLE_STATUS_CODES
                    and attempt < self.max_retries
                ):
                    last_exception = None
                    reason = "Retryable error from GitHub API"
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        reason,
                        status_code=response.status_code,
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay=delay,
                        path=path,
                    )
                    await asyncio.sleep(delay)
                    continue

                if response.status_code >= 400:
                    error_body = response.text
                    logger.error(
                        "GitHub API error",
                        status_code=response.status_code,
                        path=path,
                        method=method,
                        response_body=error_body[:500],
                    )
                    raise GitHubAPIError(
                        message=f"GitHub API error: {response.status_code}",
                        status_code=response.status_code,
                        response_body=error_body,
                        request_url=str(response.url),
                    )

                return response

            if attempt < self.max_retries:
                delay = self._calculate_backoff(attempt)
                logger.warning(
                    reason,
                    error=str(last_exception),
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    delay=delay,
                    path=path,
                )
                await asyncio.sleep(delay)

        logger.error(
            "GitHub API request failed after all retries",
            path=path,
            method=method,
            max_retries=self.max_retries,
            last_error=str(last_exception),
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {last_exception}",
            request_url=f"{self.base_url}{path}",
        )

    async def get_issue(self, owner: str, repo: str, issue_number: int) -> Dict[str, Any]:
        """Get issue (or pull request) details, labels included."""
        path = f"/repos/{owner}/{repo}/issues/{issue_number}"
        logger.debug("Getting issue details", owner=owner, repo=repo, issue_number=issue_number)
        response = await self._request(method="GET", path=path)
        return response.json()

    async def get_label_names(self, owner: str, repo: str, issue_number: int) -> List[str]:
        """Return the names of the labels currently on an issue."""
        issue = await self.get_issue(owner, repo, issue_number)
        names = []
        for label in issue.get("labels") or []:
            if isinstance(label, str):
                names.append(label)
            elif isinstance(label, dict) and label.get("name"):
                names.append(label["name"])
        return names

    async def create_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Post a comment and return the created comment object."""
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/comments"

        logger.info(
            "Creating comment on issue",
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            body_length=len(body),
        )

        response = await self._request(method="POST", path=path, json_data={"body": body})
        result = response.json()

        logger.info(
            "Comment created successfully",
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            comment_id=result.get("id"),
        )
        return result

    async def _paginate(
        self, path: str, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Collect every page of a list endpoint, 100 items at a time."""
        items: List[Dict[str, Any]] = []
        page = 1

        while True:
            response = await self._request(
                method="GET",
                path=path,
                params={**(params or {}), "per_page": 100, "page": page},
            )
            batch = response.json()
            items.extend(batch)
            if len(batch) < 100:
                return items
            page += 1

    async def list_comments(
        self,
        owner: str,
        repo: str,
        issue_number: int,
    ) -> List[Dict[str, Any]]:
        """List the comments on an issue, following pagination."""
        return await self._paginate(f"/repos/{owner}/{repo}/issues/{issue_number}/comments")

    async def delete_comment(self, owner: str, repo: str, comment_id: int) -> None:
        path = f"/repos/{owner}/{repo}/issues/comments/{comment_id}"
        logger.info("Deleting comment", owner=owner, repo=repo, comment_id=comment_id)
        await self._request(method="DELETE", path=path)

    async def add_labels(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        labels: List[str],
    ) -> List[Dict[str, Any]]:
        """Add labels, returning the full label list GitHub reports back."""
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/labels"

        logger.info(
            "Adding labels to issue",
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            labels=labels,
        )

        response = await self._request(method="POST", path=path, json_data={"labels": labels})
        return response.json()

    async def remove_label(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        label: str,
    ) -> None:
        """Remove one label; a label that is not on the issue is not an error."""
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/labels/{quote(label, safe='')}"

        logger.info(
            "Removing label from issue",
            owner=owner,
            repo=repo,
            issue_number=issue_number,
            label=label,
        )

        try:
            await self._request(method="DELETE", path=path)
        except GitHubAPIError as e:
            if e.status_code == 404:
                logger.debug(
                    "Label was not on the issue",
                    issue_number=issue_number,
                    label=label,
                )
                return
            raise

    async def is_collaborator(self, owner: str, repo: str, username: str) -> bool:
        """True when ``username`` is a collaborator of the repository.

        GitHub answers 204 for collaborators and 404 for everyone else.
        """
        path = f"/repos/{owner}/{repo}/collaborators/{quote(username, safe='')}"
        try:
            await self._request(method="GET", path=path)
        except GitHubAPIError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def add_assignees(
        self, owner: str, repo: str, issue_number: int, assignees: List[str]
    ) -> Dict[str, Any]:
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/assignees"
        logger.info("Adding assignees", owner=owner, repo=repo, issue_number=issue_number, assignees=assignees)
        response = await self._request(method="POST", path=path, json_data={"assignees": assignees})
        return response.json()

    async def remove_assignees(
        self, owner: str, repo: str, issue_number: int, assignees: List[str]
    ) -> Dict[str, Any]:
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/assignees"
        logger.info("Removing assignees", owner=owner, repo=repo, issue_number=issue_number, assignees=assignees)
        response = await self._request(method="DELETE", path=path, json_data={"assignees": assignees})
        return response.json()

    async def request_reviewers(
        self, owner: str, repo: str, pr_number: int, reviewers: List[str]
    ) -> Dict[str, Any]:
        path = f"/repos/{owner}/{repo}/pulls/{pr_number}/requested_reviewers"
        logger.info("Requesting reviews", owner=owner, repo=repo, pr_number=pr_number, reviewers=reviewers)
        response = await self._request(method="POST", path=path, json_data={"reviewers": reviewers})
        return response.json()

    async def remove_requested_reviewers(
        self, owner: str, repo: str, pr_number: int, reviewers: List[str]
    ) -> None:
        path = f"/repos/{owner}/{repo}/pulls/{pr_number}/requested_reviewers"
        logger.info("Removing review requests", owner=owner, repo=repo, pr_number=pr_number, reviewers=reviewers)
        await self._request(method="DELETE", path=path, json_data={"reviewers": reviewers})

    async def list_pull_request_files(
        self, owner: str, repo: str, pr_number: int
    ) -> List[Dict[str, Any]]:
        """Files changed by a pull request, with their addition/deletion counts."""
        return await self._paginate(f"/repos/{owner}/{repo}/pulls/{pr_number}/files")

    async def list_pull_request_commits(
        self, owner: str, repo: str, pr_number: int
    ) -> List[Dict[str, Any]]:
        """Commits of a pull request; each entry lists its ``parents``."""
        return await self._paginate(f"/repos/{owner}/{repo}/pulls/{pr_number}/commits")
