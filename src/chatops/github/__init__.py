"""GitHub API client used by plugins for comments and labels.

Includes rate limiting and retry logic for API resilience.
"""

from chatops.github.client import GitHubAPIError, GitHubClient, RateLimitError

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "RateLimitError",
]
