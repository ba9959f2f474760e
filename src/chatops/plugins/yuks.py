"""Yuks plugin: answers /joke with a dad joke from icanhazdadjoke.com."""

import re

import httpx

from chatops.github.client import GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import extract_comment, split_repository, target_number
from chatops.plugins.images import HTTP_TIMEOUT
from chatops.plugins.models import (
    Payload,
    Plugin,
    PluginCommand,
    PluginHandlers,
    PluginHelp,
)

PLUGIN_NAME = "yuks"

JOKE_API_URL = "https://icanhazdadjoke.com"

MAX_ATTEMPTS = 5

JOKE_RE = re.compile(r"^/joke\s*$", re.IGNORECASE | re.MULTILINE)
SIMPLE_RE = re.compile(r"^[\w?'!., ]$", re.ASCII)


class JokeFetchError(Exception):
    """Raised when no joke could be fetched."""


def escape_markdown(text: str) -> str:
    """Replace every character that could be markdown with a numeric entity."""
    return "".join(
        char if SIMPLE_RE.match(char) else f"&#{ord(char)};" for char in text
    )


def joke_response(joke: str, original_comment: str, author: str, comment_url: str) -> str:
    return f"""{joke}

<details>
<summary>Original comment by @{author}</summary>

[{original_comment}]({comment_url})

</details>"""


async def fetch_joke(http: httpx.AsyncClient, retries: int = MAX_ATTEMPTS) -> str:
    """Fetch a non-empty joke.

    Raises:
        JokeFetchError: If every attempt failed or returned nothing.
    """
    for _ in range(retries):
        try:
            response = await http.get(JOKE_API_URL, headers={"Accept": "application/json"})
            response.raise_for_status()
            joke = response.json().get("joke")
        except (httpx.HTTPError, AttributeError, ValueError):
            continue
        if joke:
            return joke
    raise JokeFetchError(f"Failed to get joke after {retries} attempts")


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    if comment is None:
        return HandlerResult.skipped()

    body = comment.body.strip()
    if not JOKE_RE.search(body):
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context)
    log.info("Joke command detected")

    issue_number = target_number(payload)
    if issue_number is None:
        raise ValueError("No issue or pull request number found")

    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http:
        joke = escape_markdown(await fetch_joke(http))

    owner, repo = split_repository(payload, context.repository)
    github = GitHubClient.from_context(context)
    try:
        await github.create_comment(
            owner,
            repo,
            issue_number,
            joke_response(joke, body, comment.author, comment.html_url),
        )
    finally:
        await github.close()

    log.info("Posted joke", issue_number=issue_number)

    agent.took_action()
    agent.set_output("joke_posted", "true")
    agent.set_output("issue_number", str(issue_number))
    return HandlerResult(
        success=True,
        took_action=True,
        message=f"Posted joke to #{issue_number}",
    )


yuks_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description="Comments with a joke in response to the `/joke` command.",
        commands=[PluginCommand("/joke", "Tells a joke.", "/joke")],
    ),
)
