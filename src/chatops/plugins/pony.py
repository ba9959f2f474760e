"""Pony plugin: posts pony pictures from theponyapi.com.

Each ``/pony [name or tags]`` line of a comment asks for one picture, up to
MAX_PONIES per comment.
"""

import re
from typing import List

import httpx

from chatops.github.client import GitHubClient
from chatops.models import EventContext, HandlerResult
from chatops.plugins.agent import PluginAgent
from chatops.plugins.base import guarded, plugin_logger
from chatops.plugins.formatting import (
    extract_comment,
    original_comment_details,
    split_repository,
    target_number,
)
from chatops.plugins.images import (
    HTTP_TIMEOUT,
    MAX_ATTEMPTS,
    ImageFetchError,
    image_size_ok,
)
from chatops.plugins.models import (
    Payload,
    Plugin,
    PluginCommand,
    PluginHandlers,
    PluginHelp,
)

PLUGIN_NAME = "pony"

PONY_API_URL = "https://theponyapi.com/api/v1/pony/random"
MAX_PONIES = 5

PONY_RE = re.compile(r"^/pony(?: +([^\r\n]+))?\s*$", re.IGNORECASE | re.MULTILINE)

NO_MATCH_MESSAGE = "Could not find a pony matching given tag(s)."
UNAVAILABLE_MESSAGE = "Failed to fetch pony image. The API may be temporarily unavailable."


def requested_tags(body: str) -> List[str]:
    """Tags of every /pony line in the comment, "" for an untagged request."""
    return [
        (match.group(1) or "").strip() for match in PONY_RE.finditer(body)
    ][:MAX_PONIES]


async def fetch_pony_image(
    http: httpx.AsyncClient, tags: str, retries: int = MAX_ATTEMPTS
) -> str:
    """Return markdown for a pony picture linking to the full size image.

    Raises:
        ImageFetchError: If every attempt returned an oversized picture.
        httpx.HTTPError: If the last attempt failed at the HTTP level.
    """
    params = {"q": tags} if tags else None

    for attempt in range(retries):
        try:
            response = await http.get(PONY_API_URL, params=params)
            response.raise_for_status()
            representations = response.json()["pony"]["representations"]
            small = representations["small"]
            full = representations["full"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError):
            if attempt == retries - 1:
                raise
            continue

        if await image_size_ok(http, small):
            return f"[![pony image]({small})]({full})"

    raise ImageFetchError("Failed to fetch valid pony image after retries")


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    if comment is None:
        return HandlerResult.skipped()

    requests = requested_tags(comment.body)
    if not requests:
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context)
    log.info("Pony command detected", requests=len(requests))

    issue_number = target_number(payload)
    if issue_number is None:
        raise ValueError("No issue or pull request number found")

    images: List[str] = []
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http:
        for tags in requests:
            try:
                images.append(await fetch_pony_image(http, tags))
            except (httpx.HTTPError, ImageFetchError) as e:
                log.error("Failed to get pony", tags=tags, error=str(e))

    owner, repo = split_repository(payload, context.repository)
    github = GitHubClient.from_context(context)
    try:
        if images:
            markdown = "\n".join(images) + "\n"
            await github.create_comment(
                owner,
                repo,
                issue_number,
                original_comment_details(markdown, comment.body, comment.author),
            )
            log.info("Posted pony images", issue_number=issue_number, count=len(images))

            agent.took_action()
            agent.set_output("pony_posted", "true")
            agent.set_output("issue_number", str(issue_number))
            return HandlerResult(
                success=True,
                took_action=True,
                message=f"Posted pony image(s) to #{issue_number}",
            )

        tags_specified = any(requests)
        apology = NO_MATCH_MESSAGE if tags_specified else UNAVAILABLE_MESSAGE
        await github.create_comment(
            owner,
            repo,
            issue_number,
            original_comment_details(apology, comment.body, comment.author),
        )
    finally:
        await github.close()

    log.error("Could not find a valid pony image", issue_number=issue_number)
    agent.took_action()
    return HandlerResult(
        success=False,
        took_action=True,
        message="Could not find a valid pony image",
    )


pony_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description="Posts pony images from theponyapi.com in response to commands",
        commands=[
            PluginCommand(
                "/pony",
                "Posts a random pony image. You can optionally specify a pony "
                "name or tag for a specific pony.",
                "/pony",
            ),
            PluginCommand(
                "/pony [name]",
                "Posts an image of a specific pony by name",
                "/pony Twilight Sparkle",
            ),
        ],
    ),
)
