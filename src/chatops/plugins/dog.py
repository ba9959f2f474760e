"""Dog plugin: posts dog pictures in response to comment commands.

Commands (the whole comment must be the command):
- /woof, /bark: a random picture from random.dog
- /this-is-fine, /this-is-not-fine, /this-is-unbearable: static memes
"""

import re
from typing import Optional

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

PLUGIN_NAME = "dog"

DOG_API_URL = "https://random.dog/woof.json"
FINE_IMAGES_ROOT = "https://storage.googleapis.com/this-is-fine-images/"
FINE_IMG = "this-is-fine.png"
NOT_FINE_IMG = "this-is-not-fine.png"
UNBEARABLE_IMG = "this-is-unbearable.png"

WOOF_RE = re.compile(r"^/(woof|bark)\s*$", re.IGNORECASE)
FINE_RE = re.compile(r"^/this-is-fine\s*$", re.IGNORECASE)
NOT_FINE_RE = re.compile(r"^/this-is-not-fine\s*$", re.IGNORECASE)
UNBEARABLE_RE = re.compile(r"^/this-is-unbearable\s*$", re.IGNORECASE)
FILETYPES_RE = re.compile(r"\.(jpg|jpeg|gif|png)$", re.IGNORECASE)

STATIC_IMAGES = (
    (FINE_RE, FINE_IMG),
    (NOT_FINE_RE, NOT_FINE_IMG),
    (UNBEARABLE_RE, UNBEARABLE_IMG),
)


async def fetch_dog_image(http: httpx.AsyncClient, retries: int = MAX_ATTEMPTS) -> str:
    """Fetch the URL of a random dog picture.

    Videos and pictures larger than the size limit are skipped.

    Raises:
        ImageFetchError: If no usable picture was found in ``retries`` tries.
        httpx.HTTPError: If the last attempt failed at the HTTP level.
    """
    for attempt in range(retries):
        try:
            response = await http.get(DOG_API_URL)
            response.raise_for_status()
            url = response.json()["url"]
        except (httpx.HTTPError, KeyError, TypeError, ValueError):
            if attempt == retries - 1:
                raise
            continue

        if not FILETYPES_RE.search(url):
            continue
        if await image_size_ok(http, url):
            return url

    raise ImageFetchError("Failed to fetch valid dog image after retries")


async def image_for_command(body: str) -> Optional[str]:
    """Return the picture URL for a dog command, or None for other text."""
    if WOOF_RE.match(body):
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http:
            return await fetch_dog_image(http)
    for pattern, image in STATIC_IMAGES:
        if pattern.match(body):
            return f"{FINE_IMAGES_ROOT}{image}"
    return None


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    if comment is None:
        return HandlerResult.skipped()

    body = comment.body.strip()
    image_url = await image_for_command(body)
    if not image_url:
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context)
    log.info("Dog command detected", image_url=image_url)

    issue_number = target_number(payload)
    if issue_number is None:
        raise ValueError("No issue or pull request number found")

    owner, repo = split_repository(payload, context.repository)
    github = GitHubClient.from_context(context)
    try:
        await github.create_comment(
            owner,
            repo,
            issue_number,
            original_comment_details(f"![dog]({image_url})", body, comment.author),
        )
    finally:
        await github.close()

    log.info("Posted dog image", issue_number=issue_number)

    agent.took_action()
    agent.set_output("dog_posted", "true")
    agent.set_output("issue_number", str(issue_number))

    return HandlerResult(
        success=True,
        took_action=True,
        message=f"Posted dog image to #{issue_number}",
    )


dog_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description="Posts dog images in response to commands",
        commands=[
            PluginCommand("/woof", "Posts a random dog image", "/woof"),
            PluginCommand("/bark", "Posts a random dog image (alias for /woof)", "/bark"),
            PluginCommand("/this-is-fine", 'Posts the "this is fine" meme', "/this-is-fine"),
            PluginCommand(
                "/this-is-not-fine",
                'Posts the "this is not fine" meme',
                "/this-is-not-fine",
            ),
            PluginCommand(
                "/this-is-unbearable",
                'Posts the "this is unbearable" meme',
                "/this-is-unbearable",
            ),
        ],
    ),
)
