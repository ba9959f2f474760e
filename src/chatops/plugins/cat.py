"""Cat plugin: posts cat pictures from thecatapi.com.

Commands:
- /meow [category]: a random cat picture
- /meowvie [category]: a random cat GIF
- /meow grumpy, /meow no: the grumpy cat
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
from chatops.plugins.images import HTTP_TIMEOUT, ImageFetchError, image_size_ok
from chatops.plugins.models import (
    Payload,
    Plugin,
    PluginCommand,
    PluginHandlers,
    PluginHelp,
)

PLUGIN_NAME = "cat"

CAT_API_URL = "https://api.thecatapi.com/v1/images/search"
GRUMPY_ROOT = "https://upload.wikimedia.org/wikipedia/commons/e/ee/"
GRUMPY_IMG = "Grumpy_Cat_by_Gage_Skidmore.jpg"

MAX_ATTEMPTS = 3

MEOW_RE = re.compile(r"^/meow(vie)?(?: (.+))?\s*$", re.IGNORECASE | re.MULTILINE)
GRUMPY_RE = re.compile(r"^(no|grumpy)\s*$", re.IGNORECASE)

UNAVAILABLE_MESSAGE = (
    "The cat API (thecatapi.com) is currently unavailable. Please try again later."
)
BAD_CATEGORY_MESSAGE = (
    "Invalid category. Please see https://docs.thecatapi.com for valid categories."
)


class CatAPIError(ImageFetchError):
    """The cat API refused or failed a search."""

    def __init__(self, message: str, bad_request: bool = False):
        super().__init__(message)
        self.bad_request = bad_request


async def fetch_cat_image(http: httpx.AsyncClient, category: str, movie: bool) -> str:
    """Return the URL of a cat picture, or of a GIF when ``movie`` is set.

    Raises:
        CatAPIError: If the API answered with an error status.
        ImageFetchError: If the answer held no usable picture.
    """
    if GRUMPY_RE.match(category):
        return f"{GRUMPY_ROOT}{GRUMPY_IMG}"

    params = {"format": "json", "limit": "1"}
    if category:
        params["category_ids"] = category
    if movie:
        params["mime_types"] = "gif"

    response = await http.get(CAT_API_URL, params=params)
    if 400 <= response.status_code < 500:
        raise CatAPIError(f"Bad request (status {response.status_code})", bad_request=True)
    if response.status_code >= 500:
        raise CatAPIError(f"API error (status {response.status_code})")

    data = response.json()
    if not data:
        raise ImageFetchError("No cats in response")
    url = data[0].get("url")
    if not url:
        raise ImageFetchError("No image URL in response")
    if not await image_size_ok(http, url):
        raise ImageFetchError(f"Longcat is too long: {url}")
    return url


@guarded(PLUGIN_NAME)
async def handle_generic_comment(
    payload: Payload, context: EventContext, agent: PluginAgent
) -> HandlerResult:
    comment = extract_comment(payload)
    if comment is None:
        return HandlerResult.skipped()

    body = comment.body.strip()
    match = MEOW_RE.search(body)
    if not match:
        return HandlerResult.skipped()

    log = plugin_logger(PLUGIN_NAME, context)
    log.info("Meow command detected")

    movie = bool(match.group(1))
    category = (match.group(2) or "").strip()

    issue_number = target_number(payload)
    if issue_number is None:
        raise ValueError("No issue or pull request number found")

    image_url: Optional[str] = None
    last_error: Optional[Exception] = None
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http:
        for attempt in range(MAX_ATTEMPTS):
            try:
                image_url = await fetch_cat_image(http, category, movie)
                break
            except (
                ImageFetchError,
                httpx.HTTPError,
                AttributeError,
                KeyError,
                TypeError,
                ValueError,
            ) as e:
                last_error = e
                log.warning("Failed to get cat image", attempt=attempt + 1, error=str(e))

    owner, repo = split_repository(payload, context.repository)
    github = GitHubClient.from_context(context)
    try:
        if image_url is None:
            message = UNAVAILABLE_MESSAGE
            if category and isinstance(last_error, CatAPIError) and last_error.bad_request:
                message = BAD_CATEGORY_MESSAGE
            await github.create_comment(
                owner,
                repo,
                issue_number,
                original_comment_details(message, body, comment.author),
            )
            raise ImageFetchError("Could not find a valid cat image")

        await github.create_comment(
            owner,
            repo,
            issue_number,
            original_comment_details(f"![cat]({image_url})", body, comment.author),
        )
    finally:
        await github.close()

    log.info("Posted cat image", issue_number=issue_number)

    agent.took_action()
    agent.set_output("cat_posted", "true")
    agent.set_output("issue_number", str(issue_number))
    return HandlerResult(
        success=True,
        took_action=True,
        message=f"Posted cat image to #{issue_number}",
    )


cat_plugin = Plugin(
    name=PLUGIN_NAME,
    handlers=PluginHandlers(generic_comment=handle_generic_comment),
    help=PluginHelp(
        description="Posts cat images in response to commands",
        commands=[
            PluginCommand("/meow", "Posts a random cat image", "/meow"),
            PluginCommand(
                "/meow [category]", "Posts a cat image from a specific category", "/meow caturday"
            ),
            PluginCommand("/meowvie", "Posts a random cat GIF", "/meowvie"),
            PluginCommand(
                "/meowvie [category]", "Posts a cat GIF from a specific category", "/meowvie clothes"
            ),
        ],
    ),
)
