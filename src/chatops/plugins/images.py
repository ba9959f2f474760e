"""Image lookups for the picture-posting plugins."""

import httpx

MAX_IMAGE_SIZE = 5 * 1024 * 1024

HTTP_TIMEOUT = 10.0

MAX_ATTEMPTS = 5


class ImageFetchError(Exception):
    """Raised when no usable image could be fetched."""


async def image_size_ok(http: httpx.AsyncClient, url: str) -> bool:
    """Return False only when the image is known to exceed MAX_IMAGE_SIZE.

    Servers that do not answer HEAD requests or omit Content-Length are
    given the benefit of the doubt.
    """
    try:
        response = await http.head(url, follow_redirects=True)
    except httpx.HTTPError:
        return True

    content_length = response.headers.get("content-length")
    if content_length is None:
        return True
    try:
        return int(content_length) <= MAX_IMAGE_SIZE
    except ValueError:
        return True
