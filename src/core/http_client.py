"""
HTTP client setup and document fetching.
"""

import logging

import httpx

from core.config import HTTP_TIMEOUT_SECONDS
from core.errors import NetworkError

logger = logging.getLogger(__name__)


def create_http_client(**kwargs) -> httpx.AsyncClient:
    """Create an async client with the configured timeout."""
    kwargs.setdefault("timeout", httpx.Timeout(HTTP_TIMEOUT_SECONDS))
    kwargs.setdefault("follow_redirects", True)
    return httpx.AsyncClient(**kwargs)


async def fetch_text(client: httpx.AsyncClient, url: str) -> str:
    """
    GET a document and return its body as text.

    Raises:
        NetworkError: transport failure or non-2xx response
    """
    if not url:
        raise NetworkError("No document URL configured")

    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e

    if response.is_error:
        raise NetworkError(
            f"Failed to fetch {url}: HTTP {response.status_code}",
            status_code=response.status_code,
        )

    logger.debug("Fetched %s (%d bytes)", url, len(response.content))
    return response.text
