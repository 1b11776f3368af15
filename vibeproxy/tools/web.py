"""Web page fetching for the agent's web tool."""

import logging
import re
from typing import Optional

import httpx

from vibeproxy.constants import DEFAULT_WEB_FETCH_CHARS, WEB_FETCH_TIMEOUT

logger = logging.getLogger(__name__)

SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")


def html_to_text(html: str, limit: int = DEFAULT_WEB_FETCH_CHARS) -> str:
    """Strip markup from an HTML page and truncate it.

    Args:
        html: Page source
        limit: Maximum number of characters to keep

    Returns:
        Plain text with collapsed whitespace
    """
    text = SCRIPT_RE.sub("", html)
    text = STYLE_RE.sub("", text)
    text = TAG_RE.sub(" ", text)
    text = WHITESPACE_RE.sub(" ", text).strip()
    return text[:limit]


async def fetch_page(
    url: str,
    limit: int = DEFAULT_WEB_FETCH_CHARS,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """Fetch a page as plain text.

    Never raises: a failed fetch is reported as a descriptive string.

    Args:
        url: Page URL
        limit: Maximum number of characters to return
        client: Optional shared HTTP client

    Returns:
        Page text, or a message describing the failure
    """
    try:
        if client is not None:
            response = await client.get(url, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=WEB_FETCH_TIMEOUT, follow_redirects=True) as c:
                response = await c.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.warning("Fetching %s returned %s", url, e.response.status_code)
        return f"Failed to fetch {url}: HTTP {e.response.status_code}"
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        logger.warning("Fetching %s failed: %s", url, e)
        return f"Failed to fetch {url}: {e}"

    return html_to_text(response.text, limit)
