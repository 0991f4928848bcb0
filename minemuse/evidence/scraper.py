"""Page text extraction using trafilatura."""

from __future__ import annotations

import logging

import httpx
import trafilatura

from minemuse.retry import retry_async

logger = logging.getLogger(__name__)

MAX_PAGE_CHARS = 20_000


async def extract_page_text(url: str, timeout: float = 15) -> str | None:
    """Fetch a page and return its main text, capped at MAX_PAGE_CHARS."""
    try:
        html = await retry_async(_fetch_html, url, timeout, max_retries=2, base_delay=0.5)
    except httpx.HTTPError as exc:
        logger.debug("Fetch failed for %s: %s", url, exc)
        return None
    if not html:
        return None
    # Tables often hold the PUE and carbon figures we look for
    text = trafilatura.extract(html, include_comments=False, include_tables=True)
    if not text:
        return None
    return text[:MAX_PAGE_CHARS]


async def _fetch_html(url: str, timeout: float) -> str | None:
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.text
