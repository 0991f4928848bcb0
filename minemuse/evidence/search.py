"""Exa web search client."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

import httpx

from minemuse.config import get_search_config
from minemuse.models import EvidenceSource

logger = logging.getLogger(__name__)

RATE_LIMIT_RETRIES = 3
RATE_LIMIT_BACKOFF = 0.4  # seconds, multiplied by attempt number


@dataclass
class SearchResult:
    title: str
    url: str
    published_date: str | None = None
    score: float = 0.0
    highlights: list[str] = field(default_factory=list)
    text: str = ""

    @property
    def site(self) -> str:
        return urlparse(self.url).netloc.removeprefix("www.")

    def to_source(self) -> EvidenceSource:
        return EvidenceSource(
            title=self.title,
            url=self.url,
            site=self.site,
            published_date=self.published_date,
        )


class ExaClient:
    """Search and page extraction against the Exa API.

    Every method degrades to an empty result when the key is missing or
    the API fails; callers treat search as best-effort.
    """

    def __init__(self, config: dict):
        cfg = get_search_config(config)
        self.api_key = cfg["api_key"]
        self.base_url = cfg["base_url"].rstrip("/")
        self.num_results = cfg["num_results"]
        self.lookback_days = cfg["lookback_days"]
        self.timeout = cfg["timeout"]

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def search(
        self,
        query: str,
        num_results: int | None = None,
        include_domains: list[str] | None = None,
        days: int | None = None,
    ) -> list[SearchResult]:
        if not self.configured:
            logger.debug("Exa API key not configured, skipping search '%s'", query)
            return []

        num_results = num_results or self.num_results
        since = datetime.now(timezone.utc) - timedelta(days=days or self.lookback_days)
        payload = {
            "query": query,
            "numResults": num_results,
            "type": "neural",
            "useAutoprompt": True,
            "startPublishedDate": since.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            "contents": {"highlights": True},
        }
        if include_domains:
            payload["includeDomains"] = include_domains

        # 429s are common on the free tier: back off and ask for fewer results
        for attempt in range(1, RATE_LIMIT_RETRIES + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(
                        f"{self.base_url}/search", json=payload, headers=self._headers(),
                    )
                if resp.status_code == 429 and attempt < RATE_LIMIT_RETRIES:
                    await asyncio.sleep(RATE_LIMIT_BACKOFF * attempt)
                    payload["numResults"] = max(3, payload["numResults"] - 2)
                    continue
                resp.raise_for_status()
                data = resp.json()
                break
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Exa search failed for '%s': %s", query, exc)
                return []
        else:
            return []

        results = []
        for item in data.get("results", []):
            url = item.get("url", "")
            title = item.get("title") or ""
            if not url:
                continue
            results.append(SearchResult(
                title=title.strip() or url,
                url=url,
                published_date=item.get("publishedDate"),
                score=float(item.get("score") or 0.0),
                highlights=item.get("highlights") or [],
                text=item.get("text") or "",
            ))

        logger.info("Exa returned %d results for '%s'", len(results), query)
        return results

    async def batch_search_unique(
        self,
        queries: list[str],
        num_results: int | None = None,
        include_domains: list[str] | None = None,
        days: int | None = None,
    ) -> list[SearchResult]:
        """Run several searches and merge by URL.

        For duplicates the newer result wins, then the higher scored one.
        Output is newest first.
        """
        batches = await asyncio.gather(*[
            self.search(q, num_results, include_domains, days) for q in queries
        ])

        by_url: dict[str, SearchResult] = {}
        for result in (r for batch in batches for r in batch):
            current = by_url.get(result.url)
            if current is None or _prefer(result, current):
                by_url[result.url] = result

        return sorted(
            by_url.values(), key=lambda r: r.published_date or "", reverse=True,
        )

    async def extract_text(self, url: str) -> str | None:
        """Page text via Exa's extraction endpoint."""
        if not self.configured:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.base_url}/extract", json={"url": url}, headers=self._headers(),
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Exa extract failed for %s: %s", url, exc)
            return None
        text = data.get("text") if isinstance(data, dict) else None
        return text or None


def _prefer(candidate: SearchResult, current: SearchResult) -> bool:
    new_date = candidate.published_date or ""
    old_date = current.published_date or ""
    if new_date != old_date:
        return new_date > old_date
    return candidate.score > current.score
