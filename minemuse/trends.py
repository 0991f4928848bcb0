"""News headlines and social signals for trend context."""

from __future__ import annotations

import asyncio
import logging
import re
from collections import Counter
from datetime import datetime, timezone
from time import mktime

import feedparser
import httpx

from minemuse.config import (
    get_llm_task_config,
    get_rss_feeds,
    get_search_config,
    get_source_config,
)
from minemuse.evidence.search import ExaClient, SearchResult
from minemuse.llm import prompts
from minemuse.llm.base import BaseLLMProvider
from minemuse.models import NewsItem, SocialSignals, TrendData
from minemuse.providers.base import USER_AGENT

logger = logging.getLogger(__name__)

POSITIVE_WORDS = ("growth", "record", "renewable", "approve", "efficiency", "profit")
NEGATIVE_WORDS = ("ban", "crackdown", "loss", "halt", "delay")

HASHTAG_PATTERN = re.compile(r"#\w{3,}")

MAX_HEADLINES = 20
MAX_HASHTAGS = 10

# Rough multipliers turning search hit counts into engagement estimates
TWITTER_ENGAGEMENT_PER_HIT = 1500
TWITTER_REACH_PER_ENGAGEMENT = 12
LINKEDIN_POSTS_PER_HIT = 25
LINKEDIN_ENGAGEMENT_PER_POST = 30


def classify_sentiment(text: str) -> str:
    lowered = text.lower()
    positive = sum(lowered.count(word) for word in POSITIVE_WORDS)
    negative = sum(len(re.findall(rf"\b{word}\b", lowered)) for word in NEGATIVE_WORDS)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def extract_hashtags(texts: list[str], limit: int = MAX_HASHTAGS) -> list[str]:
    """Most frequent hashtags across texts, case-insensitive."""
    counts = Counter(
        tag.lower() for text in texts for tag in HASHTAG_PATTERN.findall(text)
    )
    return [tag for tag, _ in counts.most_common(limit)]


class TrendCollector:
    """Collect headlines from search and RSS plus search-based social signals."""

    def __init__(
        self,
        config: dict,
        search: ExaClient,
        planner: BaseLLMProvider | None = None,
    ):
        self.config = config
        self.search = search
        self.planner = planner
        self.search_cfg = get_search_config(config)

    async def collect(self, context: str = "") -> TrendData:
        news, social = await asyncio.gather(
            self.collect_news(context), self.collect_social(),
        )
        return TrendData(news=news, social=social)

    async def plan_queries(self, context: str = "") -> tuple[list[str], list[str]]:
        """Ask the LLM for search queries and domains; fall back to configured defaults."""
        queries = self.search_cfg["queries"]
        domains = self.search_cfg["domains"]
        if self.planner is None:
            return queries, domains
        task = get_llm_task_config(self.config, "plan_queries")
        try:
            response = await self.planner.complete(
                prompts.PLAN_QUERIES.format(context=context or "n/a"),
                temperature=task["temperature"],
                max_tokens=task["max_tokens"],
                json_mode=True,
            )
        except Exception:
            logger.warning("Query planning failed, using default queries", exc_info=True)
            return queries, domains

        plan = response.json()
        if isinstance(plan, dict):
            planned = [q for q in plan.get("queries") or [] if isinstance(q, str) and q.strip()]
            planned_domains = [d for d in plan.get("domains") or [] if isinstance(d, str) and "." in d]
            return planned[:6] or queries, planned_domains[:10] or domains
        return queries, domains

    async def collect_news(self, context: str = "") -> list[NewsItem]:
        queries, domains = await self.plan_queries(context)
        searched, from_feeds = await asyncio.gather(
            self.search.batch_search_unique(queries, include_domains=domains),
            self._fetch_feeds(),
        )

        items: dict[str, NewsItem] = {}
        for result in searched:
            items.setdefault(result.url, self._news_item(result))
        for item in from_feeds:
            items.setdefault(item.url, item)

        news = sorted(items.values(), key=lambda n: n.published_date or "", reverse=True)
        logger.info("Collected %d headlines", len(news))
        return news[:MAX_HEADLINES]

    def _news_item(self, result: SearchResult) -> NewsItem:
        text = " ".join([result.title] + result.highlights)
        return NewsItem(
            title=result.title,
            url=result.url,
            source=result.site,
            published_date=result.published_date,
            sentiment=classify_sentiment(text),
        )

    async def _fetch_feeds(self) -> list[NewsItem]:
        timeout = float(get_source_config(self.config, "rss")["timeout"])
        items = []
        for feed_cfg in get_rss_feeds(self.config):
            url = feed_cfg["url"]
            try:
                items.extend(await asyncio.wait_for(
                    self._parse_feed(url, feed_cfg.get("name", url), timeout), timeout,
                ))
            except asyncio.TimeoutError:
                logger.warning("RSS feed timed out after %.1fs: %s", timeout, url)
            except Exception:
                logger.exception("Failed to fetch RSS feed: %s", url)
        return items

    async def _parse_feed(self, url: str, source_name: str, timeout: float) -> list[NewsItem]:
        # feedparser fetching the URL itself would have no timeout
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            resp = await client.get(url, headers={"User-Agent": USER_AGENT})
            resp.raise_for_status()
        feed = await asyncio.to_thread(feedparser.parse, resp.text)
        items = []
        for entry in feed.entries:
            link = entry.get("link", "")
            title = entry.get("title", "")
            if not link or not title:
                continue
            published = None
            if entry.get("published_parsed"):
                published = datetime.fromtimestamp(
                    mktime(entry.published_parsed), tz=timezone.utc,
                ).isoformat()
            items.append(NewsItem(
                title=title,
                url=link,
                source=source_name,
                published_date=published,
                sentiment=classify_sentiment(f"{title} {entry.get('summary', '')}"),
            ))
        return items

    async def collect_social(self) -> SocialSignals:
        twitter, linkedin = await asyncio.gather(
            self.search.search("bitcoin mining", include_domains=["twitter.com", "x.com"]),
            self.search.search("bitcoin mining", include_domains=["linkedin.com"]),
        )
        engagement = len(twitter) * TWITTER_ENGAGEMENT_PER_HIT
        posts = len(linkedin) * LINKEDIN_POSTS_PER_HIT
        texts = [" ".join([r.title, r.text] + r.highlights) for r in twitter + linkedin]
        return SocialSignals(
            twitter_mentions=len(twitter),
            twitter_engagement=engagement,
            twitter_reach=engagement * TWITTER_REACH_PER_ENGAGEMENT,
            linkedin_posts=posts,
            linkedin_engagement=posts * LINKEDIN_ENGAGEMENT_PER_POST,
            trending_hashtags=extract_hashtags(texts),
        )
