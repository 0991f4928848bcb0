"""Network hashrate providers.

Upstreams disagree on units: minerstat prints EH/s, mempool.space series
have shipped both H/s and EH/s, and blockchain.info charts are GH/s.
Everything is converted to H/s before sanity checks.
"""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable

from minemuse.errors import MalformedResponse, ProviderUnavailable
from minemuse.metrics import AVG_BLOCK_TIME
from minemuse.providers import register_provider
from minemuse.providers.base import BaseProvider

# Readings below this are taken to be EH/s
UNIT_AMBIGUITY_THRESHOLD = 1e9
EH = 1e18
GH = 1e9

_MINERSTAT_PATTERN = re.compile(
    r"network\s+hashrate[^\d]*([\d,.]+)\s*E\s*H\s*/\s*s", re.IGNORECASE,
)
_SERIES_KEYS = ("hashrate", "avgHashrate", "avg_hashrate", "value", "v")


def normalize_hashrate(value: float) -> float:
    """Convert an EH/s reading to H/s; values already in H/s pass through."""
    if value < UNIT_AMBIGUITY_THRESHOLD:
        return value * EH
    return value


def hashrate_from_difficulty(difficulty: float, block_time: float = AVG_BLOCK_TIME) -> float:
    return difficulty * 2**32 / block_time


def _series_point(point: Any) -> float | None:
    if isinstance(point, (int, float)) and not isinstance(point, bool):
        return float(point)
    if isinstance(point, (list, tuple)) and len(point) >= 2:
        return _series_point(point[1])
    if isinstance(point, dict):
        for key in _SERIES_KEYS:
            if point.get(key) is not None:
                return _series_point(point[key])
    return None


def latest_series_value(payload: Any) -> float | None:
    """Pull the newest reading out of a hashrate series payload."""
    if isinstance(payload, dict):
        if payload.get("currentHashrate") is not None:
            return _series_point(payload["currentHashrate"])
        payload = payload.get("hashrates") or payload.get("values") or []
    if isinstance(payload, list) and payload:
        return _series_point(payload[-1])
    return None


@register_provider("hashrate", priority=10)
class MinerstatHashrate(BaseProvider):
    """Scrape the network hashrate figure from minerstat's coin page."""

    source = "minerstat"
    default_base_url = "https://minerstat.com"

    @property
    def name(self) -> str:
        return "minerstat"

    async def fetch(self) -> float:
        html = await self._get_text(f"{self.base_url}/coin/BTC/network-hashrate")
        match = _MINERSTAT_PATTERN.search(html)
        if not match:
            raise MalformedResponse(self.name, "hashrate not found in page")
        return self._number(match.group(1).replace(",", ""), "network hashrate") * EH


class _MempoolSeries(BaseProvider):
    source = "mempool"
    default_base_url = "https://mempool.space/api"
    window = "3d"

    @property
    def name(self) -> str:
        return f"mempool.space/{self.window}"

    async def fetch(self) -> float:
        payload = await self._get_json(f"{self.base_url}/v1/mining/hashrate/{self.window}")
        value = latest_series_value(payload)
        if value is None:
            raise MalformedResponse(self.name, "empty hashrate series")
        return value


@register_provider("hashrate", priority=20)
class MempoolHashrate3d(_MempoolSeries):
    window = "3d"


@register_provider("hashrate", priority=30)
class MempoolHashrate1y(_MempoolSeries):
    window = "1y"


@register_provider("hashrate", priority=40)
class BlockchainInfoHashrate(BaseProvider):
    source = "blockchain_info"
    default_base_url = "https://api.blockchain.info"

    @property
    def name(self) -> str:
        return "blockchain.info"

    async def fetch(self) -> float:
        data = await self._get_dict(
            f"{self.base_url}/charts/hash-rate?timespan=3days&format=json"
        )
        values = data.get("values") or []
        if not values or not isinstance(values[-1], dict):
            raise MalformedResponse(self.name, "no chart values")
        return self._number(values[-1].get("y"), "values[-1].y") * GH


class DerivedHashrate(BaseProvider):
    """Estimate hashrate from difficulty; the last link of the hashrate chain.

    Not registered: it needs a difficulty source, which the aggregator
    supplies when it builds the chain.
    """

    metric = "hashrate"
    source = "derived"

    def __init__(self, config: dict, difficulty: Callable[[], Awaitable[float | None]]):
        super().__init__(config)
        self._difficulty = difficulty

    @property
    def name(self) -> str:
        return "derived-from-difficulty"

    async def fetch(self) -> float:
        difficulty = await self._difficulty()
        if not difficulty:
            raise ProviderUnavailable(self.name, "difficulty unknown")
        return hashrate_from_difficulty(difficulty)
