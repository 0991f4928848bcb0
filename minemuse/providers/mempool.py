"""Mempool statistics from mempool.space."""

from __future__ import annotations

from minemuse.providers import register_provider
from minemuse.providers.base import BaseProvider


class _MempoolSpace(BaseProvider):
    source = "mempool"
    default_base_url = "https://mempool.space/api"


@register_provider("pending_txs", priority=10)
class MempoolPendingTxs(_MempoolSpace):

    @property
    def name(self) -> str:
        return "mempool.space"

    async def fetch(self) -> float:
        data = await self._get_dict(f"{self.base_url}/mempool")
        return self._number(data.get("count"), "count")


@register_provider("fee_rate", priority=10)
class MempoolFeeRate(_MempoolSpace):
    """Fastest recommended fee in sat/vB."""

    @property
    def name(self) -> str:
        return "mempool.space"

    async def fetch(self) -> float:
        data = await self._get_dict(f"{self.base_url}/v1/fees/recommended")
        return self._number(data.get("fastestFee"), "fastestFee")
