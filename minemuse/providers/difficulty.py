"""Network difficulty providers."""

from __future__ import annotations

from minemuse.providers import register_provider
from minemuse.providers.base import BaseProvider
from minemuse.providers.blocks import _Blockstream


@register_provider("difficulty", priority=10)
class BlockstreamDifficulty(_Blockstream):

    async def fetch(self) -> float:
        block = await self.tip_block()
        return self._number(block.get("difficulty"), "difficulty")


@register_provider("difficulty", priority=20)
class MempoolDifficulty(BaseProvider):
    source = "mempool"
    default_base_url = "https://mempool.space/api"

    @property
    def name(self) -> str:
        return "mempool.space"

    async def fetch(self) -> float:
        data = await self._get_dict(f"{self.base_url}/v1/difficulty-adjustment")
        # Newer deployments dropped the absolute value from this endpoint
        value = data.get("difficulty", data.get("currentDifficulty"))
        return self._number(value, "difficulty")
