"""Tip block data from Blockstream's Esplora API."""

from __future__ import annotations

import logging

from minemuse.cache import TTLCache
from minemuse.errors import MalformedResponse, ProviderUnavailable
from minemuse.providers import register_provider
from minemuse.providers.base import BaseProvider

logger = logging.getLogger(__name__)

# Height, size, fees and difficulty all come from the same tip block;
# share one lookup between the providers that read it.
_tip_cache = TTLCache(ttl=30)


class _Blockstream(BaseProvider):
    source = "blockstream"
    default_base_url = "https://blockstream.info/api"

    @property
    def name(self) -> str:
        return "blockstream"

    async def _tip_height(self) -> int:
        text = await self._get_text(f"{self.base_url}/blocks/tip/height")
        try:
            return int(text.strip())
        except ValueError as exc:
            raise MalformedResponse(self.name, f"tip height {text[:40]!r}") from exc

    async def _block_at(self, height: int) -> dict:
        block_hash = (await self._get_text(f"{self.base_url}/block-height/{height}")).strip()
        if not block_hash:
            raise MalformedResponse(self.name, f"no hash for height {height}")
        return await self._get_dict(f"{self.base_url}/block/{block_hash}")

    async def _load_tip(self) -> dict:
        height = await self._tip_height()
        try:
            block = await self._block_at(height)
        except (ProviderUnavailable, MalformedResponse):
            # The newest block is sometimes not indexed yet
            logger.debug("Tip %d not indexed, falling back to %d", height, height - 1)
            height -= 1
            block = await self._block_at(height)
        block.setdefault("height", height)
        return block

    async def tip_block(self) -> dict:
        return await _tip_cache.get_or_fetch(self.base_url, self._load_tip)


@register_provider("block_height", priority=10)
class BlockstreamHeight(_Blockstream):

    async def fetch(self) -> float:
        return float(await self._tip_height())


@register_provider("block_size", priority=10)
class BlockstreamBlockSize(_Blockstream):

    async def fetch(self) -> float:
        block = await self.tip_block()
        return self._number(block.get("size"), "size")


@register_provider("block_fees", priority=10)
class BlockstreamBlockFees(_Blockstream):
    """Total fees of the tip block in satoshis."""

    async def fetch(self) -> float:
        block = await self.tip_block()
        return self._number(block.get("fee", block.get("fees")), "fee")


def clear_tip_cache() -> None:
    _tip_cache.invalidate()
