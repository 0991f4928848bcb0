"""BTC/USD spot price providers."""

from __future__ import annotations

from minemuse.providers import register_provider
from minemuse.providers.base import BaseProvider


@register_provider("price", priority=10)
class CoinGeckoPrice(BaseProvider):
    source = "coingecko"
    default_base_url = "https://api.coingecko.com/api/v3"

    @property
    def name(self) -> str:
        return "coingecko"

    async def fetch(self) -> float:
        data = await self._get_dict(
            f"{self.base_url}/simple/price?ids=bitcoin&vs_currencies=usd"
        )
        return self._number((data.get("bitcoin") or {}).get("usd"), "bitcoin.usd")


@register_provider("price", priority=20)
class CoinbasePrice(BaseProvider):
    source = "coinbase"
    default_base_url = "https://api.coinbase.com/v2"

    @property
    def name(self) -> str:
        return "coinbase"

    async def fetch(self) -> float:
        data = await self._get_dict(f"{self.base_url}/exchange-rates?currency=BTC")
        rates = (data.get("data") or {}).get("rates") or {}
        return self._number(rates.get("USD"), "data.rates.USD")
