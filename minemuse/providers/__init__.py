"""Metric provider registry.

Each provider fetches one metric from one upstream. Providers register
under their metric with a priority; lower priorities are tried first.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from minemuse.providers.base import BaseProvider

PROVIDERS: dict[str, list[tuple[int, type[BaseProvider]]]] = {}


def register_provider(metric: str, priority: int):
    """Decorator to register a provider class for a metric."""

    def decorator(cls):
        cls.metric = metric
        PROVIDERS.setdefault(metric, []).append((priority, cls))
        PROVIDERS[metric].sort(key=lambda entry: entry[0])
        return cls

    return decorator


def build_chain(config: dict, metric: str) -> list[BaseProvider]:
    """Instantiate the enabled providers for ``metric`` in priority order."""
    chain = []
    for _, cls in PROVIDERS.get(metric, []):
        provider = cls(config)
        if provider.enabled:
            chain.append(provider)
    return chain


# Import implementations to trigger registration
from minemuse.providers.blocks import BlockstreamHeight  # noqa: E402, F401
from minemuse.providers.cbeci import CbeciConsumption  # noqa: E402, F401
from minemuse.providers.difficulty import BlockstreamDifficulty  # noqa: E402, F401
from minemuse.providers.hashrate import MinerstatHashrate  # noqa: E402, F401
from minemuse.providers.mempool import MempoolPendingTxs  # noqa: E402, F401
from minemuse.providers.price import CoinGeckoPrice  # noqa: E402, F401
