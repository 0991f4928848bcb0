"""Resolve a metric by walking an ordered chain of providers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from minemuse.cache import TTLCache
from minemuse.errors import MalformedResponse, OutOfRange, ProviderUnavailable
from minemuse.metrics import get_spec
from minemuse.models import Metric, MetricSpec
from minemuse.providers.base import BaseProvider
from minemuse.providers.hashrate import normalize_hashrate

logger = logging.getLogger(__name__)

NORMALIZERS: dict[str, Callable[[float], float]] = {
    "hashrate": normalize_hashrate,
}


@dataclass(frozen=True)
class Resolution:
    """A resolved value and the provider that supplied it; both None when unknown."""

    value: float | None = None
    source: str | None = None

    @property
    def known(self) -> bool:
        return self.value is not None

    def to_metric(self, spec: MetricSpec) -> Metric:
        return Metric(
            name=spec.name,
            unit=spec.unit,
            value=self.value,
            source=self.source,
            method="api" if self.known else None,
        )


UNKNOWN = Resolution()


class FallbackResolver:
    """Try providers in priority order and keep the first plausible value.

    ``resolve`` never raises. Each provider call is bounded by the
    provider's timeout; failures, malformed payloads and out-of-range
    values all advance to the next provider. Successful resolutions are
    cached by metric name when a cache is given; failures never are.
    """

    def __init__(self, cache: TTLCache | None = None):
        self.cache = cache

    async def resolve(
        self,
        metric: str,
        providers: Sequence[BaseProvider],
        normalize: Callable[[float], float] | None = None,
    ) -> Resolution:
        if self.cache is not None:
            cached = self.cache.get(metric)
            if cached is not None:
                return cached

        spec = get_spec(metric)
        normalize = normalize or NORMALIZERS.get(metric)

        for provider in providers:
            value = await self._try_provider(spec, provider, normalize)
            if value is None:
                continue
            resolution = Resolution(value=value, source=provider.name)
            if self.cache is not None:
                self.cache.set(metric, resolution)
            logger.debug("Resolved %s=%s via %s", metric, value, provider.name)
            return resolution

        logger.warning(
            "All %d providers failed for %s; value unknown", len(providers), metric,
        )
        return UNKNOWN

    async def _try_provider(
        self,
        spec: MetricSpec,
        provider: BaseProvider,
        normalize: Callable[[float], float] | None,
    ) -> float | None:
        try:
            raw = await asyncio.wait_for(provider.fetch(), timeout=provider.timeout)
            value = normalize(raw) if normalize else raw
            if not spec.accepts(value):
                raise OutOfRange(spec.name, value, spec.lower, spec.upper)
            return float(value)
        except asyncio.TimeoutError:
            logger.warning("%s: %s timed out after %.0fs", spec.name, provider.name, provider.timeout)
        except (ProviderUnavailable, MalformedResponse, OutOfRange) as exc:
            logger.warning("%s: %s", spec.name, exc)
        except Exception:
            logger.exception("%s: provider %s raised unexpectedly", spec.name, provider.name)
        return None
