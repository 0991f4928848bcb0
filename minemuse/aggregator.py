"""Compose providers, caches and evidence extraction into data snapshots."""

from __future__ import annotations

import asyncio
import logging

from minemuse.cache import MonthlyCache, TTLCache
from minemuse.config import get_cache_ttls, get_llm_task_config
from minemuse.evidence.extractor import EvidenceExtractor
from minemuse.evidence.gather import EvidenceGatherer, SustainabilityEvidence
from minemuse.evidence.search import ExaClient
from minemuse.llm import get_provider_for_task
from minemuse.llm.base import BaseLLMProvider
from minemuse.metrics import (
    AVG_BLOCK_TIME,
    BLOCKS_PER_DAY,
    CONGESTION_HIGH,
    CONGESTION_MEDIUM,
    ENERGY_CONSUMPTION,
    EVIDENCE_KPIS,
    HALVING_INTERVAL,
    RENEWABLE_PERCENT,
    get_spec,
)
from minemuse.models import DataSnapshot, EvidenceSource, Metric, TrendData
from minemuse.providers import build_chain
from minemuse.providers.base import BaseProvider
from minemuse.providers.hashrate import DerivedHashrate
from minemuse.resolver import FallbackResolver, Resolution
from minemuse.trends import TrendCollector

logger = logging.getLogger(__name__)

ONCHAIN_METRICS = [
    "price",
    "difficulty",
    "hashrate",
    "pending_txs",
    "fee_rate",
    "block_height",
    "block_size",
    "block_fees",
]

MONTHLY_KEY = "sustainability"
SNAPSHOT_KEY = "comprehensive"


def block_reward(height: float | None) -> float | None:
    """Subsidy in BTC at a block height."""
    if height is None:
        return None
    return 50 / 2 ** (int(height) // HALVING_INTERVAL)


def congestion_level(pending_txs: float | None) -> str | None:
    if pending_txs is None:
        return None
    if pending_txs > CONGESTION_HIGH:
        return "high"
    if pending_txs > CONGESTION_MEDIUM:
        return "medium"
    return "low"


def _derived(name: str, value: float | None) -> Metric:
    spec = get_spec(name)
    if value is not None and not spec.accepts(value):
        logger.warning("Derived %s=%s outside bounds, treating as unknown", name, value)
        value = None
    return Metric(
        name=name,
        unit=spec.unit,
        value=value,
        source="derived" if value is not None else None,
        method="derived" if value is not None else None,
    )


def _task_provider(config: dict, task: str) -> BaseLLMProvider | None:
    if task not in config.get("llm", {}).get("tasks", {}):
        return None
    try:
        return get_provider_for_task(config, task)
    except ValueError:
        logger.warning("LLM task '%s' misconfigured, continuing without it", task)
        return None


class DataAggregator:
    """Produce on-chain and comprehensive DataSnapshots.

    On-chain metrics are fetched concurrently and each resolves to a
    value or unknown on its own; one failing upstream never blocks the
    others. Sustainability evidence is cached for the calendar month.
    """

    def __init__(
        self,
        config: dict,
        resolver: FallbackResolver | None = None,
        monthly_cache: MonthlyCache | None = None,
        snapshot_cache: TTLCache | None = None,
        gatherer: EvidenceGatherer | None = None,
        trends: TrendCollector | None = None,
    ):
        self.config = config
        ttls = get_cache_ttls(config)
        self.resolver = resolver or FallbackResolver(TTLCache(ttls["onchain"]))
        self.monthly_cache = monthly_cache or MonthlyCache()
        self.snapshot_cache = snapshot_cache or TTLCache(ttls["comprehensive"])

        if gatherer is None or trends is None:
            search = ExaClient(config)
            if gatherer is None:
                extract_task = get_llm_task_config(config, "extract_evidence")
                extractor = EvidenceExtractor(
                    _task_provider(config, "extract_evidence"),
                    temperature=extract_task["temperature"],
                    max_tokens=extract_task["max_tokens"],
                )
                gatherer = EvidenceGatherer(search, extractor)
            if trends is None:
                trends = TrendCollector(config, search, _task_provider(config, "plan_queries"))
        self.gatherer = gatherer
        self.trends = trends

    def chain(self, metric: str) -> list[BaseProvider]:
        providers = build_chain(self.config, metric)
        if metric == "hashrate":
            providers.append(DerivedHashrate(self.config, self._difficulty))
        return providers

    async def _difficulty(self) -> float | None:
        return (await self.resolve("difficulty")).value

    async def resolve(self, metric: str) -> Resolution:
        return await self.resolver.resolve(metric, self.chain(metric))

    async def collect_onchain(self) -> DataSnapshot:
        resolutions = await asyncio.gather(*[self.resolve(m) for m in ONCHAIN_METRICS])
        metrics = {
            name: resolution.to_metric(get_spec(name))
            for name, resolution in zip(ONCHAIN_METRICS, resolutions)
        }
        metrics.update(self._derive(metrics))

        known = sum(1 for m in metrics.values() if m.known)
        logger.info("On-chain snapshot: %d/%d metrics known", known, len(metrics))
        return DataSnapshot(
            on_chain=metrics,
            congestion=congestion_level(metrics["pending_txs"].value),
        )

    def _derive(self, metrics: dict[str, Metric]) -> dict[str, Metric]:
        price = metrics["price"].value
        reward = block_reward(metrics["block_height"].value)

        daily = None
        if reward is not None and price is not None:
            daily = reward * BLOCKS_PER_DAY * price

        return {
            "block_reward": _derived("block_reward", reward),
            "avg_block_time": Metric(
                name="avg_block_time", unit="s", value=float(AVG_BLOCK_TIME),
                source="protocol", method="derived",
            ),
            "miner_revenue_daily": _derived("miner_revenue_daily", daily),
            "miner_revenue_monthly": _derived(
                "miner_revenue_monthly", daily * 30 if daily is not None else None,
            ),
            "miner_revenue_yearly": _derived(
                "miner_revenue_yearly", daily * 365 if daily is not None else None,
            ),
        }

    async def collect_sustainability(
        self, use_cache: bool = True,
    ) -> tuple[dict[str, Metric], dict[str, EvidenceSource]]:
        consumption, cbeci_renewable = await asyncio.gather(
            self.resolve(ENERGY_CONSUMPTION.name),
            self.resolve(RENEWABLE_PERCENT.name),
        )

        if use_cache:
            evidence = await self.monthly_cache.get_or_fetch(MONTHLY_KEY, self._gather_evidence)
        else:
            evidence = await self._gather_evidence()
        evidence = evidence or SustainabilityEvidence()

        metrics = {}
        for kpi in EVIDENCE_KPIS:
            extraction = evidence.extractions.get(kpi)
            metrics[kpi] = extraction.to_metric() if extraction else Metric(
                name=kpi, unit=get_spec(kpi).unit,
            )
        # A structured API figure beats one extracted from prose
        if cbeci_renewable.known:
            metrics[RENEWABLE_PERCENT.name] = cbeci_renewable.to_metric(RENEWABLE_PERCENT)
        metrics[ENERGY_CONSUMPTION.name] = consumption.to_metric(ENERGY_CONSUMPTION)
        return metrics, dict(evidence.provenance)

    async def _gather_evidence(self) -> SustainabilityEvidence | None:
        try:
            evidence = await self.gatherer.gather()
        except Exception:
            logger.exception("Sustainability evidence gathering failed")
            return None
        if not any(e.known for e in evidence.extractions.values()):
            # Nothing found: do not pin an empty result for the whole month
            logger.warning("No sustainability KPI could be extracted")
            return None
        return evidence

    async def collect_trends(self, context: str = "") -> TrendData:
        try:
            return await self.trends.collect(context)
        except Exception:
            logger.exception("Trend collection failed")
            return TrendData()

    async def collect_comprehensive(self) -> DataSnapshot:
        cached = self.snapshot_cache.get(SNAPSHOT_KEY)
        if cached is not None:
            return cached

        onchain, (sustainability, provenance) = await asyncio.gather(
            self.collect_onchain(), self.collect_sustainability(),
        )
        trends = await self.collect_trends(_context_line(onchain))
        snapshot = DataSnapshot(
            on_chain=onchain.on_chain,
            sustainability=sustainability,
            provenance=provenance,
            trends=trends,
            congestion=onchain.congestion,
        )
        if any(m.known for m in onchain.on_chain.values() if m.method == "api"):
            self.snapshot_cache.set(SNAPSHOT_KEY, snapshot)
        else:
            logger.warning("Every on-chain provider failed; snapshot not cached")
        return snapshot

    async def diagnose_sustainability(self) -> dict:
        """Run evidence gathering without the monthly cache."""
        metrics, provenance = await self.collect_sustainability(use_cache=False)
        return {"metrics": metrics, "provenance": provenance}


def _context_line(snapshot: DataSnapshot) -> str:
    parts = []
    for name in ("price", "hashrate", "difficulty", "pending_txs"):
        value = snapshot.value(name)
        if value is not None:
            parts.append(f"{name}={value:,.0f}")
    return ", ".join(parts)
