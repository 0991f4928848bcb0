"""Tests for snapshot aggregation."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from minemuse.aggregator import DataAggregator, block_reward, congestion_level
from minemuse.cache import MonthlyCache
from minemuse.evidence.extractor import Extraction
from minemuse.evidence.gather import SustainabilityEvidence
from minemuse.models import EvidenceSource, TrendData
from minemuse.providers.difficulty import BlockstreamDifficulty
from minemuse.providers.hashrate import DerivedHashrate
from minemuse.resolver import UNKNOWN, Resolution

SOURCE = EvidenceSource("Report", "https://example.com/report", "example.com")


class FakeResolver:
    def __init__(self, values: dict | None = None):
        self.values = values or {}
        self.calls: list[str] = []

    async def resolve(self, metric, providers, normalize=None):
        self.calls.append(metric)
        value = self.values.get(metric)
        if value is None:
            return UNKNOWN
        return Resolution(value=value, source="fake")


class FakeGatherer:
    def __init__(self, evidence=None, error=None):
        self.evidence = evidence
        self.error = error
        self.calls = 0

    async def gather(self, kpis=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.evidence


class FakeTrends:
    async def collect(self, context=""):
        return TrendData()


def _evidence(**values) -> SustainabilityEvidence:
    return SustainabilityEvidence(
        extractions={
            kpi: Extraction(kpi, value, "pattern", "consensus", (SOURCE,))
            for kpi, value in values.items()
        },
        provenance={"pue": SOURCE},
    )


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self):
        return self.now


def _aggregator(sample_config, resolver=None, gatherer=None, clock=None):
    return DataAggregator(
        sample_config,
        resolver=resolver or FakeResolver(),
        monthly_cache=MonthlyCache(now=clock) if clock else None,
        gatherer=gatherer or FakeGatherer(_evidence(pue=1.3)),
        trends=FakeTrends(),
    )


def test_block_reward_halvings():
    assert block_reward(0) == 50
    assert block_reward(840_000) == 3.125
    assert block_reward(None) is None


def test_congestion_levels():
    assert congestion_level(None) is None
    assert congestion_level(12_000) == "high"
    assert congestion_level(7_000) == "medium"
    assert congestion_level(100) == "low"


@pytest.mark.asyncio
async def test_onchain_all_unknown(sample_config):
    snapshot = await _aggregator(sample_config).collect_onchain()
    assert snapshot.value("price") is None
    assert snapshot.value("hashrate") is None
    assert snapshot.value("miner_revenue_daily") is None
    assert snapshot.congestion is None
    # Protocol constants are always known
    assert snapshot.value("avg_block_time") == 600


@pytest.mark.asyncio
async def test_onchain_derived_revenue(sample_config):
    resolver = FakeResolver({"price": 65000.0, "block_height": 840_500.0, "pending_txs": 12_000.0})
    snapshot = await _aggregator(sample_config, resolver).collect_onchain()

    assert snapshot.value("block_reward") == 3.125
    assert snapshot.value("miner_revenue_daily") == pytest.approx(3.125 * 144 * 65000)
    assert snapshot.value("miner_revenue_yearly") == pytest.approx(3.125 * 144 * 65000 * 365)
    assert snapshot.on_chain["price"].source == "fake"
    assert snapshot.congestion == "high"


@pytest.mark.asyncio
async def test_partial_failure_keeps_other_metrics(sample_config):
    resolver = FakeResolver({"difficulty": 8.3e13})
    snapshot = await _aggregator(sample_config, resolver).collect_onchain()
    assert snapshot.value("difficulty") == 8.3e13
    assert snapshot.value("price") is None
    assert snapshot.value("miner_revenue_daily") is None


@pytest.mark.asyncio
async def test_sustainability_extracted_once_per_month(sample_config):
    clock = Clock(datetime(2025, 3, 2, tzinfo=timezone.utc))
    gatherer = FakeGatherer(_evidence(pue=1.3, break_even_usd=45000))
    aggregator = _aggregator(sample_config, gatherer=gatherer, clock=clock)

    metrics, provenance = await aggregator.collect_sustainability()
    clock.now = datetime(2025, 3, 30, tzinfo=timezone.utc)
    await aggregator.collect_sustainability()

    assert gatherer.calls == 1
    assert metrics["pue"].value == 1.3
    assert metrics["pue"].evidence == (SOURCE,)
    assert metrics["break_even_usd"].value == 45000
    assert metrics["carbon_kg_per_kwh"].value is None
    assert provenance == {"pue": SOURCE}

    clock.now = datetime(2025, 4, 1, tzinfo=timezone.utc)
    await aggregator.collect_sustainability()
    assert gatherer.calls == 2


@pytest.mark.asyncio
async def test_empty_evidence_is_not_cached(sample_config):
    clock = Clock(datetime(2025, 3, 2, tzinfo=timezone.utc))
    gatherer = FakeGatherer(_evidence(pue=None))
    aggregator = _aggregator(sample_config, gatherer=gatherer, clock=clock)

    await aggregator.collect_sustainability()
    await aggregator.collect_sustainability()
    assert gatherer.calls == 2


@pytest.mark.asyncio
async def test_gather_failure_leaves_kpis_unknown(sample_config):
    gatherer = FakeGatherer(error=RuntimeError("search down"))
    metrics, provenance = await _aggregator(sample_config, gatherer=gatherer).collect_sustainability()
    assert all(metrics[kpi].value is None for kpi in ("renewable_percent", "pue"))
    assert provenance == {}


@pytest.mark.asyncio
async def test_api_renewable_share_beats_extraction(sample_config):
    resolver = FakeResolver({"renewable_percent": 58.0, "energy_consumption_twh": 150.0})
    gatherer = FakeGatherer(_evidence(renewable_percent=52.0))
    metrics, _ = await _aggregator(sample_config, resolver, gatherer).collect_sustainability()
    assert metrics["renewable_percent"].value == 58.0
    assert metrics["renewable_percent"].method == "api"
    assert metrics["energy_consumption_twh"].value == 150.0


@pytest.mark.asyncio
async def test_diagnose_bypasses_monthly_cache(sample_config):
    gatherer = FakeGatherer(_evidence(pue=1.3))
    aggregator = _aggregator(sample_config, gatherer=gatherer)
    await aggregator.collect_sustainability()
    report = await aggregator.diagnose_sustainability()
    assert gatherer.calls == 2
    assert report["metrics"]["pue"].value == 1.3


@pytest.mark.asyncio
async def test_comprehensive_snapshot_is_cached(sample_config):
    resolver = FakeResolver({"price": 65000.0})
    aggregator = _aggregator(sample_config, resolver)

    first = await aggregator.collect_comprehensive()
    calls = len(resolver.calls)
    second = await aggregator.collect_comprehensive()

    assert first is second
    assert len(resolver.calls) == calls
    assert first.sustainability["pue"].value == 1.3


@pytest.mark.asyncio
async def test_cached_snapshot_cannot_be_modified(sample_config):
    aggregator = _aggregator(sample_config, FakeResolver({"price": 65000.0}))
    cached = await aggregator.collect_comprehensive()

    with pytest.raises(dataclasses.FrozenInstanceError):
        cached.congestion = "high"
    with pytest.raises(TypeError):
        cached.on_chain["price"] = None
    with pytest.raises(TypeError):
        del cached.sustainability["pue"]

    again = await aggregator.collect_comprehensive()
    assert again.value("price") == 65000.0
    assert again.value("pue") == 1.3


@pytest.mark.asyncio
async def test_comprehensive_not_cached_when_every_provider_failed(sample_config):
    resolver = FakeResolver()
    aggregator = _aggregator(sample_config, resolver)
    await aggregator.collect_comprehensive()
    calls = len(resolver.calls)
    await aggregator.collect_comprehensive()
    assert len(resolver.calls) == 2 * calls


@pytest.mark.asyncio
async def test_hashrate_derived_from_difficulty_when_every_upstream_fails(sample_config):
    aggregator = DataAggregator(sample_config, gatherer=FakeGatherer(), trends=FakeTrends())
    chain = aggregator.chain("hashrate")
    assert isinstance(chain[-1], DerivedHashrate)
    assert len(chain) > 1

    mock_client = AsyncMock()
    mock_client.get = AsyncMock(side_effect=httpx.ConnectError("offline"))
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)

    with patch("minemuse.providers.base.httpx.AsyncClient", return_value=mock_client), \
            patch.object(BlockstreamDifficulty, "fetch", AsyncMock(return_value=8.3e13)):
        snapshot = await aggregator.collect_onchain()

    hashrate = snapshot.on_chain["hashrate"]
    assert hashrate.value == pytest.approx(8.3e13 * 2**32 / 600)
    assert hashrate.source == "derived-from-difficulty"
    assert snapshot.on_chain["difficulty"].value == 8.3e13
    assert snapshot.value("price") is None
