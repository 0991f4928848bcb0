"""Tests for provider fallback resolution."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeProvider
from minemuse.cache import TTLCache
from minemuse.errors import MalformedResponse, ProviderUnavailable
from minemuse.resolver import UNKNOWN, FallbackResolver


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _failing(n: int) -> list[FakeProvider]:
    errors = [
        ProviderUnavailable("down", "HTTP 503"),
        MalformedResponse("bad", "missing field"),
        RuntimeError("boom"),
    ]
    return [FakeProvider(f"fail-{i}", error=errors[i % len(errors)]) for i in range(n)]


@pytest.mark.asyncio
@pytest.mark.parametrize("position", [0, 1, 2, 3])
async def test_success_in_any_position(position):
    providers = _failing(3)
    providers.insert(position, FakeProvider("good", value=65000.0))

    resolution = await FallbackResolver().resolve("price", providers)

    assert resolution.value == 65000.0
    assert resolution.source == "good"


@pytest.mark.asyncio
async def test_all_failing_yields_unknown():
    resolution = await FallbackResolver().resolve("price", _failing(4))
    assert resolution is UNKNOWN
    assert resolution.value is None
    assert not resolution.known


@pytest.mark.asyncio
async def test_out_of_range_advances_to_next_provider():
    providers = [
        FakeProvider("too-low", value=5.0),
        FakeProvider("nan", value=float("nan")),
        FakeProvider("ok", value=70000.0),
    ]
    resolution = await FallbackResolver().resolve("price", providers)
    assert resolution.value == 70000.0
    assert resolution.source == "ok"


@pytest.mark.asyncio
async def test_out_of_range_is_never_clamped():
    resolution = await FallbackResolver().resolve("price", [FakeProvider("huge", value=5e7)])
    assert resolution.value is None


@pytest.mark.asyncio
async def test_zero_is_a_real_reading():
    resolution = await FallbackResolver().resolve("pending_txs", [FakeProvider("m", value=0.0)])
    assert resolution.value == 0.0
    assert resolution.known


@pytest.mark.asyncio
async def test_timeout_advances():
    class Slow(FakeProvider):
        async def fetch(self):
            await asyncio.sleep(1)
            return 65000.0

    providers = [Slow("slow", timeout=0.01), FakeProvider("fast", value=66000.0)]
    resolution = await FallbackResolver().resolve("price", providers)
    assert resolution.source == "fast"


@pytest.mark.asyncio
async def test_hashrate_in_eh_is_normalized():
    resolution = await FallbackResolver().resolve("hashrate", [FakeProvider("eh", value=450)])
    assert resolution.value == 450e18


@pytest.mark.asyncio
async def test_hashrate_in_h_passes_through():
    resolution = await FallbackResolver().resolve("hashrate", [FakeProvider("h", value=4.5e20)])
    assert resolution.value == 4.5e20


@pytest.mark.asyncio
async def test_cached_within_ttl():
    clock = Clock()
    resolver = FallbackResolver(TTLCache(ttl=60, clock=clock))
    provider = FakeProvider("good", value=65000.0)

    await resolver.resolve("price", [provider])
    await resolver.resolve("price", [provider])
    assert provider.calls == 1

    clock.now = 61
    await resolver.resolve("price", [provider])
    assert provider.calls == 2


@pytest.mark.asyncio
async def test_failures_are_not_cached():
    resolver = FallbackResolver(TTLCache(ttl=60))
    provider = FakeProvider("flaky", error=ProviderUnavailable("flaky", "down"))

    assert (await resolver.resolve("price", [provider])).value is None
    provider.error = None
    provider.value = 65000.0
    assert (await resolver.resolve("price", [provider])).value == 65000.0
    assert provider.calls == 2
