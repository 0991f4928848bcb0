"""Tests for metric providers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from minemuse.errors import MalformedResponse, ProviderUnavailable
from minemuse.providers import build_chain
from minemuse.providers.cbeci import CbeciRenewableShare
from minemuse.providers.hashrate import (
    DerivedHashrate,
    MinerstatHashrate,
    hashrate_from_difficulty,
    latest_series_value,
    normalize_hashrate,
)
from minemuse.providers.mempool import MempoolPendingTxs
from minemuse.providers.price import CoinbasePrice, CoinGeckoPrice


def _mock_get(mock_client_cls, json_body=None, text="", error=None):
    mock_resp = MagicMock()
    if isinstance(json_body, Exception):
        mock_resp.json.side_effect = json_body
    else:
        mock_resp.json.return_value = json_body
    mock_resp.text = text
    mock_resp.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    if error is not None:
        mock_client.get.side_effect = error
    else:
        mock_client.get.return_value = mock_resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_coingecko_price(mock_client_cls, sample_config):
    mock_client = _mock_get(mock_client_cls, {"bitcoin": {"usd": 65432.1}})
    value = await CoinGeckoPrice(sample_config).fetch()
    assert value == 65432.1
    assert "simple/price" in mock_client.get.call_args.args[0]


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_coinbase_price_is_string(mock_client_cls, sample_config):
    _mock_get(mock_client_cls, {"data": {"rates": {"USD": "64000.50"}}})
    assert await CoinbasePrice(sample_config).fetch() == 64000.5


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_missing_field_is_malformed(mock_client_cls, sample_config):
    _mock_get(mock_client_cls, {"ethereum": {"usd": 3000}})
    with pytest.raises(MalformedResponse):
        await CoinGeckoPrice(sample_config).fetch()


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_non_json_is_malformed(mock_client_cls, sample_config):
    _mock_get(mock_client_cls, ValueError("not json"))
    with pytest.raises(MalformedResponse):
        await MempoolPendingTxs(sample_config).fetch()


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_http_error_is_unavailable(mock_client_cls, sample_config):
    request = httpx.Request("GET", "https://api.coingecko.com")
    response = httpx.Response(503, request=request)
    _mock_get(
        mock_client_cls,
        error=httpx.HTTPStatusError("unavailable", request=request, response=response),
    )
    with pytest.raises(ProviderUnavailable, match="HTTP 503"):
        await CoinGeckoPrice(sample_config).fetch()


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_connect_error_is_unavailable(mock_client_cls, sample_config):
    _mock_get(mock_client_cls, error=httpx.ConnectError("refused"))
    with pytest.raises(ProviderUnavailable):
        await MempoolPendingTxs(sample_config).fetch()


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_minerstat_scrape_in_eh(mock_client_cls, sample_config):
    _mock_get(mock_client_cls, text="<div>Network hashrate</div><span>612.4 EH/s</span>")
    assert await MinerstatHashrate(sample_config).fetch() == pytest.approx(612.4e18)


@pytest.mark.asyncio
@patch("minemuse.providers.base.httpx.AsyncClient")
async def test_cbeci_total_row(mock_client_cls, sample_config):
    _mock_get(mock_client_cls, {"data": [{"country": "Total", "renewable_percentage": 52.6}]})
    assert await CbeciRenewableShare(sample_config).fetch() == 52.6


def test_latest_series_value_shapes():
    assert latest_series_value({"currentHashrate": 6.1e20}) == 6.1e20
    assert latest_series_value({"hashrates": [{"avgHashrate": 5e20}, {"avgHashrate": 6e20}]}) == 6e20
    assert latest_series_value([[1700000000, 550.0]]) == 550.0
    assert latest_series_value([]) is None
    assert latest_series_value({"hashrates": []}) is None


def test_normalize_hashrate():
    assert normalize_hashrate(600) == 600e18
    assert normalize_hashrate(6e20) == 6e20


@pytest.mark.asyncio
async def test_derived_hashrate(sample_config):
    async def difficulty():
        return 8.3e13

    provider = DerivedHashrate(sample_config, difficulty)
    assert await provider.fetch() == pytest.approx(hashrate_from_difficulty(8.3e13))


@pytest.mark.asyncio
async def test_derived_hashrate_without_difficulty(sample_config):
    async def difficulty():
        return None

    with pytest.raises(ProviderUnavailable):
        await DerivedHashrate(sample_config, difficulty).fetch()


def test_build_chain_priority_order(sample_config):
    chain = build_chain(sample_config, "price")
    assert [p.name for p in chain] == ["coingecko", "coinbase"]
    assert all(p.timeout == 2 for p in chain)


def test_build_chain_skips_disabled(sample_config):
    sample_config["sources"]["coingecko"] = {"enabled": False}
    assert [p.name for p in build_chain(sample_config, "price")] == ["coinbase"]


def test_build_chain_unknown_metric(sample_config):
    assert build_chain(sample_config, "nonexistent") == []
