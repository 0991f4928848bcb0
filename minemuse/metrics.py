"""Metric declarations: units and sanity bounds."""

from __future__ import annotations

from minemuse.models import MetricSpec

# On-chain and market metrics resolved from structured APIs
PRICE = MetricSpec("price", "USD", 1_000, 1_000_000)
DIFFICULTY = MetricSpec("difficulty", "", 1e12, 1e16)
HASHRATE = MetricSpec("hashrate", "H/s", 1e18, 1e23)
PENDING_TXS = MetricSpec("pending_txs", "tx", 0, 10_000_000)
FEE_RATE = MetricSpec("fee_rate", "sat/vB", 0, 10_000)
BLOCK_HEIGHT = MetricSpec("block_height", "", 1, 100_000_000)
BLOCK_SIZE = MetricSpec("block_size", "bytes", 0, 4_000_000)
BLOCK_FEES = MetricSpec("block_fees", "sat", 0, 1e10)

# Sustainability KPIs, mostly extracted from web evidence
RENEWABLE_PERCENT = MetricSpec("renewable_percent", "%", 10, 100)
PUE = MetricSpec("pue", "", 1.05, 3.0)
CARBON_INTENSITY = MetricSpec("carbon_kg_per_kwh", "kg/kWh", 0.05, 2.0)
BREAK_EVEN = MetricSpec("break_even_usd", "USD", 5_000, 300_000)
ENERGY_CONSUMPTION = MetricSpec("energy_consumption_twh", "TWh/yr", 10, 1_000)

# Derived from other metrics, never fetched
BLOCK_REWARD = MetricSpec("block_reward", "BTC", 0, 50)
MINER_REVENUE_DAILY = MetricSpec("miner_revenue_daily", "USD", 0, 1e10)
MINER_REVENUE_MONTHLY = MetricSpec("miner_revenue_monthly", "USD", 0, 1e12)
MINER_REVENUE_YEARLY = MetricSpec("miner_revenue_yearly", "USD", 0, 1e13)

METRICS: dict[str, MetricSpec] = {
    spec.name: spec
    for spec in (
        PRICE, DIFFICULTY, HASHRATE, PENDING_TXS, FEE_RATE,
        BLOCK_HEIGHT, BLOCK_SIZE, BLOCK_FEES,
        RENEWABLE_PERCENT, PUE, CARBON_INTENSITY, BREAK_EVEN, ENERGY_CONSUMPTION,
        BLOCK_REWARD, MINER_REVENUE_DAILY, MINER_REVENUE_MONTHLY, MINER_REVENUE_YEARLY,
    )
}

EVIDENCE_KPIS = [
    RENEWABLE_PERCENT.name,
    PUE.name,
    CARBON_INTENSITY.name,
    BREAK_EVEN.name,
]

AVG_BLOCK_TIME = 600  # seconds
BLOCKS_PER_DAY = 144
HALVING_INTERVAL = 210_000

# Pending transaction counts above which the mempool counts as congested
CONGESTION_HIGH = 10_000
CONGESTION_MEDIUM = 5_000


def get_spec(name: str) -> MetricSpec:
    try:
        return METRICS[name]
    except KeyError:
        raise KeyError(f"Unknown metric: {name}") from None
