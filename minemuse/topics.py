"""Generate content topics from a data snapshot."""

from __future__ import annotations

from minemuse.models import DataSnapshot, Topic

NA = "N/A"


def fmt_usd(value: float | None) -> str:
    if value is None:
        return NA
    return f"${value:,.0f}"


def fmt_number(value: float | None, digits: int = 0) -> str:
    if value is None:
        return NA
    return f"{value:,.{digits}f}"


def fmt_hashrate(value: float | None) -> str:
    if value is None:
        return NA
    return f"{value / 1e18:,.0f} EH/s"


def fmt_difficulty(value: float | None) -> str:
    if value is None:
        return NA
    return f"{value / 1e12:,.1f}T"


def fmt_percent(value: float | None) -> str:
    if value is None:
        return NA
    return f"{value:.1f}%"


def _topic(key: str, stamp: str, snapshot: DataSnapshot, **kwargs) -> Topic:
    return Topic(id=f"{key}-{stamp}", snapshot=snapshot, **kwargs)


def onchain_topics(snapshot: DataSnapshot) -> list[Topic]:
    """Topics grounded in network and market metrics."""
    v = snapshot.value
    stamp = snapshot.timestamp.strftime("%Y%m%d%H%M")
    congestion = snapshot.congestion or "unknown"

    return [
        _topic(
            "difficulty", stamp, snapshot,
            title=f"Mining Difficulty at {fmt_difficulty(v('difficulty'))}: What It Means for Miners",
            description=(
                "How the current difficulty level shapes hashprice, fleet efficiency "
                "and the next adjustment."
            ),
            category="mining-economics",
            keywords=["difficulty", "hashprice", "mining", "adjustment"],
            difficulty="intermediate",
            focus_areas=["difficulty adjustment", "miner margins", "fleet efficiency"],
        ),
        _topic(
            "price-impact", stamp, snapshot,
            title=f"Bitcoin at {fmt_usd(v('price'))}: Impact on Mining Profitability",
            description="What the current price means for revenue per terahash and miner treasuries.",
            category="market",
            keywords=["price", "profitability", "revenue", "miners"],
            difficulty="beginner",
            focus_areas=["price sensitivity", "break-even", "treasury management"],
        ),
        _topic(
            "mempool", stamp, snapshot,
            title=f"Mempool Congestion is {congestion.title()}: {fmt_number(v('pending_txs'))} Pending Transactions",
            description="Fee market conditions and how transaction fees contribute to miner revenue.",
            category="network",
            keywords=["mempool", "fees", "transactions", "congestion"],
            difficulty="intermediate",
            focus_areas=["fee market", "block space demand", "fee revenue share"],
        ),
        _topic(
            "revenue", stamp, snapshot,
            title=f"Miner Revenue Outlook: {fmt_usd(v('miner_revenue_daily'))} per Day",
            description="Daily, monthly and yearly issuance revenue at current prices, after the halving.",
            category="mining-economics",
            keywords=["miner revenue", "block reward", "halving", "issuance"],
            difficulty="intermediate",
            focus_areas=["block subsidy", "fee share", "post-halving economics"],
        ),
        _topic(
            "hashrate", stamp, snapshot,
            title=f"Network Hashrate at {fmt_hashrate(v('hashrate'))}: Security and Competition",
            description="What the hashrate level says about network security and miner competition.",
            category="network",
            keywords=["hashrate", "security", "competition", "ASIC"],
            difficulty="advanced",
            focus_areas=["network security", "hardware cycles", "geographic distribution"],
        ),
    ]


def comprehensive_topics(snapshot: DataSnapshot) -> list[Topic]:
    """Topics spanning sustainability, AI/HPC and industry strategy."""
    v = snapshot.value
    stamp = snapshot.timestamp.strftime("%Y%m%d%H%M")
    renewable = fmt_percent(v("renewable_percent"))
    pue = fmt_number(v("pue"), 2)
    carbon = fmt_number(v("carbon_kg_per_kwh"), 2)
    break_even = fmt_usd(v("break_even_usd"))
    month = snapshot.timestamp.strftime("%B %Y")

    specs = [
        ("sustainable-datacenters", f"Sustainable Mining Data Centers: {renewable} Renewable, PUE {pue}",
         "How miners are building efficient, renewable-powered facilities.",
         "sustainability", ["renewable energy", "PUE", "data centers"], "intermediate",
         ["energy sourcing", "cooling efficiency", "site selection"]),
        ("profitability", f"Mining Profitability with Break-Even Near {break_even}",
         "Cost structures, hashprice and which operators stay profitable.",
         "mining-economics", ["profitability", "break-even", "hashprice"], "intermediate",
         ["all-in costs", "energy contracts", "hardware efficiency"]),
        ("data-compute-costs", "The Real Cost of Data and Compute for Miners",
         "Power, hardware and hosting costs behind every exahash.",
         "mining-economics", ["compute costs", "hosting", "power prices"], "advanced",
         ["power purchase agreements", "hosting fees", "capex cycles"]),
        ("hpc-carbon", f"HPC and AI Workloads: Carbon at {carbon} kg CO2/kWh",
         "Carbon intensity of AI and HPC compared with Bitcoin mining.",
         "sustainability", ["HPC", "AI", "carbon intensity"], "advanced",
         ["emissions accounting", "grid mix", "workload flexibility"]),
        ("clean-energy", "Bitcoin Mining as a Clean Energy Buyer of Last Resort",
         "Stranded renewables, curtailment and mining's role in project finance.",
         "sustainability", ["clean energy", "curtailment", "stranded power"], "beginner",
         ["curtailment", "renewable project economics", "flare gas"]),
        ("quantum", "Quantum Computing and Bitcoin: Separating Risk from Hype",
         "Where quantum threats to Bitcoin cryptography actually stand.",
         "technology", ["quantum computing", "cryptography", "security"], "advanced",
         ["post-quantum signatures", "timelines", "migration paths"]),
        ("grid-stabilization", "Miners as Grid Stabilizers: Demand Response in Practice",
         "How flexible mining load supports grid reliability.",
         "energy", ["demand response", "grid", "flexible load"], "intermediate",
         ["demand response programs", "ERCOT", "ancillary services"]),
        ("non-sustainable-costs", "The Hidden Costs of Non-Sustainable Mining",
         "Regulatory, reputational and financial risks of fossil-powered operations.",
         "sustainability", ["emissions", "regulation", "ESG"], "intermediate",
         ["carbon pricing", "ESG reporting", "financing costs"]),
        ("ethical-ai", "Ethical AI Compute: Lessons from Bitcoin Mining",
         "Energy transparency practices AI data centers can borrow from miners.",
         "technology", ["ethical AI", "energy transparency", "data centers"], "beginner",
         ["disclosure", "energy attribution", "community impact"]),
        ("treasury", f"Miner Treasury Strategy for {month}",
         "HODL versus sell decisions, hedging and balance sheet resilience.",
         "market", ["treasury", "hedging", "balance sheet"], "advanced",
         ["production sales", "hedging instruments", "liquidity"]),
    ]

    return [
        _topic(
            key, stamp, snapshot,
            title=title,
            description=description,
            category=category,
            keywords=keywords,
            difficulty=level,
            focus_areas=focus,
        )
        for key, title, description, category, keywords, level, focus in specs
    ]


def generate_topics(snapshot: DataSnapshot, limit: int = 5, kind: str = "comprehensive") -> list[Topic]:
    """Topics for one run, capped at ``limit``.

    Unknown metrics render as N/A; a topic never shows a made-up number.
    """
    if kind == "onchain":
        topics = onchain_topics(snapshot)
    elif kind == "comprehensive":
        topics = comprehensive_topics(snapshot)
    else:
        raise ValueError(f"Unknown topic kind: {kind}")
    return topics[:limit]
