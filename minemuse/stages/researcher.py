"""Researcher stage: turn a topic and its snapshot into a research brief."""

from __future__ import annotations

import logging

from minemuse.config import get_llm_task_config
from minemuse.errors import StageFailed
from minemuse.llm import get_provider_for_task, prompts
from minemuse.llm.base import BaseLLMProvider
from minemuse.metrics import DIFFICULTY, PRICE
from minemuse.models import DataSnapshot, ResearchBrief, Topic
from minemuse.stages import register_stage
from minemuse.stages.base import Stage
from minemuse.topics import fmt_difficulty, fmt_hashrate, fmt_number, fmt_percent, fmt_usd

logger = logging.getLogger(__name__)

MAX_HEADLINES = 8

FACT_FORMATS = {
    "price": ("BTC price", fmt_usd),
    "hashrate": ("Network hashrate", fmt_hashrate),
    "difficulty": ("Mining difficulty", fmt_difficulty),
    "block_height": ("Block height", fmt_number),
    "block_reward": ("Block reward (BTC)", lambda v: fmt_number(v, 3)),
    "pending_txs": ("Pending transactions", fmt_number),
    "fee_rate": ("Fastest fee (sat/vB)", fmt_number),
    "miner_revenue_daily": ("Miner revenue per day", fmt_usd),
    "miner_revenue_yearly": ("Miner revenue per year", fmt_usd),
    "renewable_percent": ("Renewable share of mining energy", fmt_percent),
    "pue": ("Average mining PUE", lambda v: fmt_number(v, 2)),
    "carbon_kg_per_kwh": ("Carbon intensity (kg CO2/kWh)", lambda v: fmt_number(v, 2)),
    "break_even_usd": ("Mining break-even price", fmt_usd),
    "energy_consumption_twh": ("Network consumption (TWh/yr)", lambda v: fmt_number(v, 1)),
}


def verified_facts(snapshot: DataSnapshot) -> dict[str, str]:
    """Human-readable known metrics; unknown metrics are left out entirely."""
    facts = {}
    for name, (label, fmt) in FACT_FORMATS.items():
        metric = snapshot.on_chain.get(name) or snapshot.sustainability.get(name)
        if metric is None or not metric.known:
            continue
        text = fmt(metric.value)
        if metric.evidence:
            sites = ", ".join(sorted({e.site or e.url for e in metric.evidence}))
            text += f" ({metric.confidence or 'estimate'}; {sites})"
        facts[label] = text
    if snapshot.congestion:
        facts["Mempool congestion"] = snapshot.congestion
    return facts


def validate_snapshot(snapshot: DataSnapshot) -> list[str]:
    warnings = []
    for spec in (PRICE, DIFFICULTY):
        value = snapshot.value(spec.name)
        if value is None:
            warnings.append(f"{spec.name} unknown")
        elif not spec.accepts(value):
            warnings.append(f"{spec.name} {value} outside [{spec.lower}, {spec.upper}]")
    return warnings


@register_stage("researcher")
class ResearcherStage(Stage[Topic, ResearchBrief]):
    """Collect verified facts and research notes for one topic."""

    def __init__(self, config: dict, llm: BaseLLMProvider | None = None):
        super().__init__(config)
        self._llm = llm

    @property
    def name(self) -> str:
        return "Research"

    def _provider(self) -> BaseLLMProvider | None:
        if self._llm is None and "research" in self.config.get("llm", {}).get("tasks", {}):
            self._llm = get_provider_for_task(self.config, "research")
        return self._llm

    async def process(self, topic: Topic) -> ResearchBrief:
        snapshot = topic.snapshot
        if snapshot is None:
            raise StageFailed(self.name, topic.title, "topic has no data snapshot")

        facts = verified_facts(snapshot)
        warnings = validate_snapshot(snapshot)
        for warning in warnings:
            logger.info("Research warning for '%s': %s", topic.title, warning)

        headlines = [f"- {n.title} ({n.source})" for n in snapshot.trends.news[:MAX_HEADLINES]]
        notes = await self._notes(topic, facts, headlines)
        return ResearchBrief(topic=topic, facts=facts, notes=notes, warnings=warnings)

    async def _notes(self, topic: Topic, facts: dict[str, str], headlines: list[str]) -> str:
        llm = self._provider()
        fallback = "\n".join(headlines)
        if llm is None:
            return fallback

        prompt = prompts.RESEARCH_TOPIC.format(
            title=topic.title,
            description=topic.description,
            focus_areas=", ".join(topic.focus_areas),
            facts="\n".join(f"- {k}: {v}" for k, v in facts.items()) or "none",
            headlines="\n".join(headlines) or "none",
        )
        task = get_llm_task_config(self.config, "research")
        try:
            response = await llm.complete(
                prompt,
                system=prompts.SYSTEM_RESEARCHER,
                temperature=task["temperature"],
                max_tokens=task["max_tokens"],
            )
        except Exception:
            # Notes are supporting material; the writer can work from facts alone
            logger.warning("Research notes failed for '%s'", topic.title, exc_info=True)
            return fallback
        return response.text.strip() or fallback
