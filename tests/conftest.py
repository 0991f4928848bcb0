"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime

import pytest

from minemuse.config import load_config
from minemuse.db import get_connection, init_db
from minemuse.errors import ProviderUnavailable
from minemuse.llm.base import BaseLLMProvider, LLMResponse, Plain, Structured
from minemuse.metrics import get_spec
from minemuse.models import DataSnapshot, EvidenceSource, Metric, Topic


ARTICLE_BODY = """# Bitcoin Mining Difficulty Reaches a New High

Miners face a tougher network as the difficulty adjustment lifts the target again.
The hashrate keeps climbing while the block reward stays fixed after the halving.

## What Changed

The latest difficulty adjustment raised the bar for every mining pool. ASIC fleets
with older machines now earn less per terahash. Electricity costs decide who stays
online, and the break-even price moves with every adjustment.

## Mining Economics

Mining revenue comes from the block reward and transaction fees. When the Bitcoin
price holds steady, profitability depends on operating costs and hardware efficiency.
Large mining farms negotiate power contracts to keep their PUE low and their margins
healthy. Smaller operators watch volatility closely.

## What To Watch

Expect the next difficulty adjustment in about two weeks. Institutional adoption and
the regulatory environment will shape how much capital flows into new machines. Miners
that plan for the next halving today will be in a better position tomorrow.

## Conclusion

The network is stronger than ever. Mining remains a competitive business where energy
and hardware choices matter most. What will your operation do next?
"""


class FakeLLM(BaseLLMProvider):
    """Scripted LLM: ``responder(prompt, **kwargs)`` returns text, a dict, or raises."""

    def __init__(self, responder=None, input_tokens: int = 100, output_tokens: int = 50):
        super().__init__(api_key="test-key", base_url="", default_model="test-model")
        self.responder = responder or (lambda prompt, **kwargs: ARTICLE_BODY)
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls: list[str] = []
        self.settings: list[tuple[float, int]] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    async def complete(self, prompt, system="", model=None, temperature=0.6,
                       max_tokens=1200, json_mode=False):
        self.calls.append(prompt)
        self.settings.append((temperature, max_tokens))
        answer = self.responder(prompt, system=system, json_mode=json_mode)
        result = Structured(answer) if isinstance(answer, (dict, list)) else Plain(answer)
        response = LLMResponse(
            result=result,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            model="test-model",
        )
        self._track_cost(response)
        return response


class FakeProvider:
    """Metric provider stand-in: returns ``value`` or raises ``error``."""

    def __init__(self, name: str, value: float | None = None, error: Exception | None = None,
                 timeout: float = 1.0):
        self.name = name
        self.value = value
        self.error = error
        self.timeout = timeout
        self.calls = 0

    async def fetch(self) -> float:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.value is None:
            raise ProviderUnavailable(self.name, "no value")
        return self.value


def make_snapshot(**values) -> DataSnapshot:
    """Snapshot with the given known metrics; everything else absent."""
    on_chain = {}
    sustainability = {}
    for name, value in values.items():
        spec = get_spec(name)
        metric = Metric(name=name, unit=spec.unit, value=value, source="test", method="api")
        if name in ("renewable_percent", "pue", "carbon_kg_per_kwh", "break_even_usd"):
            sustainability[name] = Metric(
                name=name, unit=spec.unit, value=value, method="llm", confidence="consensus",
                evidence=(EvidenceSource("Report", "https://example.com/report", "example.com"),),
            )
        else:
            on_chain[name] = metric
    return DataSnapshot(
        on_chain=on_chain,
        sustainability=sustainability,
        timestamp=datetime(2025, 3, 14, 12, 0),
    )


@pytest.fixture
def sample_config(tmp_path):
    """Minimal config for testing (no real API keys)."""
    config_text = """
llm:
  providers:
    mock:
      type: "openai_compatible"
      api_key: "test-key"
      base_url: "http://localhost:9999"
      default_model: "test-model"
  tasks:
    research: { provider: "mock" }
    write: { provider: "mock" }
    repurpose: { provider: "mock" }
    extract_evidence: { provider: "mock" }
    plan_queries: { provider: "mock" }

search:
  api_key: ""

sources:
  timeout: 2
  rss:
    enabled: false

deliver:
  telegram:
    enabled: false
    bot_token: "fake"
    chat_id: "fake"

pipeline:
  max_topics: 5
  platforms: [twitter, linkedin]

database:
  path: "DB_PATH_PLACEHOLDER"
"""
    db_path = str(tmp_path / "test.db")
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(config_text.replace("DB_PATH_PLACEHOLDER", db_path))
    return load_config(str(cfg_path))


@pytest.fixture
def db_conn(sample_config):
    """Initialized test database connection."""
    db_path = sample_config["database"]["path"]
    init_db(db_path)
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def snapshot():
    return make_snapshot(
        price=65000.0,
        difficulty=8.3e13,
        hashrate=6.0e20,
        pending_txs=12000.0,
        block_height=840500.0,
        renewable_percent=54.5,
        pue=1.3,
    )


@pytest.fixture
def topics(snapshot):
    return [
        Topic(
            id=f"topic-{i}",
            title=f"Topic {i}",
            description=f"Description {i}",
            category="network",
            keywords=["hashrate", "difficulty"],
            focus_areas=["security"],
            snapshot=snapshot,
        )
        for i in range(1, 6)
    ]
