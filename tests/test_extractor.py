"""Tests for hybrid evidence extraction."""

from __future__ import annotations

import pytest

from conftest import FakeLLM
from minemuse.evidence.extractor import Candidate, EvidenceDocument, EvidenceExtractor, find_consensus
from minemuse.llm import prompts
from minemuse.models import EvidenceSource


def _doc(n: int, text: str) -> EvidenceDocument:
    return EvidenceDocument(
        source=EvidenceSource(f"Report {n}", f"https://site{n}.com/report", f"site{n}.com"),
        text=text,
    )


DOCS = [
    _doc(1, "The renewable share of Bitcoin mining reached 52% this year."),
    _doc(2, "Analysts put the renewable share at roughly 53% of hashrate."),
    _doc(3, "One outlier survey claims a renewable mix of 80% for US miners."),
]


def test_consensus_needs_two_sources():
    source = EvidenceSource("a", "https://a.com")
    assert find_consensus([Candidate(50.0, source)]) is None
    # The same document only votes once
    assert find_consensus([Candidate(50.0, source), Candidate(51.0, source)]) is None


def test_consensus_prefers_larger_group():
    a, b, c, d = (EvidenceSource(x, f"https://{x}.com") for x in "abcd")
    group = find_consensus([
        Candidate(1.2, a), Candidate(1.25, b), Candidate(1.3, c), Candidate(2.5, d),
    ])
    assert [candidate.value for candidate in group] == [1.2, 1.25, 1.3]


@pytest.mark.asyncio
async def test_pattern_consensus_beats_outlier():
    results = await EvidenceExtractor().extract(DOCS, ["renewable_percent"])
    extraction = results["renewable_percent"]
    assert extraction.value == 52.5
    assert extraction.method == "pattern"
    assert extraction.confidence == "consensus"
    assert {s.url for s in extraction.sources} == {
        "https://site1.com/report", "https://site2.com/report",
    }


@pytest.mark.asyncio
async def test_uncorroborated_llm_value_loses_to_consensus():
    llm = FakeLLM(lambda prompt, **kwargs: {"renewablePercent": 80})
    results = await EvidenceExtractor(llm).extract(DOCS, ["renewable_percent"])
    assert results["renewable_percent"].value == 52.5


@pytest.mark.asyncio
async def test_llm_value_with_two_citations_is_consensus():
    docs = [_doc(1, "PUE figures vary."), _doc(2, "Efficiency keeps improving.")]
    llm = FakeLLM(lambda prompt, **kwargs: {
        "pue": 1.3,
        "citations": {"pue": ["https://site1.com/report", "https://site2.com/report"]},
    })
    extraction = (await EvidenceExtractor(llm).extract(docs, ["pue"]))["pue"]
    assert extraction.value == 1.3
    assert extraction.method == "llm"
    assert extraction.confidence == "consensus"
    assert len(extraction.sources) == 2


@pytest.mark.asyncio
async def test_unparseable_llm_answer_falls_back_to_patterns():
    llm = FakeLLM(lambda prompt, **kwargs: "Sorry, I could not read those documents.")
    docs = [_doc(1, "The site operates at a PUE of 1.3 year round.")]
    extraction = (await EvidenceExtractor(llm).extract(docs, ["pue"]))["pue"]
    assert extraction.value == 1.3
    assert extraction.method == "pattern"
    assert extraction.confidence == "single-source"
    assert extraction.sources[0].url == "https://site1.com/report"


@pytest.mark.asyncio
async def test_llm_error_falls_back_to_patterns():
    def boom(prompt, **kwargs):
        raise RuntimeError("provider down")

    docs = [_doc(1, "The site operates at a PUE of 1.3 year round.")]
    extraction = (await EvidenceExtractor(FakeLLM(boom)).extract(docs, ["pue"]))["pue"]
    assert extraction.value == 1.3


@pytest.mark.asyncio
async def test_out_of_range_llm_value_is_discarded():
    llm = FakeLLM(lambda prompt, **kwargs: {"pue": 7.5})
    docs = [_doc(1, "No efficiency figures were disclosed.")]
    extraction = (await EvidenceExtractor(llm).extract(docs, ["pue"]))["pue"]
    assert extraction.value is None
    assert not extraction.known


@pytest.mark.asyncio
async def test_relaxed_pass_fills_missing_kpis():
    def responder(prompt, **kwargs):
        if prompts.RELAXED_RULE in prompt:
            return {"breakEvenUsd": 42000}
        return {"pue": 1.3, "citations": {"pue": ["https://site1.com/report"]}}

    llm = FakeLLM(responder)
    docs = [_doc(1, "Operators reported steady efficiency.")]
    results = await EvidenceExtractor(llm).extract_all(docs, ["pue", "break_even_usd"])

    assert results["pue"].value == 1.3
    assert results["pue"].confidence == "single-source"
    assert results["break_even_usd"].value == 42000
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_no_documents_means_unknown():
    results = await EvidenceExtractor(FakeLLM()).extract_all([], ["pue"])
    assert results["pue"].value is None


def test_extraction_to_metric_carries_evidence():
    from minemuse.evidence.extractor import Extraction

    source = EvidenceSource("Report", "https://site1.com/report")
    metric = Extraction("pue", 1.3, "llm", "consensus", (source,)).to_metric()
    assert metric.unit == ""
    assert metric.source == "https://site1.com/report"
    assert metric.evidence == (source,)
