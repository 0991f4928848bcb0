"""Extract numeric KPIs with provenance from web documents.

Two tiers run per batch of documents. An LLM reads every document and
answers with JSON; any KPI it leaves out is then searched for with the
deterministic patterns in ``minemuse.evidence.patterns``. Every candidate
from either tier must pass the KPI's sanity bounds. Agreement between at
least two sources within ``tolerance`` beats a single-source figure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from minemuse.errors import ExtractionFailed
from minemuse.evidence.patterns import EXTRACTORS
from minemuse.llm import prompts
from minemuse.llm.base import BaseLLMProvider
from minemuse.metrics import get_spec
from minemuse.models import EvidenceSource, Metric

logger = logging.getLogger(__name__)

CONSENSUS_TOLERANCE = 0.15
MAX_DOC_CHARS = 6_000

JSON_KEYS = {
    "renewable_percent": "renewablePercent",
    "pue": "pue",
    "carbon_kg_per_kwh": "carbonKgPerKwh",
    "break_even_usd": "breakEvenUsd",
}


@dataclass(frozen=True)
class EvidenceDocument:
    source: EvidenceSource
    text: str


@dataclass(frozen=True)
class Candidate:
    value: float
    source: EvidenceSource | None


@dataclass(frozen=True)
class Extraction:
    """Best value found for one KPI. ``value`` is None when nothing qualified."""

    kpi: str
    value: float | None = None
    method: str | None = None  # llm, pattern
    confidence: str | None = None  # consensus, single-source
    sources: tuple[EvidenceSource, ...] = ()

    @property
    def known(self) -> bool:
        return self.value is not None

    def to_metric(self) -> Metric:
        spec = get_spec(self.kpi)
        return Metric(
            name=self.kpi,
            unit=spec.unit,
            value=self.value,
            source=self.sources[0].url if self.sources else None,
            method=self.method,
            confidence=self.confidence,
            evidence=self.sources,
        )


@dataclass
class _LLMAnswer:
    values: dict[str, float]
    citations: dict[str, list[str]]
    raw: str = ""


def _agree(a: float, b: float, tolerance: float) -> bool:
    low, high = sorted((a, b))
    return high <= low * (1 + tolerance)


def find_consensus(
    candidates: Iterable[Candidate], tolerance: float = CONSENSUS_TOLERANCE,
) -> list[Candidate] | None:
    """Largest group of candidates from distinct sources that all agree within tolerance.

    Returns None unless at least two independent sources agree. Ties go
    to the tighter group.
    """
    distinct: dict[str, Candidate] = {}
    for candidate in candidates:
        if candidate.source is None:
            continue
        # One vote per document
        distinct.setdefault(candidate.source.url, candidate)

    ordered = sorted(distinct.values(), key=lambda c: c.value)
    best: list[Candidate] | None = None
    start = 0
    for end in range(len(ordered)):
        while not _agree(ordered[start].value, ordered[end].value, tolerance):
            start += 1
        group = ordered[start:end + 1]
        if len(group) < 2:
            continue
        spread = group[-1].value - group[0].value
        if (
            best is None
            or len(group) > len(best)
            or (len(group) == len(best) and spread < best[-1].value - best[0].value)
        ):
            best = group
    return best


def _median(values: list[float]) -> float:
    values = sorted(values)
    mid = len(values) // 2
    if len(values) % 2:
        return values[mid]
    return (values[mid - 1] + values[mid]) / 2


def _as_float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(",", "").replace("$", "").replace("%", "").strip())
    except ValueError:
        return None


class EvidenceExtractor:
    """Hybrid LLM + pattern extractor gated by sanity bounds."""

    def __init__(
        self,
        llm: BaseLLMProvider | None = None,
        tolerance: float = CONSENSUS_TOLERANCE,
        temperature: float = 0.1,
        max_tokens: int = 800,
    ):
        self.llm = llm
        self.tolerance = tolerance
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def extract(
        self,
        documents: list[EvidenceDocument],
        kpis: list[str],
        relaxed: bool = False,
    ) -> dict[str, Extraction]:
        """Best-effort value for every KPI; unknown KPIs map to an empty Extraction."""
        answer = await self._ask_llm(documents, kpis, relaxed)
        results = {}
        for kpi in kpis:
            try:
                results[kpi] = self._resolve_kpi(kpi, documents, answer)
            except ExtractionFailed as exc:
                logger.info("%s", exc)
                results[kpi] = Extraction(kpi=kpi)
        return results

    async def extract_all(
        self, documents: list[EvidenceDocument], kpis: list[str],
    ) -> dict[str, Extraction]:
        """Strict pass, then a relaxed LLM pass for whatever is still missing."""
        results = await self.extract(documents, kpis)
        missing = [kpi for kpi in kpis if not results[kpi].known]
        if missing and self.llm is not None and documents:
            logger.info("Relaxed extraction pass for %s", ", ".join(missing))
            results.update(await self.extract(documents, missing, relaxed=True))
        return results

    def _resolve_kpi(
        self, kpi: str, documents: list[EvidenceDocument], answer: _LLMAnswer,
    ) -> Extraction:
        spec = get_spec(kpi)
        pattern = EXTRACTORS[kpi]
        candidates = [
            Candidate(value, doc.source)
            for doc in documents
            if (value := pattern(doc.text)) is not None
        ]
        group = find_consensus(candidates, self.tolerance)

        llm_value = answer.values.get(kpi)
        if llm_value is not None and spec.accepts(llm_value):
            support = self._llm_support(kpi, llm_value, documents, candidates, answer)
            if len(support) >= 2:
                return Extraction(kpi, llm_value, "llm", "consensus", tuple(support))
            # A cross-source agreement outranks one uncorroborated figure
            if group and not _agree(llm_value, _median([c.value for c in group]), self.tolerance):
                return self._from_group(kpi, group)
            return Extraction(kpi, llm_value, "llm", "single-source", tuple(support[:1]))
        if llm_value is not None:
            logger.debug("Discarded LLM %s=%s outside [%s, %s]", kpi, llm_value, spec.lower, spec.upper)

        if group:
            return self._from_group(kpi, group)

        combined = "\n\n".join([answer.raw] + [doc.text for doc in documents])
        value = pattern(combined)
        if value is None:
            raise ExtractionFailed(kpi)
        source = next((c.source for c in candidates if c.value == value), None)
        return Extraction(
            kpi, value, "pattern", "single-source", (source,) if source else (),
        )

    def _from_group(self, kpi: str, group: list[Candidate]) -> Extraction:
        return Extraction(
            kpi,
            _median([c.value for c in group]),
            "pattern",
            "consensus",
            tuple(c.source for c in group if c.source),
        )

    def _llm_support(
        self,
        kpi: str,
        value: float,
        documents: list[EvidenceDocument],
        candidates: list[Candidate],
        answer: _LLMAnswer,
    ) -> list[EvidenceSource]:
        """Documents backing an LLM figure: cited ones plus pattern matches that agree."""
        by_url = {doc.source.url: doc.source for doc in documents}
        support: dict[str, EvidenceSource] = {}
        for url in answer.citations.get(kpi, []):
            if url in by_url:
                support.setdefault(url, by_url[url])
        for candidate in candidates:
            if candidate.source and _agree(candidate.value, value, self.tolerance):
                support.setdefault(candidate.source.url, candidate.source)
        return list(support.values())

    async def _ask_llm(
        self, documents: list[EvidenceDocument], kpis: list[str], relaxed: bool,
    ) -> _LLMAnswer:
        empty = _LLMAnswer(values={}, citations={})
        if self.llm is None or not documents:
            return empty

        blocks = []
        for i, doc in enumerate(documents, 1):
            blocks.append(
                f"[{i}] {doc.source.title}\nURL: {doc.source.url}\n{doc.text[:MAX_DOC_CHARS]}"
            )
        prompt = prompts.EXTRACT_KPIS.format(
            documents="\n\n".join(blocks),
            mode_rule=prompts.RELAXED_RULE if relaxed else prompts.CONSENSUS_RULE,
        )

        try:
            response = await self.llm.complete(
                prompt,
                system=prompts.SYSTEM_ANALYST,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                json_mode=True,
            )
        except Exception:
            logger.warning("LLM extraction call failed, using patterns only", exc_info=True)
            return empty

        data = response.json()
        if not isinstance(data, dict):
            logger.warning("LLM extraction answer was not a JSON object")
            return _LLMAnswer(values={}, citations={}, raw=response.text)

        values = {}
        citations = {}
        raw_citations = data.get("citations") if isinstance(data.get("citations"), dict) else {}
        for kpi in kpis:
            key = JSON_KEYS.get(kpi, kpi)
            value = _as_float(data.get(key))
            # Zero in the template means "not found"
            if value:
                values[kpi] = value
            urls = raw_citations.get(key) or []
            if isinstance(urls, str):
                urls = [urls]
            citations[kpi] = [u for u in urls if isinstance(u, str)]

        return _LLMAnswer(values=values, citations=citations, raw=response.text)
