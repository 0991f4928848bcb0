"""Search the web for sustainability evidence and extract KPIs from it."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from minemuse.evidence.extractor import EvidenceDocument, EvidenceExtractor, Extraction
from minemuse.evidence.scraper import MAX_PAGE_CHARS, extract_page_text
from minemuse.evidence.search import ExaClient, SearchResult
from minemuse.llm.prompts import KPI_QUERIES
from minemuse.metrics import EVIDENCE_KPIS
from minemuse.models import EvidenceSource

logger = logging.getLogger(__name__)

RESULTS_PER_KPI = 3
MAX_DOCUMENTS = 8
EVIDENCE_LOOKBACK_DAYS = 365


@dataclass
class SustainabilityEvidence:
    """Extracted KPIs plus the top search hit per KPI."""

    extractions: dict[str, Extraction] = field(default_factory=dict)
    provenance: dict[str, EvidenceSource] = field(default_factory=dict)
    documents_read: int = 0


class EvidenceGatherer:
    def __init__(self, search: ExaClient, extractor: EvidenceExtractor):
        self.search = search
        self.extractor = extractor

    async def gather(self, kpis: list[str] | None = None) -> SustainabilityEvidence:
        kpis = kpis or list(EVIDENCE_KPIS)
        if not self.search.configured:
            logger.warning("Search API not configured; sustainability KPIs stay unknown")
            return SustainabilityEvidence(
                extractions={kpi: Extraction(kpi=kpi) for kpi in kpis},
            )

        hits = await asyncio.gather(*[
            self.search.search(
                KPI_QUERIES[kpi], num_results=RESULTS_PER_KPI, days=EVIDENCE_LOOKBACK_DAYS,
            )
            for kpi in kpis
        ])

        provenance = {
            kpi: results[0].to_source() for kpi, results in zip(kpis, hits) if results
        }

        seen: set[str] = set()
        unique: list[SearchResult] = []
        for result in (r for results in hits for r in results):
            if result.url not in seen:
                seen.add(result.url)
                unique.append(result)

        documents = await self._load_documents(unique[:MAX_DOCUMENTS])
        logger.info(
            "Extracting %d KPIs from %d documents", len(kpis), len(documents),
        )
        extractions = await self.extractor.extract_all(documents, kpis)
        return SustainabilityEvidence(
            extractions=extractions,
            provenance=provenance,
            documents_read=len(documents),
        )

    async def _load_documents(self, results: list[SearchResult]) -> list[EvidenceDocument]:
        texts = await asyncio.gather(*[self._page_text(r) for r in results])
        return [
            EvidenceDocument(source=r.to_source(), text=text)
            for r, text in zip(results, texts)
            if text
        ]

    async def _page_text(self, result: SearchResult) -> str:
        text = await self.search.extract_text(result.url)
        if not text:
            text = await extract_page_text(result.url)
        if not text:
            # Highlights are short but better than nothing
            text = result.text or " ".join(result.highlights)
        return (text or "")[:MAX_PAGE_CHARS]
