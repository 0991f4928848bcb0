"""Writer stage: draft a long-form article from a research brief."""

from __future__ import annotations

import logging
import uuid

from minemuse import textstats
from minemuse.config import get_llm_task_config
from minemuse.errors import StageFailed
from minemuse.llm import get_provider_for_task, prompts
from minemuse.llm.base import BaseLLMProvider
from minemuse.models import ContentMetrics, LongFormContent, ResearchBrief
from minemuse.stages import register_stage
from minemuse.stages.base import Stage

logger = logging.getLogger(__name__)

MIN_WORDS = 150
SUMMARY_CHARS = 300


def lead_paragraph(body: str) -> str:
    """First prose paragraph of a Markdown document."""
    for block in body.split("\n\n"):
        block = block.strip()
        if block and not block.startswith("#"):
            return block
    return ""


def content_metrics(body: str, difficulty: str) -> ContentMetrics:
    return ContentMetrics(
        word_count=textstats.word_count(body),
        reading_time=textstats.reading_time(body),
        difficulty_score=textstats.DIFFICULTY_SCORES.get(difficulty, 2),
        passive_voice_ratio=round(textstats.passive_voice_ratio(body), 3),
        industry_terms=textstats.glossary_hits(body),
    )


@register_stage("writer")
class WriterStage(Stage[ResearchBrief, LongFormContent]):
    """Write the article with the ``write`` LLM task."""

    def __init__(self, config: dict, llm: BaseLLMProvider | None = None):
        super().__init__(config)
        self._llm = llm

    @property
    def name(self) -> str:
        return "Writing"

    async def process(self, brief: ResearchBrief) -> LongFormContent:
        topic = brief.topic
        llm = self._llm or get_provider_for_task(self.config, "write")

        prompt = prompts.WRITE_ARTICLE.format(
            title=topic.title,
            description=topic.description,
            difficulty=topic.difficulty,
            keywords=", ".join(topic.keywords),
            facts="\n".join(f"- {k}: {v}" for k, v in brief.facts.items()) or "none",
            notes=brief.notes or "none",
        )
        task = get_llm_task_config(self.config, "write")
        response = await llm.complete(
            prompt,
            system=prompts.SYSTEM_WRITER,
            temperature=task["temperature"],
            max_tokens=task["max_tokens"],
        )
        body = response.text.strip()

        words = textstats.word_count(body)
        if words < MIN_WORDS:
            raise StageFailed(self.name, topic.title, f"article too short ({words} words)")

        content = LongFormContent(
            id=f"content_{uuid.uuid4().hex[:12]}",
            topic_id=topic.id,
            title=textstats.markdown_title(body) or topic.title,
            body=body,
            summary=lead_paragraph(body)[:SUMMARY_CHARS],
            keywords=list(topic.keywords),
            metrics=content_metrics(body, topic.difficulty),
        )
        logger.info(
            "Wrote '%s' (%d words, %d min read)",
            content.title, content.metrics.word_count, content.metrics.reading_time,
        )
        return content
