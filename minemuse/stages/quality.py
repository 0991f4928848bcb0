"""Quality stage: score an article and optionally gate on the score."""

from __future__ import annotations

import logging
import re

from minemuse import textstats
from minemuse.config import get_pipeline_config
from minemuse.errors import StageFailed
from minemuse.models import CheckedContent, LongFormContent, QualityReport
from minemuse.stages import register_stage
from minemuse.stages.base import Stage

logger = logging.getLogger(__name__)

MAX_READING_GRADE = 12
MAX_SIMILARITY = 0.3
MAX_PASSIVE_VOICE = 0.1
AVOID_PENALTY = 5
# Glossary hits for a full technical-accuracy score
TARGET_TERMS = 8
TARGET_WORDS = (800, 1200)


def score_readability(body: str) -> float:
    grade = textstats.reading_grade(body)
    if grade <= MAX_READING_GRADE:
        return 1.0
    return max(0.0, 1 - (grade - MAX_READING_GRADE) / MAX_READING_GRADE)


def score_technical_accuracy(text: str) -> float:
    hits = textstats.glossary_hits(text)
    penalty = AVOID_PENALTY * len(textstats.avoided_terms(text))
    return max(0.0, min(1.0, (hits - penalty) / TARGET_TERMS))


def score_structure(content: LongFormContent) -> float:
    score = 0.0
    if content.title:
        score += 0.2
        if len(content.title.split()) <= 12:
            score += 0.1
    if content.body:
        score += 0.2
    if content.summary:
        score += 0.2
    headings = re.findall(r"^#{2,3}\s+", content.body, re.MULTILINE)
    if headings:
        score += 0.1 + min(0.2, 0.05 * len(headings))
    return min(1.0, score)


@register_stage("quality")
class QualityStage(Stage[LongFormContent, CheckedContent]):
    """Score readability, terminology, uniqueness and structure.

    Uniqueness compares against articles already checked in this run.
    """

    def __init__(self, config: dict):
        super().__init__(config)
        cfg = get_pipeline_config(config)
        self.enforce = cfg["enforce_quality"]
        self.min_score = cfg["min_quality_score"]
        self._seen: list[LongFormContent] = []

    @property
    def name(self) -> str:
        return "Quality check"

    def uniqueness(self, content: LongFormContent) -> float:
        if not self._seen:
            return 1.0
        similarity = max(
            textstats.jaccard_similarity(content.body, other.body) for other in self._seen
        )
        return max(0.0, 1 - similarity)

    def evaluate(self, content: LongFormContent) -> QualityReport:
        text = f"{content.title}\n{content.body}"
        readability = score_readability(content.body)
        technical = score_technical_accuracy(text)
        uniqueness = self.uniqueness(content)
        structure = score_structure(content)
        overall = round((readability + technical + uniqueness + structure) / 4, 3)

        suggestions = []
        if readability < 0.7:
            suggestions.append("Improve readability with shorter sentences and simpler words")
        if technical < 0.8:
            suggestions.append("Use more Bitcoin mining terminology")
        avoided = textstats.avoided_terms(text)
        if avoided:
            suggestions.append(f"Avoid the terms: {', '.join(avoided)}")
        if 1 - uniqueness > MAX_SIMILARITY:
            suggestions.append("Too similar to another article in this run")
        if structure < 0.8:
            suggestions.append("Add section headings and a clear summary")
        passive = content.metrics.passive_voice_ratio
        if passive > MAX_PASSIVE_VOICE:
            suggestions.append(f"Reduce passive voice (currently {passive * 100:.1f}%)")
        words = content.metrics.word_count
        if words < TARGET_WORDS[0]:
            suggestions.append("Expand the analysis")
        elif words > TARGET_WORDS[1]:
            suggestions.append("Condense the article")

        return QualityReport(
            readability=round(readability, 3),
            technical_accuracy=round(technical, 3),
            uniqueness=round(uniqueness, 3),
            structure=round(structure, 3),
            overall=overall,
            suggestions=suggestions,
            passed=overall >= self.min_score,
        )

    async def process(self, content: LongFormContent) -> CheckedContent:
        report = self.evaluate(content)
        self._seen.append(content)
        logger.info("Quality %.2f for '%s'", report.overall, content.title)
        if self.enforce and not report.passed:
            raise StageFailed(
                self.name, content.title,
                f"score {report.overall:.2f} below {self.min_score:.2f}",
            )
        return CheckedContent(content=content, report=report)
