"""Repurposer stage: adapt a checked article into per-platform social posts."""

from __future__ import annotations

import logging

from minemuse.config import get_llm_task_config, get_pipeline_config
from minemuse.errors import StageFailed
from minemuse.llm import get_provider_for_task, prompts
from minemuse.llm.base import BaseLLMProvider
from minemuse.models import CheckedContent, LongFormContent, PlatformContent, RepurposedContent
from minemuse.stages import register_stage
from minemuse.stages.base import Stage
from minemuse.stages.writer import lead_paragraph
from minemuse.trends import HASHTAG_PATTERN

logger = logging.getLogger(__name__)

PLATFORM_LIMITS = {
    "twitter": 280,
    "linkedin": 3000,
    "instagram": 2200,
    "facebook": 63206,
}
MAX_INSTAGRAM_HASHTAGS = 30
DEFAULT_CTA = "What are your thoughts?"
ENGAGEMENT_PROMPT = "Let's discuss!"
ELLIPSIS = "..."

DEFAULT_HASHTAGS = ["#Bitcoin", "#BitcoinMining"]


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)].rstrip() + ELLIPSIS


def limit_hashtags(text: str, max_tags: int) -> str:
    """Drop hashtags past the first ``max_tags`` occurrences."""
    seen = 0

    def keep(match):
        nonlocal seen
        seen += 1
        return match.group(0) if seen <= max_tags else ""

    return HASHTAG_PATTERN.sub(keep, text).rstrip()


def fit_to_platform(text: str, platform: str) -> str:
    text = text.strip()
    if platform == "instagram":
        text = limit_hashtags(text, MAX_INSTAGRAM_HASHTAGS)
    return truncate(text, PLATFORM_LIMITS.get(platform, PLATFORM_LIMITS["facebook"]))


def hook_of(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def call_to_action(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if lines and lines[-1].endswith(("?", "!")):
        return lines[-1]
    return DEFAULT_CTA


def build_variant(platform: str, text: str, fallback: bool = False) -> PlatformContent:
    text = fit_to_platform(text, platform)
    return PlatformContent(
        platform=platform,
        text=text,
        hashtags=list(dict.fromkeys(HASHTAG_PATTERN.findall(text))),
        hook=hook_of(text),
        call_to_action=call_to_action(text),
        engagement=ENGAGEMENT_PROMPT,
        fallback=fallback,
    )


def template_post(content: LongFormContent, platform: str) -> str:
    """Deterministic post from the title and lead paragraph."""
    tags = " ".join(DEFAULT_HASHTAGS)
    lead = lead_paragraph(content.body) or content.summary
    if platform == "twitter":
        head = content.title
        room = PLATFORM_LIMITS["twitter"] - len(tags) - len(DEFAULT_CTA) - 2
        return f"{truncate(head, room)}\n{DEFAULT_CTA} {tags}"
    return f"{content.title}\n\n{lead}\n\n{DEFAULT_CTA}\n\n{tags}"


@register_stage("repurposer")
class RepurposerStage(Stage[CheckedContent, RepurposedContent]):
    """Produce one post per configured platform."""

    def __init__(self, config: dict, llm: BaseLLMProvider | None = None):
        super().__init__(config)
        self._llm = llm
        self.platforms = get_pipeline_config(config)["platforms"]

    @property
    def name(self) -> str:
        return "Repurposing"

    def _provider(self) -> BaseLLMProvider | None:
        if self._llm is None:
            try:
                self._llm = get_provider_for_task(self.config, "repurpose")
            except Exception:
                logger.warning("No LLM available for repurposing, using templates", exc_info=True)
        return self._llm

    async def process(self, checked: CheckedContent) -> RepurposedContent:
        content = checked.content
        if not content.body.strip():
            raise StageFailed(self.name, content.title, "article body is empty")

        variants = [await self.adapt(content, platform) for platform in self.platforms]
        logger.info(
            "Repurposed '%s' for %s", content.title, ", ".join(v.platform for v in variants),
        )
        return RepurposedContent(content=content, report=checked.report, variants=variants)

    async def adapt(self, content: LongFormContent, platform: str) -> PlatformContent:
        llm = self._provider()
        if llm is not None:
            task = get_llm_task_config(self.config, "repurpose")
            prompt = prompts.REPURPOSE.format(
                platform=platform,
                rules=prompts.PLATFORM_RULES.get(platform, ""),
                title=content.title,
                body=content.body,
            )
            try:
                response = await llm.complete(
                    prompt,
                    system=prompts.SYSTEM_SOCIAL,
                    temperature=task["temperature"],
                    max_tokens=task["max_tokens"],
                )
                text = response.text.strip()
                if text:
                    return build_variant(platform, text)
                logger.warning("Empty %s post for '%s'", platform, content.title)
            except Exception:
                logger.warning(
                    "LLM repurposing failed for %s '%s'", platform, content.title, exc_info=True,
                )
        return build_variant(platform, template_post(content, platform), fallback=True)
