"""Pipeline orchestrator: data snapshot -> topics -> per-topic stage chain -> packages."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Callable

from minemuse.aggregator import DataAggregator
from minemuse.config import get_db_path, get_pipeline_config
from minemuse.db import finish_run, get_connection, insert_package, insert_run
from minemuse.llm.base import BaseLLMProvider
from minemuse.llm.cost import CostTracker, bind_tracker, unbind_tracker
from minemuse.models import (
    ContentPackage,
    RepurposedContent,
    RunMetadata,
    RunResult,
    StageResult,
    Topic,
)
from minemuse.stages import CONTENT_CHAIN, STAGES
from minemuse.stages.base import Stage, run_chain
from minemuse.stages.publisher import PublisherStage
from minemuse.topics import generate_topics

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str], None]

STOP_MESSAGE = "Stop requested"

# Milestone logged after each stage succeeds
MILESTONES = {
    "Writing": "Created article: {title}",
    "Quality check": "Quality OK: {title}",
    "Repurposing": "Repurposed: {title}",
}


def build_content_chain(config: dict, llm: BaseLLMProvider | None = None) -> list[Stage]:
    """Fresh stage instances for one run, in execution order."""
    stages = []
    for name in CONTENT_CHAIN:
        cls = STAGES[name]
        stages.append(cls(config) if name == "quality" else cls(config, llm=llm))
    return stages


def package_id() -> str:
    return f"package_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def describe_failure(result: StageResult, topic: Topic) -> str:
    cause = getattr(result.error, "cause", result.error)
    return f'{result.stage} failed for topic "{topic.title}": {cause}'


class PipelineOrchestrator:
    """Run the content chain for a batch of topics.

    Each topic goes through researcher -> writer -> quality -> repurposer
    on its own; a failure is recorded in ``errors`` and the batch moves on.
    Cancellation is checked before each topic starts.
    """

    def __init__(
        self,
        config: dict,
        aggregator: DataAggregator | None = None,
        stage_factory: Callable[[dict], list[Stage]] | None = None,
        publisher: PublisherStage | None = None,
    ):
        self.config = config
        self.settings = get_pipeline_config(config)
        self.aggregator = aggregator or DataAggregator(config)
        self.stage_factory = stage_factory or build_content_chain
        self._publisher = publisher

    @property
    def publisher(self) -> PublisherStage | None:
        if not self.settings["publish"]:
            return None
        if self._publisher is None:
            self._publisher = PublisherStage(self.config)
        return self._publisher

    async def load_topics(self) -> list[Topic]:
        kind = self.settings["topic_kind"]
        if kind == "onchain":
            snapshot = await self.aggregator.collect_onchain()
        else:
            snapshot = await self.aggregator.collect_comprehensive()
        return generate_topics(snapshot, limit=self.settings["max_topics"], kind=kind)

    async def run(
        self,
        progress: ProgressFn | None = None,
        cancel: asyncio.Event | None = None,
    ) -> RunResult:
        """Execute one run. Never raises; unexpected errors yield ``success=False``."""
        report = progress or (lambda msg: None)
        cancel = cancel or asyncio.Event()
        started = time.monotonic()
        tracker = CostTracker()
        token = bind_tracker(tracker)

        packages: list[ContentPackage] = []
        errors: list[str] = []
        metadata = RunMetadata()
        cancelled = False

        try:
            report("Starting pipeline")
            report("Step 1: Researching on-chain data")
            topics = await self.load_topics()
            metadata.topics_generated = len(topics)
            report(f"Generated {len(topics)} topics")

            report("Step 2: Generating content")
            stages = self.stage_factory(self.config)
            limit = asyncio.Semaphore(self.settings["max_concurrent_topics"])

            async def one(topic: Topic) -> ContentPackage | None:
                nonlocal cancelled
                async with limit:
                    if cancel.is_set():
                        if not cancelled:
                            report(STOP_MESSAGE)
                        cancelled = True
                        return None
                    return await self._process_topic(topic, stages, report, errors, metadata)

            results = await asyncio.gather(*[one(t) for t in topics])
            # Topic order, not completion order
            packages = [p for p in results if p is not None]

            if cancelled:
                report("Cancelled")
            else:
                report("Completed")
            success = bool(packages)
        except Exception as exc:
            logger.exception("Pipeline run failed")
            errors.append(str(exc) or type(exc).__name__)
            report(f"Error: {exc}")
            success = False
        finally:
            unbind_tracker(token)

        metadata.total_processing_time = round(time.monotonic() - started, 3)
        metadata.llm_tokens_used = tracker.total_tokens
        metadata.llm_cost_usd = round(tracker.total_cost_usd, 6)
        logger.info(
            "Run finished: %d/%d packages, %d errors, %d tokens, $%.4f%s",
            len(packages), metadata.topics_generated, len(errors),
            metadata.llm_tokens_used, metadata.llm_cost_usd,
            " (cancelled)" if cancelled else "",
        )
        return RunResult(
            success=success,
            content_packages=packages,
            errors=errors,
            cancelled=cancelled,
            metadata=metadata,
        )

    async def _process_topic(
        self,
        topic: Topic,
        stages: list[Stage],
        report: ProgressFn,
        errors: list[str],
        metadata: RunMetadata,
    ) -> ContentPackage | None:
        async def milestone(stage: Stage, value) -> None:
            if stage.name == "Writing":
                metadata.content_created += 1
            template = MILESTONES.get(stage.name)
            if template:
                title = getattr(getattr(value, "content", value), "title", topic.title)
                report(template.format(title=title))

        result = await run_chain(stages, topic, on_success=milestone)
        if not result.success:
            error = describe_failure(result, topic)
            logger.warning("%s", error)
            errors.append(error)
            return None

        repurposed: RepurposedContent = result.value
        package = ContentPackage(
            id=package_id(),
            topic=topic,
            long_form=repurposed.content,
            platform_variants=repurposed.variants,
            quality=repurposed.report,
        )
        metadata.platforms_generated += len(package.platform_variants)

        publisher = self.publisher
        if publisher is not None:
            published = await publisher.run(package)
            if published.success:
                report(f"Published: {package.long_form.title}")
            else:
                # Still a usable draft
                errors.append(describe_failure(published, topic))
        return package


async def run_pipeline(config: dict) -> RunResult:
    """Run once from the command line and persist the outcome."""
    db_path = get_db_path(config)
    conn = get_connection(db_path)
    started_at = datetime.utcnow()
    run_id = insert_run(conn, started_at)
    logger.info("Pipeline run #%d started", run_id)

    try:
        orchestrator = PipelineOrchestrator(config)
        result = await orchestrator.run(progress=lambda msg: logger.info("%s", msg))
        for package in result.content_packages:
            insert_package(conn, package, run_id)
        finish_run(conn, run_id, result)
        return result
    finally:
        conn.close()
