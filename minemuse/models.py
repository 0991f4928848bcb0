"""Core data models for the MineMuse data and content pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Generic, Mapping, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class MetricSpec:
    """Declared unit and plausible range for a named metric."""

    name: str
    unit: str
    lower: float
    upper: float

    def accepts(self, value: float | None) -> bool:
        """True if value is a finite number inside the inclusive bounds."""
        if value is None or isinstance(value, bool):
            return False
        try:
            value = float(value)
        except (TypeError, ValueError):
            return False
        return math.isfinite(value) and self.lower <= value <= self.upper


@dataclass(frozen=True)
class EvidenceSource:
    """A web document a value was extracted from."""

    title: str
    url: str
    site: str = ""
    published_date: str | None = None


@dataclass(frozen=True)
class Metric:
    """A resolved numeric fact. ``value`` is None when unknown."""

    name: str
    unit: str
    value: float | None = None
    source: str | None = None
    method: str | None = None  # api, derived, llm, pattern
    confidence: str | None = None  # consensus, single-source
    evidence: tuple[EvidenceSource, ...] = ()

    @property
    def known(self) -> bool:
        return self.value is not None


@dataclass
class NewsItem:
    """A headline gathered for trend analysis."""

    title: str
    url: str
    source: str = ""
    published_date: str | None = None
    sentiment: str = "neutral"


@dataclass
class SocialSignals:
    twitter_mentions: int = 0
    twitter_engagement: int = 0
    twitter_reach: int = 0
    linkedin_posts: int = 0
    linkedin_engagement: int = 0
    trending_hashtags: list[str] = field(default_factory=list)


@dataclass
class TrendData:
    news: list[NewsItem] = field(default_factory=list)
    social: SocialSignals = field(default_factory=SocialSignals)


@dataclass(frozen=True)
class DataSnapshot:
    """One aggregation cycle's view of on-chain, sustainability and trend data."""

    on_chain: Mapping[str, Metric]
    sustainability: Mapping[str, Metric] = field(default_factory=dict)
    provenance: Mapping[str, EvidenceSource] = field(default_factory=dict)
    trends: TrendData = field(default_factory=TrendData)
    congestion: str | None = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        # Snapshots are cached and shared between runs; keep the sections read-only
        for name in ("on_chain", "sustainability", "provenance"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def value(self, name: str) -> float | None:
        """Look up a metric value in either section, None if unknown."""
        metric = self.on_chain.get(name) or self.sustainability.get(name)
        return metric.value if metric else None


@dataclass
class Topic:
    """A content topic generated from a snapshot."""

    id: str
    title: str
    description: str
    category: str
    keywords: list[str] = field(default_factory=list)
    difficulty: str = "intermediate"  # beginner, intermediate, advanced
    focus_areas: list[str] = field(default_factory=list)
    # Not serialized with the topic; the snapshot is published on its own
    snapshot: DataSnapshot | None = field(
        default=None, repr=False, compare=False, metadata={"transient": True},
    )


@dataclass
class ResearchBrief:
    """Verified facts and notes the Writer works from."""

    topic: Topic
    facts: dict[str, str] = field(default_factory=dict)
    notes: str = ""
    warnings: list[str] = field(default_factory=list)


@dataclass
class ContentMetrics:
    word_count: int = 0
    reading_time: int = 0
    difficulty_score: int = 2
    passive_voice_ratio: float = 0.0
    industry_terms: int = 0


@dataclass
class LongFormContent:
    """A long-form article written for one topic."""

    id: str
    topic_id: str
    title: str
    body: str
    summary: str = ""
    keywords: list[str] = field(default_factory=list)
    metrics: ContentMetrics = field(default_factory=ContentMetrics)
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class QualityReport:
    readability: float
    technical_accuracy: float
    uniqueness: float
    structure: float
    overall: float
    suggestions: list[str] = field(default_factory=list)
    passed: bool = True


@dataclass
class CheckedContent:
    """Long-form content paired with its quality report."""

    content: LongFormContent
    report: QualityReport


@dataclass
class PlatformContent:
    """A platform-specific variant of a long-form article."""

    platform: str
    text: str
    hashtags: list[str] = field(default_factory=list)
    hook: str = ""
    call_to_action: str = ""
    engagement: str = ""
    char_count: int = 0
    fallback: bool = False

    def __post_init__(self):
        if not self.char_count:
            self.char_count = len(self.text)


@dataclass
class RepurposedContent:
    """Checked content plus its platform variants, ready to assemble."""

    content: LongFormContent
    report: QualityReport
    variants: list[PlatformContent] = field(default_factory=list)


@dataclass
class Publication:
    platform: str
    channel: str
    reference: str
    published_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ContentPackage:
    """All output produced for one topic."""

    id: str
    topic: Topic
    long_form: LongFormContent
    platform_variants: list[PlatformContent] = field(default_factory=list)
    quality: QualityReport | None = None
    status: str = "draft"  # draft, published
    publications: list[Publication] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class StageResult(Generic[T]):
    """Outcome of running one stage on one work item."""

    stage: str
    success: bool
    value: T | None = None
    error: Exception | None = None

    @classmethod
    def ok(cls, stage: str, value: T) -> StageResult[T]:
        return cls(stage=stage, success=True, value=value)

    @classmethod
    def fail(cls, stage: str, error: Exception) -> StageResult[T]:
        return cls(stage=stage, success=False, error=error)


@dataclass
class RunMetadata:
    topics_generated: int = 0
    content_created: int = 0
    platforms_generated: int = 0
    total_processing_time: float = 0.0  # seconds
    llm_tokens_used: int = 0
    llm_cost_usd: float = 0.0


@dataclass
class RunResult:
    """Final outcome of a pipeline run."""

    success: bool
    content_packages: list[ContentPackage] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False
    metadata: RunMetadata = field(default_factory=RunMetadata)


@dataclass
class RunState:
    """Observable state of the current run."""

    run_id: str
    logs: list[str] = field(default_factory=list)
    done: bool = False
    result: RunResult | None = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None
