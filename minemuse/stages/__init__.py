"""Content pipeline stage registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from minemuse.stages.base import Stage

STAGES: dict[str, type[Stage]] = {}

# Per-topic chain, in execution order
CONTENT_CHAIN = ["researcher", "writer", "quality", "repurposer"]


def register_stage(name: str):
    """Decorator to register a pipeline stage."""

    def decorator(cls):
        STAGES[name] = cls
        return cls

    return decorator


from minemuse.stages.publisher import PublisherStage  # noqa: E402, F401
from minemuse.stages.quality import QualityStage  # noqa: E402, F401
from minemuse.stages.repurposer import RepurposerStage  # noqa: E402, F401
from minemuse.stages.researcher import ResearcherStage  # noqa: E402, F401
from minemuse.stages.writer import WriterStage  # noqa: E402, F401
