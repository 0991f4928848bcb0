"""Stage interface and the sequencer that chains stages for one work item."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Sequence, TypeVar

from minemuse.errors import StageFailed
from minemuse.models import StageResult

logger = logging.getLogger(__name__)

In = TypeVar("In")
Out = TypeVar("Out")


def describe(item: Any) -> str:
    """Best human label for a work item: its topic title when it has one."""
    for path in (("topic", "title"), ("content", "title"), ("title",)):
        value = item
        for attr in path:
            value = getattr(value, attr, None)
            if value is None:
                break
        if isinstance(value, str) and value:
            return value
    return type(item).__name__


class Stage(ABC, Generic[In, Out]):
    """One step of the content pipeline applied to a single work item."""

    def __init__(self, config: dict):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage name used in logs and error messages."""
        ...

    @abstractmethod
    async def process(self, item: In) -> Out:
        """Do the work; raise on failure."""
        ...

    async def run(self, item: In) -> StageResult[Out]:
        """Run the stage and capture any failure as StageFailed."""
        try:
            return StageResult.ok(self.name, await self.process(item))
        except StageFailed as exc:
            return StageResult.fail(self.name, exc)
        except Exception as exc:
            logger.warning("%s stage raised for '%s'", self.name, describe(item), exc_info=True)
            return StageResult.fail(self.name, StageFailed(self.name, describe(item), exc))


async def run_chain(stages: Sequence[Stage], item: Any, on_success=None) -> StageResult:
    """Feed ``item`` through ``stages`` in order, stopping at the first failure.

    ``on_success(stage, value)`` is awaited after each stage that succeeds.
    """
    result: StageResult = StageResult.ok("input", item)
    for stage in stages:
        result = await stage.run(result.value)
        if not result.success:
            return result
        if on_success is not None:
            await on_success(stage, result.value)
    return result
