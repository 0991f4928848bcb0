"""Background execution of pipeline runs on behalf of the HTTP layer."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from minemuse.db import finish_run, get_connection, insert_package, insert_run
from minemuse.models import RunResult
from minemuse.pipeline import PipelineOrchestrator
from minemuse.registry import RunRegistry, RunTicket

logger = logging.getLogger(__name__)


class GenerationService:
    """Start runs as asyncio tasks and feed their progress into the registry."""

    def __init__(
        self,
        config: dict,
        registry: RunRegistry,
        orchestrator_factory: Callable[[dict], PipelineOrchestrator] | None = None,
        db_path: str | None = None,
    ):
        self.config = config
        self.registry = registry
        self.orchestrator_factory = orchestrator_factory or PipelineOrchestrator
        self.db_path = db_path
        self._task: asyncio.Task | None = None

    def start(self) -> RunTicket:
        """Begin a run unless one is already active. Does not wait for it."""
        ticket = self.registry.start()
        if ticket.created:
            self._task = asyncio.create_task(self._execute(ticket.run_id))
        return ticket

    def stop(self) -> bool:
        return self.registry.request_stop()

    async def wait(self) -> None:
        """Wait for the current background run, if any."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _execute(self, run_id: str) -> None:
        result = RunResult(success=False, errors=["run did not finish"])
        try:
            orchestrator = self.orchestrator_factory(self.config)
            result = await orchestrator.run(
                progress=lambda msg: self.registry.append_log(run_id, msg),
                cancel=self.registry.cancel_event(run_id),
            )
            self._persist(run_id, result)
        except asyncio.CancelledError:
            result = RunResult(success=False, cancelled=True, errors=["run task cancelled"])
            raise
        except Exception as exc:
            logger.exception("Run %s crashed", run_id)
            self.registry.append_log(run_id, f"Error: {exc}")
            result = RunResult(success=False, errors=[str(exc) or type(exc).__name__])
        finally:
            self.registry.complete(run_id, result)

    def _persist(self, run_id: str, result: RunResult) -> None:
        if not self.db_path:
            return
        try:
            conn = get_connection(self.db_path)
            try:
                row_id = insert_run(conn, self.registry.read(run_id).started_at)
                for package in result.content_packages:
                    insert_package(conn, package, row_id)
                finish_run(conn, row_id, result)
            finally:
                conn.close()
        except Exception:
            # The packages are still in the registry for the poller
            logger.exception("Failed to persist run")
