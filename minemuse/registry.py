"""Single-slot registry for the generation run observed by pollers."""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from minemuse.errors import RunAlreadyActive
from minemuse.models import RunResult, RunState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunTicket:
    run_id: str
    created: bool


class RunRegistry:
    """Holds at most one run's logs, done flag and result.

    Only the task executing the run writes to it. Logs are append-only and
    ``done`` is set last in ``complete`` so a poller that sees ``done`` also
    sees the final result. Starting while a run is active returns the
    existing run without touching its logs.
    """

    def __init__(self):
        self._state: RunState | None = None
        self._cancel: asyncio.Event | None = None

    @property
    def active(self) -> bool:
        return self._state is not None and not self._state.done

    @property
    def current_id(self) -> str | None:
        return self._state.run_id if self._state else None

    def claim(self) -> str:
        """Open a new run slot. Raises RunAlreadyActive while one is running."""
        if self.active:
            raise RunAlreadyActive(self._state.run_id)
        run_id = uuid.uuid4().hex
        self._state = RunState(run_id=run_id)
        self._cancel = asyncio.Event()
        logger.info("Run %s started", run_id)
        return run_id

    def start(self) -> RunTicket:
        try:
            return RunTicket(self.claim(), created=True)
        except RunAlreadyActive as exc:
            return RunTicket(exc.run_id, created=False)

    def _live(self, run_id: str) -> RunState | None:
        state = self._state
        if state is None or state.run_id != run_id or state.done:
            return None
        return state

    def append_log(self, run_id: str, message: str) -> bool:
        """Append a progress line. Ignored for finished or replaced runs."""
        state = self._live(run_id)
        if state is None:
            return False
        state.logs.append(message)
        return True

    def complete(self, run_id: str, result: RunResult) -> None:
        state = self._live(run_id)
        if state is None:
            logger.warning("Ignoring completion for inactive run %s", run_id)
            return
        state.result = result
        state.finished_at = datetime.utcnow()
        state.done = True
        logger.info("Run %s done (success=%s)", run_id, result.success)

    def request_stop(self) -> bool:
        """Ask the active run to stop before its next topic.

        Only signals the run; the run itself logs that it saw the request.
        """
        if not self.active:
            return False
        self._cancel.set()
        return True

    def cancel_event(self, run_id: str) -> asyncio.Event:
        if self._state is None or self._state.run_id != run_id:
            raise KeyError(run_id)
        return self._cancel

    def read(self, run_id: str | None = None) -> RunState:
        """Snapshot of the current run, or an idle state when none exists."""
        state = self._state
        if state is None:
            return RunState(run_id="", done=True)
        if run_id is not None and run_id != state.run_id:
            raise KeyError(run_id)
        snapshot = copy.copy(state)
        snapshot.logs = list(state.logs)
        return snapshot
