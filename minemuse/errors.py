"""Exception taxonomy for data resolution and pipeline runs."""

from __future__ import annotations


class MineMuseError(Exception):
    """Base class for all MineMuse errors."""


class ProviderUnavailable(MineMuseError):
    """An upstream could not be reached, timed out, or returned non-2xx."""

    def __init__(self, provider: str, reason: str = ""):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} unavailable: {reason}" if reason else f"{provider} unavailable")


class MalformedResponse(MineMuseError):
    """An upstream answered but the payload did not have the expected shape."""

    def __init__(self, provider: str, reason: str = ""):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} returned malformed data: {reason}")


class OutOfRange(MineMuseError):
    """A value fell outside the sanity bounds of its metric."""

    def __init__(self, metric: str, value: float, lower: float, upper: float):
        self.metric = metric
        self.value = value
        self.lower = lower
        self.upper = upper
        super().__init__(f"{metric}={value!r} outside [{lower}, {upper}]")


class ExtractionFailed(MineMuseError):
    """Neither extraction tier produced a value for a KPI."""

    def __init__(self, kpi: str):
        self.kpi = kpi
        super().__init__(f"no value extracted for {kpi}")


class StageFailed(MineMuseError):
    """A pipeline stage could not complete for one topic."""

    def __init__(self, stage: str, topic: str, cause: BaseException | str):
        self.stage = stage
        self.topic = topic
        self.cause = cause
        super().__init__(f'{stage} failed for topic "{topic}": {cause}')


class RunAlreadyActive(MineMuseError):
    """A run was requested while another is still in progress."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"run {run_id} is already active")
