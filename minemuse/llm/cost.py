"""Per-run LLM token and cost accounting."""

from __future__ import annotations

import contextvars

# USD per 1M tokens (input, output)
PRICING = {
    "claude-3-5-sonnet-20240620": (3.0, 15.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-haiku-4-5-20251001": (0.80, 4.0),
    "deepseek-chat": (0.14, 0.28),
    "openai/gpt-4o-mini": (0.15, 0.60),
}


def estimate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    """Rough cost estimate based on known pricing."""
    input_rate, output_rate = PRICING.get(model, (1.0, 2.0))
    return (input_tokens * input_rate + output_tokens * output_rate) / 1_000_000


class CostTracker:
    """Accumulate LLM token usage and cost across a pipeline run."""

    def __init__(self):
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_cost_usd = 0.0

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def track(self, input_tokens: int, output_tokens: int, model: str) -> None:
        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.total_cost_usd += estimate_cost(input_tokens, output_tokens, model)


_current: contextvars.ContextVar[CostTracker | None] = contextvars.ContextVar(
    "minemuse_cost_tracker", default=None,
)


def current_tracker() -> CostTracker | None:
    return _current.get()


def bind_tracker(tracker: CostTracker) -> contextvars.Token:
    """Make ``tracker`` receive usage from LLM calls in this context."""
    return _current.set(tracker)


def unbind_tracker(token: contextvars.Token) -> None:
    _current.reset(token)
