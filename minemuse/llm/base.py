"""LLM provider interface and the text/structured result union."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Plain:
    """Free text returned by a model."""

    text: str


@dataclass(frozen=True)
class Structured:
    """An already-parsed JSON value returned by a model."""

    value: Any


TextResult = Union[Plain, Structured]


def _normalize_quotes(text: str) -> str:
    """Replace smart/curly quotes with straight quotes for JSON parsing."""
    return (
        text
        .replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
        .replace("″", '"')
        .replace("′", "'")
    )


def _try_parse(text: str) -> Any | None:
    for candidate in (text, _normalize_quotes(text)):
        try:
            return json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
    return None


def extract_json(text: str) -> Any | None:
    """Find JSON in model output: raw, inside ``` fences, or the first {...} block."""
    if not text:
        return None
    result = _try_parse(text.strip())
    if result is not None:
        return result

    fenced = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", text, re.DOTALL)
    if fenced:
        result = _try_parse(fenced.group(1))
        if result is not None:
            return result

    brace = re.search(r"\{.*\}", text, re.DOTALL)
    if brace:
        return _try_parse(brace.group(0))
    return None


def coerce_text(result: TextResult) -> str:
    """Render any result as text; structured values become JSON."""
    if isinstance(result, Plain):
        return result.text
    if isinstance(result.value, str):
        return result.value
    return json.dumps(result.value, ensure_ascii=False)


def parse_structured(result: TextResult) -> dict | list | None:
    """Get a JSON object/array out of a result, or None if there is none."""
    if isinstance(result, Structured):
        value = result.value
        if isinstance(value, str):
            value = extract_json(value)
    else:
        value = extract_json(result.text)
    return value if isinstance(value, (dict, list)) else None


@dataclass
class LLMResponse:
    """Response from an LLM call."""

    result: TextResult
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""

    @property
    def text(self) -> str:
        return coerce_text(self.result)

    def json(self) -> dict | list | None:
        return parse_structured(self.result)


class BaseLLMProvider(ABC):
    """Base class for LLM providers."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        default_model: str,
        max_retries: int = 3,
        timeout: int = 120,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model
        self.active_model = default_model
        self.max_retries = max_retries
        self.timeout = timeout

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        temperature: float = 0.6,
        max_tokens: int = 1200,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Send a completion request and return the response."""
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    def _track_cost(self, response: LLMResponse) -> None:
        """Report token usage to the tracker bound to the current run, if any."""
        from minemuse.llm.cost import current_tracker

        tracker = current_tracker()
        if tracker and (response.input_tokens or response.output_tokens):
            tracker.track(response.input_tokens, response.output_tokens, response.model)
