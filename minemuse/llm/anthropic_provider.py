"""Anthropic Claude LLM provider."""

from __future__ import annotations

import logging

import anthropic

from minemuse.llm import register_provider
from minemuse.llm.base import BaseLLMProvider, LLMResponse, Plain
from minemuse.retry import retry_async

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20240620"


@register_provider("anthropic")
class AnthropicProvider(BaseLLMProvider):
    """Provider for Anthropic Claude models."""

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def complete(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        temperature: float = 0.6,
        max_tokens: int = 1200,
        json_mode: bool = False,
    ) -> LLMResponse:
        model = model or self.active_model or self.default_model or DEFAULT_MODEL
        response = await retry_async(
            self._do_complete, prompt, system, model,
            temperature, max_tokens,
            max_retries=self.max_retries,
        )
        self._track_cost(response)
        return response

    async def _do_complete(
        self,
        prompt: str,
        system: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        client = anthropic.AsyncAnthropic(api_key=self.api_key, timeout=self.timeout)

        kwargs = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        response = await client.messages.create(**kwargs)

        # Concatenate text blocks; other block types carry no prose
        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", "text") == "text"
        )

        return LLMResponse(
            result=Plain(text),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=model,
        )
