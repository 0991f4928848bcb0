"""OpenAI-compatible LLM provider (OpenRouter, DeepSeek, Ollama, vLLM, etc.)."""

from __future__ import annotations

import json
import logging

import httpx

from minemuse.llm import register_provider
from minemuse.llm.base import BaseLLMProvider, LLMResponse, Plain, Structured
from minemuse.retry import retry_async

logger = logging.getLogger(__name__)


@register_provider("openai_compatible")
class OpenAICompatibleProvider(BaseLLMProvider):
    """Provider for any OpenAI-compatible chat completions API."""

    @property
    def provider_name(self) -> str:
        return "openai_compatible"

    async def complete(
        self,
        prompt: str,
        system: str = "",
        model: str | None = None,
        temperature: float = 0.6,
        max_tokens: int = 1200,
        json_mode: bool = False,
    ) -> LLMResponse:
        model = model or self.active_model or self.default_model
        response = await retry_async(
            self._do_complete, prompt, system, model,
            temperature, max_tokens, json_mode,
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
        json_mode: bool,
    ) -> LLMResponse:
        url = f"{self.base_url.rstrip('/')}/chat/completions"

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()

        content = data["choices"][0]["message"].get("content") or ""
        usage = data.get("usage", {})

        return LLMResponse(
            result=self._to_result(content, json_mode),
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            model=model,
        )

    @staticmethod
    def _to_result(content, json_mode: bool):
        # Some gateways return the JSON object itself instead of a string
        if isinstance(content, (dict, list)):
            return Structured(content)
        if json_mode:
            try:
                return Structured(json.loads(content))
            except (json.JSONDecodeError, ValueError):
                logger.debug("json_mode response was not valid JSON, keeping as text")
        return Plain(content)
