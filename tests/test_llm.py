"""Tests for LLM providers and result handling."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from minemuse.llm import get_provider_for_task, reset_providers
from minemuse.llm.base import LLMResponse, Plain, Structured, coerce_text, extract_json, parse_structured
from minemuse.llm.cost import CostTracker, bind_tracker, current_tracker, estimate_cost, unbind_tracker
from minemuse.llm.openai_compat import OpenAICompatibleProvider


@pytest.fixture
def openai_provider():
    return OpenAICompatibleProvider(
        api_key="test-key",
        base_url="http://localhost:9999",
        default_model="test-model",
    )


def _mock_openai_response(content="test response"):
    return {
        "choices": [{"message": {"content": content}}],
        "usage": {"prompt_tokens": 10, "completion_tokens": 20},
    }


def _mock_client(mock_client_cls, body):
    mock_resp = MagicMock()
    mock_resp.json.return_value = body
    mock_resp.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.post.return_value = mock_resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


@pytest.mark.asyncio
@patch("minemuse.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_complete(mock_client_cls, openai_provider):
    """OpenAI-compatible provider makes correct API call."""
    mock_client = _mock_client(mock_client_cls, _mock_openai_response("hello world"))

    with patch.object(openai_provider, "_track_cost"):
        response = await openai_provider.complete("test prompt", system="sys")

    assert response.text == "hello world"
    assert isinstance(response.result, Plain)
    assert response.input_tokens == 10
    assert response.output_tokens == 20

    payload = mock_client.post.call_args.kwargs["json"]
    assert payload["model"] == "test-model"
    assert len(payload["messages"]) == 2
    assert payload["messages"][0]["role"] == "system"
    assert payload["messages"][1]["content"] == "test prompt"
    assert "response_format" not in payload


@pytest.mark.asyncio
@patch("minemuse.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_json_mode(mock_client_cls, openai_provider):
    """JSON mode asks for an object and returns a structured result."""
    mock_client = _mock_client(mock_client_cls, _mock_openai_response('{"pue": 1.3}'))

    with patch.object(openai_provider, "_track_cost"):
        response = await openai_provider.complete("prompt", json_mode=True)

    payload = mock_client.post.call_args.kwargs["json"]
    assert payload["response_format"] == {"type": "json_object"}
    assert isinstance(response.result, Structured)
    assert response.json() == {"pue": 1.3}


@pytest.mark.asyncio
@patch("minemuse.llm.openai_compat.httpx.AsyncClient")
async def test_openai_compat_tracks_cost(mock_client_cls, openai_provider):
    _mock_client(mock_client_cls, _mock_openai_response())
    tracker = CostTracker()
    token = bind_tracker(tracker)
    try:
        await openai_provider.complete("prompt")
    finally:
        unbind_tracker(token)

    assert tracker.total_tokens == 30
    assert current_tracker() is None


def test_extract_json_variants():
    assert extract_json('{"a": 1}') == {"a": 1}
    assert extract_json('Here you go:\n```json\n{"a": 2}\n```') == {"a": 2}
    assert extract_json('prefix {"a": 3} suffix') == {"a": 3}
    assert extract_json("no json here") is None
    assert extract_json("") is None


def test_coerce_and_parse():
    assert coerce_text(Plain("hi")) == "hi"
    assert coerce_text(Structured({"a": 1})) == '{"a": 1}'
    assert parse_structured(Plain('{"a": 1}')) == {"a": 1}
    assert parse_structured(Structured('{"a": 1}')) == {"a": 1}
    assert parse_structured(Plain("plain words")) is None


def test_response_text_of_structured():
    response = LLMResponse(result=Structured(["x"]))
    assert response.text == '["x"]'
    assert response.json() == ["x"]


def test_estimate_cost_unknown_model_uses_default_rate():
    assert estimate_cost(1_000_000, 0, "mystery") == 1.0


def test_provider_for_task_reuses_instance(sample_config):
    reset_providers()
    first = get_provider_for_task(sample_config, "write")
    second = get_provider_for_task(sample_config, "research")
    assert first is second
    assert isinstance(first, OpenAICompatibleProvider)
    reset_providers()


def test_unknown_provider_type_raises():
    reset_providers()
    config = {"llm": {"providers": {"x": {"type": "nope"}}, "tasks": {"write": {"provider": "x"}}}}
    with pytest.raises(ValueError, match="Unknown LLM provider type"):
        get_provider_for_task(config, "write")
