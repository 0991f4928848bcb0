"""Tests for JSON views of the models."""

from __future__ import annotations

from datetime import datetime

from conftest import make_snapshot
from minemuse.models import RunMetadata, RunResult
from minemuse.serialize import camel, to_jsonable


def test_camel():
    assert camel("llm_cost_usd") == "llmCostUsd"
    assert camel("value") == "value"


def test_unknown_values_stay_null():
    data = to_jsonable(make_snapshot(price=65000.0))
    assert data["onChain"]["price"]["value"] == 65000.0
    assert data["congestion"] is None
    assert data["timestamp"] == datetime(2025, 3, 14, 12, 0).isoformat()


def test_run_result_shape():
    data = to_jsonable(RunResult(success=True, metadata=RunMetadata(llm_tokens_used=10)))
    assert data["metadata"]["llmTokensUsed"] == 10
    assert data["contentPackages"] == []
    assert data["cancelled"] is False
