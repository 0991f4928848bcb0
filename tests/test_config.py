"""Tests for config loading and env var resolution."""

from __future__ import annotations

import pytest

from minemuse.config import (
    get_cache_ttls,
    get_db_path,
    get_llm_task_config,
    get_pipeline_config,
    get_search_config,
    get_server_config,
    get_source_config,
    load_config,
)


def test_load_config(sample_config):
    """Config loads and has expected structure."""
    assert "llm" in sample_config
    assert "sources" in sample_config
    assert "pipeline" in sample_config


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_env_var_resolution(tmp_path, monkeypatch):
    """Environment variables in ${VAR} format are resolved."""
    monkeypatch.setenv("TEST_API_KEY", "my-secret-key")
    monkeypatch.setenv("TEST_HOST", "example.com")
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("""
llm:
  providers:
    test:
      api_key: "${TEST_API_KEY}"
      base_url: "https://${TEST_HOST}/v1"
""")
    config = load_config(str(cfg_path))
    assert config["llm"]["providers"]["test"]["api_key"] == "my-secret-key"
    assert config["llm"]["providers"]["test"]["base_url"] == "https://example.com/v1"


def test_get_llm_task_config(sample_config):
    """Task-to-provider mapping works."""
    cfg = get_llm_task_config(sample_config, "write")
    assert cfg["provider_name"] == "mock"
    assert cfg["provider_type"] == "openai_compatible"
    assert cfg["model"] == "test-model"


def test_llm_task_generation_settings(sample_config):
    """Per-task defaults apply until the task overrides them."""
    assert get_llm_task_config(sample_config, "write")["max_tokens"] == 2400
    assert get_llm_task_config(sample_config, "extract_evidence")["temperature"] == 0.1

    sample_config["llm"]["tasks"]["write"]["max_tokens"] = 3000
    sample_config["llm"]["tasks"]["write"]["temperature"] = 0.2
    cfg = get_llm_task_config(sample_config, "write")
    assert cfg["max_tokens"] == 3000
    assert cfg["temperature"] == 0.2


def test_source_config_defaults(sample_config):
    cfg = get_source_config(sample_config, "coingecko")
    assert cfg["enabled"] is True
    assert cfg["timeout"] == 2


def test_pipeline_defaults():
    cfg = get_pipeline_config({})
    assert cfg["max_topics"] == 5
    assert cfg["max_concurrent_topics"] == 1
    assert cfg["publish"] is False
    assert cfg["enforce_quality"] is False
    assert cfg["topic_kind"] == "comprehensive"


def test_cache_and_server_defaults():
    assert get_cache_ttls({}) == {"onchain": 60.0, "comprehensive": 300.0}
    assert get_server_config({}) == {"host": "127.0.0.1", "port": 8000}


def test_search_config_falls_back_to_default_queries():
    cfg = get_search_config({"search": {"api_key": "k"}})
    assert cfg["api_key"] == "k"
    assert cfg["queries"]
    assert cfg["domains"]


def test_get_db_path(sample_config):
    """DB path is extracted from config."""
    path = get_db_path(sample_config)
    assert path.endswith("test.db")
