"""Load configuration from YAML with ${ENV_VAR} substitution."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

DEFAULT_TIMEOUT = 10.0

# (temperature, max_tokens) per LLM task when the config does not set them
TASK_GENERATION_DEFAULTS = {
    "research": (0.4, 600),
    "write": (0.6, 2400),
    "repurpose": (0.7, 800),
    "extract_evidence": (0.1, 800),
    "plan_queries": (0.3, 400),
}

DEFAULT_SEARCH_QUERIES = [
    "bitcoin mining news",
    "bitcoin mining sustainability renewable energy",
    "bitcoin mining AI HPC data centers",
    "bitcoin mining regulation",
    "bitcoin miners earnings",
]

DEFAULT_SEARCH_DOMAINS = [
    "coindesk.com",
    "theblock.co",
    "bitcoinmagazine.com",
    "cointelegraph.com",
    "decrypt.co",
    "bloomberg.com",
    "reuters.com",
    "ft.com",
    "cnbc.com",
    "wsj.com",
]


def _load_dotenv(path: str | Path = ".env") -> None:
    """Load KEY=value lines from a .env file, keeping variables already set."""
    env_path = Path(path)
    if not env_path.is_file():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            if key and key not in os.environ:
                os.environ[key] = value.strip().strip("'\"")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively substitute ${ENV_VAR} references; unset variables become ''."""
    if isinstance(value, str):
        match = _ENV_PATTERN.fullmatch(value)
        if match:
            return os.environ.get(match.group(1), "")
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(path: str | Path = "config.yaml") -> dict[str, Any]:
    """Load config from YAML file and resolve environment variables."""
    _load_dotenv()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return _resolve_env_vars(raw)


def get_llm_task_config(config: dict, task: str) -> dict:
    """Resolve the provider and model used for an LLM task."""
    llm = config.get("llm", {})
    task_cfg = llm.get("tasks", {}).get(task, {})
    provider_name = task_cfg.get("provider", llm.get("default_provider", "anthropic"))

    provider_cfg = llm.get("providers", {}).get(provider_name, {})
    temperature, max_tokens = TASK_GENERATION_DEFAULTS.get(task, (0.6, 1200))

    return {
        "provider_name": provider_name,
        "provider_type": provider_cfg.get("type", "anthropic"),
        "api_key": provider_cfg.get("api_key", ""),
        "base_url": provider_cfg.get("base_url", ""),
        "model": task_cfg.get("model") or provider_cfg.get("default_model", ""),
        "max_retries": provider_cfg.get("max_retries", 3),
        "timeout": provider_cfg.get("timeout", 120),
        "temperature": float(task_cfg.get("temperature", temperature)),
        "max_tokens": int(task_cfg.get("max_tokens", max_tokens)),
    }


def get_source_config(config: dict, name: str) -> dict:
    """Settings for one upstream data source (enabled, base_url, timeout)."""
    cfg = dict(config.get("sources", {}).get(name) or {})
    cfg.setdefault("enabled", True)
    cfg.setdefault("timeout", config.get("sources", {}).get("timeout", DEFAULT_TIMEOUT))
    return cfg


def get_cache_ttls(config: dict) -> dict[str, float]:
    cache = config.get("cache", {})
    return {
        "onchain": float(cache.get("onchain_ttl", 60)),
        "comprehensive": float(cache.get("comprehensive_ttl", 300)),
    }


def get_pipeline_config(config: dict) -> dict:
    pipeline = config.get("pipeline", {})
    return {
        "max_topics": int(pipeline.get("max_topics", 5)),
        "topic_kind": pipeline.get("topic_kind", "comprehensive"),
        "max_concurrent_topics": max(1, int(pipeline.get("max_concurrent_topics", 1))),
        "publish": bool(pipeline.get("publish", False)),
        "enforce_quality": bool(pipeline.get("enforce_quality", False)),
        "min_quality_score": float(pipeline.get("min_quality_score", 0.6)),
        "platforms": pipeline.get(
            "platforms", ["twitter", "linkedin", "instagram", "facebook"],
        ),
    }


def get_search_config(config: dict) -> dict:
    search = config.get("search", {})
    return {
        "api_key": search.get("api_key", ""),
        "base_url": search.get("base_url", "https://api.exa.ai"),
        "num_results": int(search.get("num_results", 8)),
        "lookback_days": int(search.get("lookback_days", 7)),
        "timeout": float(search.get("timeout", DEFAULT_TIMEOUT)),
        "queries": search.get("queries") or list(DEFAULT_SEARCH_QUERIES),
        "domains": search.get("domains") or list(DEFAULT_SEARCH_DOMAINS),
    }


def get_rss_feeds(config: dict) -> list[dict]:
    """Configured news feeds as ``[{"url": ..., "name": ...}]``."""
    rss = config.get("sources", {}).get("rss", {})
    if not rss.get("enabled", False):
        return []
    return rss.get("feeds", [])


def get_db_path(config: dict) -> str:
    """Get database path from config."""
    return config.get("database", {}).get("path", "data/minemuse.db")


def get_server_config(config: dict) -> dict:
    server = config.get("server", {})
    return {
        "host": server.get("host", "127.0.0.1"),
        "port": int(server.get("port", 8000)),
    }
