"""HTTP interface: start/poll/stop generation runs and pull data snapshots."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from minemuse import __version__
from minemuse.aggregator import DataAggregator
from minemuse.config import get_search_config
from minemuse.registry import RunRegistry
from minemuse.serialize import to_jsonable
from minemuse.service import GenerationService

logger = logging.getLogger(__name__)


class StartResponse(BaseModel):
    started: bool = True
    run_id: str = Field(serialization_alias="runId")
    created: bool


class StateResponse(BaseModel):
    run_id: Optional[str] = Field(default=None, serialization_alias="runId")
    logs: List[str] = Field(default_factory=list)
    done: bool = True
    result: Optional[Dict[str, Any]] = None


class StopResponse(BaseModel):
    stopped: bool


def health_report(config: dict) -> Dict[str, Any]:
    providers = config.get("llm", {}).get("providers", {})
    llm = {name: bool(cfg.get("api_key")) for name, cfg in providers.items()}
    search = bool(get_search_config(config)["api_key"])
    return {
        "status": "ok" if search and all(llm.values()) else "degraded",
        "version": __version__,
        "search": search,
        "llm": llm,
    }


def create_app(
    config: dict,
    registry: RunRegistry | None = None,
    aggregator: DataAggregator | None = None,
    service: GenerationService | None = None,
) -> FastAPI:
    """Build the app around explicit collaborators; nothing is module-global."""
    registry = registry or (service.registry if service else RunRegistry())
    aggregator = aggregator or DataAggregator(config)
    service = service or GenerationService(
        config,
        registry,
        db_path=config.get("database", {}).get("path"),
    )

    app = FastAPI(title="MineMuse", version=__version__)
    app.state.config = config
    app.state.registry = registry
    app.state.aggregator = aggregator
    app.state.service = service

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return health_report(config)

    @app.post("/generate/start")
    async def start_generation() -> StartResponse:
        ticket = service.start()
        if not ticket.created:
            logger.info("Run %s already active", ticket.run_id)
        return StartResponse(run_id=ticket.run_id, created=ticket.created)

    @app.get("/generate/state")
    async def generation_state(run_id: Optional[str] = None) -> StateResponse:
        try:
            state = registry.read(run_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="run_id not found")
        return StateResponse(
            run_id=state.run_id or None,
            logs=state.logs,
            done=state.done,
            result=to_jsonable(state.result) if state.result is not None else None,
        )

    @app.post("/generate/stop")
    async def stop_generation() -> StopResponse:
        return StopResponse(stopped=service.stop())

    @app.get("/data/onchain")
    async def onchain_data() -> Dict[str, Any]:
        snapshot = await aggregator.collect_onchain()
        return {"success": True, "data": to_jsonable(snapshot)}

    @app.get("/data/comprehensive")
    async def comprehensive_data() -> Dict[str, Any]:
        snapshot = await aggregator.collect_comprehensive()
        return {"success": True, "data": to_jsonable(snapshot)}

    @app.get("/diagnose/sustainability")
    async def diagnose_sustainability() -> Dict[str, Any]:
        report = await aggregator.diagnose_sustainability()
        return {"success": True, "data": to_jsonable(report)}

    return app
