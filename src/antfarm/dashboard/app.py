"""FastAPI application served by the dashboard daemon."""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Request

from antfarm.storage.steps import Run, Step, StepStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _run_to_dict(run: Run) -> dict[str, Any]:
    return {
        "id": run.id,
        "status": run.status_value,
        "created_at": run.created_at.isoformat(),
        "updated_at": run.updated_at.isoformat(),
    }


def _step_to_dict(step: Step) -> dict[str, Any]:
    return {
        "id": step.id,
        "step_id": step.step_id,
        "agent_id": step.agent_id,
        "step_index": step.step_index,
        "status": step.status_value,
    }


def _store(request: Request) -> StepStore:
    return request.app.state.store


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Liveness check."""
    return {"status": "ok", "pid": os.getpid()}


@router.get("/api/runs")
async def list_runs(request: Request) -> list[dict[str, Any]]:
    """All runs, newest first."""
    return [_run_to_dict(run) for run in _store(request).list_runs()]


@router.get("/api/runs/{run_id}")
async def get_run(run_id: str, request: Request) -> dict[str, Any]:
    """A run with its ordered steps and the step that would be woken next."""
    store = _store(request)
    run = store.get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")

    next_step = store.next_pending_step(run_id)
    return {
        **_run_to_dict(run),
        "steps": [_step_to_dict(step) for step in store.list_steps(run_id)],
        "next_step": _step_to_dict(next_step) if next_step else None,
    }


def create_app(store: StepStore) -> FastAPI:
    """Create the dashboard application over a step store."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Dashboard serving runs from %s", store.db_path)
        yield
        logger.info("Dashboard stopping")

    app = FastAPI(title="Antfarm Dashboard", lifespan=lifespan)
    app.state.store = store
    app.include_router(router)
    return app
