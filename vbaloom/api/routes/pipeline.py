"""Pipeline API routes: per-module step execution and full runs.

  GET  /pipeline/steps         steps, strategies and defaults
  POST /pipeline/step          run one step for one module
  POST /pipeline/run           run the whole pipeline for one module
  POST /pipeline/gaps/resolve  attach human answers to gaps (by gap_id)
  GET  /pipeline/status        pipeline position of every current module

``database_id`` may be sent in the body/query or as ``X-Database-Id``.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...core.db.store import ModuleNotFound
from ...core.pipeline import (
    StepName,
    StepRegistry,
    StrategyExecutionFailure,
    UnknownStep,
    UnknownStrategy,
    apply_gap_answers,
    collect_gaps,
    get_module_status,
    run_pipeline,
    run_step,
)
from ...core.pipeline.registry import coerce_step_name
from ..deps import (
    get_app_settings,
    get_header_database_id,
    get_module_store,
    get_pipeline_context,
    resolve_database_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


# ── Request models ──────────────────────────────────────────────────────

class StepRequest(BaseModel):
    module_name: str
    step: str
    strategy: str | None = None
    database_id: str | None = None


class RunRequest(BaseModel):
    module_name: str
    config: dict[str, str] | None = None  # {step: strategy}
    database_id: str | None = None


class ResolveGapsRequest(BaseModel):
    module_name: str
    answers: dict[str, Any]  # {gap_id: answer | {answer, custom_notes}}
    resolved_by: str | None = None
    database_id: str | None = None


# ── Helpers ─────────────────────────────────────────────────────────────

def _load_module(store, module_name: str, database_id: str) -> Dict[str, Any]:
    try:
        return store.load(module_name, database_id)
    except ModuleNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


def _step_input(step: StepName, module: Dict[str, Any], module_name: str, app_objects: dict) -> Dict[str, Any]:
    """Build a step's input from persisted module state."""
    if step == StepName.EXTRACT:
        return {"vba_source": module["vba_source"], "module_name": module_name, "app_objects": app_objects}
    if step == StepName.MAP:
        if not module["intents"]:
            raise HTTPException(status_code=409, detail="Module has no intents; run extract first")
        return {"intents": module["intents"]}

    if not module["mapped"]:
        raise HTTPException(status_code=409, detail="Module has no mapped intents; run map first")
    step_input = {
        "mapped": module["mapped"],
        "module_name": module_name,
        "vba_source": module["vba_source"],
    }
    if step == StepName.RESOLVE_GAPS:
        step_input["app_objects"] = app_objects
    return step_input


def _module_status(store, module_name: str, database_id: str) -> dict:
    return get_module_status(store.load(module_name, database_id)).to_dict()


# ── Endpoints ───────────────────────────────────────────────────────────

@router.get("/steps")
async def list_steps():
    """All pipeline steps in order, with their strategies and defaults."""
    return {"steps": StepRegistry.list_steps()}


@router.post("/step")
async def execute_step(
    data: StepRequest,
    header_database_id: str | None = Depends(get_header_database_id),
    store=Depends(get_module_store),
    context: dict = Depends(get_pipeline_context),
):
    """Run a single step for one module and persist its output."""
    database_id = resolve_database_id(data.database_id, header_database_id)
    try:
        step = coerce_step_name(data.step)
        if data.strategy:
            StepRegistry.get_strategy(step, data.strategy)
    except (UnknownStep, UnknownStrategy) as e:
        raise HTTPException(status_code=400, detail=str(e))

    module = _load_module(store, data.module_name, database_id)
    app_objects = store.app_objects(database_id)
    step_input = _step_input(step, module, data.module_name, app_objects)

    try:
        result = await run_step(step, step_input, {**context, "app_objects": app_objects}, data.strategy)
    except StrategyExecutionFailure as e:
        logger.error(f"Pipeline step {step.value} failed for {data.module_name}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    store.persist_step_result(data.module_name, database_id, result)
    return {**result.to_dict(), "module_status": _module_status(store, data.module_name, database_id)}


@router.post("/run")
async def execute_pipeline(
    data: RunRequest,
    header_database_id: str | None = Depends(get_header_database_id),
    store=Depends(get_module_store),
    settings=Depends(get_app_settings),
    context: dict = Depends(get_pipeline_context),
):
    """Run the full pipeline for one module.

    Configured default strategies apply under the request's ``config``.
    A failed step returns 502 with the completed step results.
    """
    database_id = resolve_database_id(data.database_id, header_database_id)
    module = _load_module(store, data.module_name, database_id)
    app_objects = store.app_objects(database_id)

    strategy_config = {**settings.pipeline.default_strategies, **(data.config or {})}
    initial_input = {
        "vba_source": module["vba_source"],
        "module_name": data.module_name,
        "app_objects": app_objects,
        "intents": module["intents"],
        "mapped": module["mapped"],
    }

    try:
        run = await run_pipeline(initial_input, {**context, "app_objects": app_objects}, strategy_config)
    except (UnknownStep, UnknownStrategy) as e:
        raise HTTPException(status_code=400, detail=str(e))

    for step_result in run.results:
        store.persist_step_result(data.module_name, database_id, step_result)

    body = run.to_dict()
    body["module_status"] = _module_status(store, data.module_name, database_id)

    if run.status == "failed":
        logger.error(f"Pipeline run failed for {data.module_name} at {run.failed_step}: {run.error}")
        return JSONResponse(status_code=502, content=body)
    return body


@router.post("/gaps/resolve")
async def resolve_gaps(
    data: ResolveGapsRequest,
    header_database_id: str | None = Depends(get_header_database_id),
    store=Depends(get_module_store),
):
    """Attach human answers to a module's gaps, keyed by gap_id."""
    database_id = resolve_database_id(data.database_id, header_database_id)
    module = _load_module(store, data.module_name, database_id)
    if not module["mapped"]:
        raise HTTPException(status_code=409, detail="Module has no mapped intents; run map first")

    outcome = apply_gap_answers(module["mapped"], data.answers, data.resolved_by or "user")
    if outcome.changed:
        store.save_mapped(data.module_name, database_id, outcome.mapped)

    return {
        "resolved_count": outcome.resolved_count,
        "remaining_gaps": outcome.remaining_gaps,
        "unmatched": outcome.unmatched,
        "gaps": collect_gaps(outcome.mapped),
        "module_status": _module_status(store, data.module_name, database_id),
    }


@router.get("/status")
async def pipeline_status(
    database_id: str | None = None,
    header_database_id: str | None = Depends(get_header_database_id),
    store=Depends(get_module_store),
):
    """Pipeline position of every current module in a database."""
    database_id = resolve_database_id(database_id, header_database_id)
    return {"modules": store.list_current(database_id)}
