"""FastAPI dependencies for VBALoom.

Provides shared dependencies (store, settings, LLM) via FastAPI's
Depends() injection system.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, Request

logger = logging.getLogger(__name__)


async def get_module_store(request: Request):
    """Get ModuleStore from app state."""
    store = request.app.state.module_store
    if store is None:
        raise HTTPException(status_code=503, detail="Module store not available")
    return store


async def get_app_settings(request: Request):
    """Get VBALoomSettings from app state."""
    return request.app.state.settings


async def get_pipeline_context(request: Request) -> dict:
    """Base strategy context for a request.

    Carries the app's LLM when one was injected; otherwise strategies fall
    back to the process-wide ``Settings.llm``.
    """
    context = {}
    if request.app.state.llm is not None:
        context["llm"] = request.app.state.llm
    return context


def resolve_database_id(database_id: Optional[str], header_value: Optional[str]) -> str:
    """Body/query ``database_id`` wins over the ``X-Database-Id`` header."""
    resolved = database_id or header_value
    if not resolved:
        raise HTTPException(status_code=400, detail="database_id is required")
    return resolved


async def get_header_database_id(x_database_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_database_id
