"""FastAPI application factory for VBALoom.

Creates and configures the FastAPI app with CORS and the pipeline routes.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)


def create_app(module_store, settings=None, llm=None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        module_store: ModuleStore instance
        settings: VBALoomSettings (defaults to ``get_settings()``)
        llm: LLM handed to strategies (optional; ``Settings.llm`` otherwise)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        from ..setting import get_settings
        settings = get_settings()

    app = FastAPI(
        title="VBALoom API",
        description="VBA to ClojureScript translation pipeline",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store shared dependencies on app state
    app.state.module_store = module_store
    app.state.settings = settings
    app.state.llm = llm

    from .routes.pipeline import router as pipeline_router

    app.include_router(pipeline_router, prefix="/api")

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "service": "vbaloom"}

    logger.info("FastAPI app created with all routes registered")
    return app
