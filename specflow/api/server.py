"""
FastAPI application factory for the session engine.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI

from specflow import __version__
from specflow.runtime.engine import SessionEngine

from .routes import sessions_router

logger = logging.getLogger(__name__)


def create_app(engine: SessionEngine) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: The engine every route operates on.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(title="specflow", version=__version__)
    app.state.engine = engine
    app.include_router(sessions_router, prefix="/api")

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok", "version": __version__, "workflows": sorted(engine.workflows)}

    logger.debug("API created with workflows: %s", ", ".join(sorted(engine.workflows)))
    return app
