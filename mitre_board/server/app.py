"""
MITRE ATT&CK Coverage Board - FastAPI application factory.
"""
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from ..config import APPLICATION_NAME, VERSION
from ..core.board_context import BoardContext
from . import routes

logger = logging.getLogger(__name__)


def create_app(context: BoardContext, static_dir: Optional[str] = None) -> FastAPI:
    """
    Build the board application around a ready BoardContext.

    Args:
        context: Immutable startup snapshot served by every endpoint
        static_dir: Browser client directory mounted at '/' (html mode), if any

    Returns:
        FastAPI: Application ready for uvicorn or TestClient
    """
    app = FastAPI(
        title=APPLICATION_NAME,
        description="Detection rule coverage against the MITRE ATT&CK Enterprise matrix",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.board = context

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok", "version": VERSION}

    app.include_router(routes.router)

    # Mounted last so API routes take precedence over files of the same name
    if static_dir:
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        logger.info(f"Serving browser client from {static_dir}")

    return app
