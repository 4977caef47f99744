"""FastAPI application serving flow analysis and backend management."""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from copilot.service import Copilot
from copilot.settings import Settings
from server.analysis_routes import router as analysis_router
from server.model_routes import router as model_router

load_dotenv()  # load environment variables from .env file

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def create_app(copilot: Copilot | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the API app.

    Args:
        copilot: prebuilt analyzer (tests pass one); built from settings at startup otherwise
        settings: process configuration; read from the environment when omitted
    """
    settings = settings or (copilot.settings if copilot is not None else Settings.from_env())
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the analyzer on startup and stop auto refresh on shutdown."""
        app.state.copilot = copilot if copilot is not None else Copilot.from_settings(settings)
        refresher = app.state.copilot.refresher
        if settings.auto_refresh and refresher is not None:
            refresher.start()
            logger.info("auto refresh every %gs", settings.refresh_interval)
        yield
        if refresher is not None:
            await refresher.stop()

    app = FastAPI(
        title="Flow Copilot API",
        description="Structural, security and performance analysis of editor flows",
        version=VERSION,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # include routes
    app.include_router(analysis_router, prefix="/api")
    app.include_router(model_router, prefix="/api")

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {
            "status": "ok",
            "version": VERSION,
            "flows_file": str(settings.flows_file),
            "endpoints": {
                "analyze": "/api/analyze",
                "history": "/api/history",
                "flows": "/api/flows/{flow_id}",
                "models": "/api/models",
                "model_stats": "/api/models/stats",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
