"""
FastAPI application factory and module-level app instance.

This module provides:
- create_app(): Factory function for creating FastAPI instances
- app: Module-level instance for uvicorn (uvicorn api.app:app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import InvalidConfigurationError, MissingFieldError

from .deps import get_settings
from .routes import api_router

logger = logging.getLogger(__name__)


async def _configuration_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Composite id configuration is invalid: %s", exc)
    return JSONResponse(status_code=500, content={"detail": f"Invalid composite id configuration: {exc}"})


def create_app() -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Returns:
        FastAPI: Configured application with CORS, routers, and health endpoint.
    """
    app = FastAPI(
        title="Shardkey API",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
    )

    cfg = get_settings()

    logger.info(f"ChromaDB path: {cfg.CHROMA_PATH}")
    logger.info(f"Schema path: {cfg.SCHEMA_PATH}")

    # Add CORS middleware only if origins are configured
    origins = cfg.API_CORS_ORIGINS or []
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=True,
        )

    app.add_exception_handler(MissingFieldError, _configuration_error_handler)
    app.add_exception_handler(InvalidConfigurationError, _configuration_error_handler)

    # Include versioned API router
    app.include_router(api_router, prefix="/api/v1")

    # Lightweight health endpoint for observability
    @app.get("/healthz", tags=["infra"])
    def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    return app


# For `uvicorn api.app:app --reload`
app = create_app()
