"""
FastAPI Application Factory & Configuration.

This module initializes the FastAPI application instance. It is responsible for:
1.  **Middleware Setup**: CORS for browser clients.
2.  **Exception Handling**: Global handlers so all errors return structured JSON.
3.  **Routing**: Mounting the talking-points router and the health probe.
4.  **Dependencies**: Holding the generation service on ``app.state``.

Design Pattern
--------------
An **Application Factory** (`create_app`) lets tests build separate app
instances and inject a fake generation service.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talkpoints import __version__
from talkpoints.agents.talking_points_agent import LLMGenerationService
from talkpoints.api.routers import talking_points
from talkpoints.core.contracts.generation import GenerationService
from talkpoints.core.settings import get_logger, load_settings

logger = get_logger("talkpoints.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and shutdown; the generation service is built lazily."""
    logger.info("Talking-points API starting (env=%s)", load_settings().environment)
    yield
    logger.info("Talking-points API shutting down")


def create_app(service: GenerationService | None = None) -> FastAPI:
    """
    Construct and configure the talking-points FastAPI application.

    Parameters
    ----------
    service:
        Generation service used by the route. Defaults to an
        :class:`LLMGenerationService` reading its key from the environment.
    """
    app = FastAPI(
        title="Talking Points API",
        description="Live talking-point cards for conversations",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.generation_service = service if service is not None else LLMGenerationService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Unhandled exceptions become ``500 {"error": ...}``."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc) or "Internal Server Error"})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Map Python ValueErrors to HTTP 400 Bad Request."""
        return JSONResponse(status_code=400, content={"error": str(exc)})

    app.include_router(talking_points.router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness probe."""
        return {
            "status": "ok",
            "environment": load_settings().environment,
            "version": __version__,
        }

    return app


__all__ = ["create_app"]
