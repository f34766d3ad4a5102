"""
FastAPI application for the ColorVision dashboard.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .db.base import init_database
from .deps import get_dispatcher
from .lifecycle.dispatcher import AsyncioDispatcher
from .logging_config import configure_logging
from .routes import (
    account_router,
    analysis_router,
    chat_router,
    erg_router,
    fundus_router,
)

logger = structlog.get_logger()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging(settings)
    logger.info("starting_colorvision_dashboard", environment=settings.environment)

    try:
        init_database()

        dispatcher = get_dispatcher()
        if isinstance(dispatcher, AsyncioDispatcher):
            dispatcher.start_sweeper(
                settings.sweep_interval_seconds, settings.processing_timeout_seconds
            )
            logger.info(
                "stale_sweeper_started",
                interval_seconds=settings.sweep_interval_seconds,
                timeout_seconds=settings.processing_timeout_seconds,
            )
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    logger.info("shutting_down_colorvision_dashboard")
    await dispatcher.stop()
    logger.info("shutdown_complete")


def _version() -> str:
    return importlib.metadata.version("colorvision-dashboard")


app = FastAPI(
    title="ColorVision Dashboard",
    description="Retinal imaging and ERG uploads with multimodal color-vision analysis",
    version=_version(),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed requests as 400 with the field errors."""
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health", tags=["system"])
async def health() -> dict:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/healthz", tags=["system"])
def healthz() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/version", tags=["system"])
def version() -> dict[str, str]:
    """Return the version of the application."""
    return {"version": _version()}


app.include_router(fundus_router)
app.include_router(erg_router)
app.include_router(analysis_router)
app.include_router(account_router)
app.include_router(chat_router)
