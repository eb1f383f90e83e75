"""FastAPI application factory.

Main entry point for the AIcademy Web API.
"""

import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aicademy import __version__
from aicademy.core.errors import AicademyError
from aicademy.db.database import get_db_path, init_db
from aicademy.web.routes import (
    auth_router,
    chat_router,
    classes_router,
    demo_router,
    health_router,
    modules_router,
    student_router,
)
from aicademy.web.schemas import error_body

logger = structlog.get_logger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    init_db(get_db_path())
    logger.info("api_startup", db_path=str(get_db_path()))
    yield


async def handle_app_error(request: Request, exc: AicademyError) -> JSONResponse:
    """Map domain errors to their status code and message."""
    logger.info(
        "api.request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc)))


async def handle_db_error(request: Request, exc: sqlite3.Error) -> JSONResponse:
    """Backend failures are logged and answered with a generic message."""
    logger.exception("api.database_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(GENERIC_ERROR),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="AIcademy API",
        description="Classes, modules, quizzes and progress for K-12 classrooms",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AicademyError, handle_app_error)
    app.add_exception_handler(sqlite3.Error, handle_db_error)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(classes_router)
    app.include_router(modules_router)
    app.include_router(student_router)
    app.include_router(chat_router)
    app.include_router(demo_router)

    return app


# Default app instance for uvicorn
app = create_app()
