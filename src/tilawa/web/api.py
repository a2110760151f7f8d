"""FastAPI application factory.

Main entry point for the recitation tracker Web API.

Run with:
    uvicorn tilawa.web.api:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tilawa.config.app_config import AppConfig, create_storage, load_app_config
from tilawa.core.store import RecitationStore
from tilawa.web.routes import (
    data_router,
    health_router,
    recitations_router,
    reports_router,
    students_router,
    teachers_router,
)
from tilawa.web.schemas import API_VERSION

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    store: RecitationStore = app.state.store
    logger.info(
        "api_startup",
        teachers=len(store.list_teachers()),
        students=len(store.list_students()),
        recitations=len(store.list_recitations()),
        backend=type(store.storage).__name__,
    )
    yield


def create_app(
    store: RecitationStore | None = None,
    config: AppConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Store to serve. Built from the configuration when omitted.
        config: Configuration. Defaults to load_app_config().

    Returns:
        Configured FastAPI app instance
    """
    config = config or load_app_config()
    if store is None:
        store = RecitationStore(
            storage=create_storage(config),
            max_records=config.limits.max_records,
        )

    app = FastAPI(
        title="Tilawa API",
        description="Quran recitation tracking: sessions, reports and badges",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.config = config

    # CORS middleware for web clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(teachers_router)
    app.include_router(students_router)
    app.include_router(recitations_router)
    app.include_router(reports_router)
    app.include_router(data_router)

    return app
