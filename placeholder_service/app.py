"""Placeholder Service: FastAPI application entry point.

Thin glue module: creates the app, configures middleware, registers routes,
and owns the lifecycle of the cache store and generation coordinator.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from placeholder_service.config import Settings, load_settings
from placeholder_service.core.coordinator import GenerationCoordinator
from placeholder_service.core.perf import configure_perf_log
from placeholder_service.core.store import ImageStore
from placeholder_service.routes.health import router as health_router
from placeholder_service.routes.images import router as images_router
from placeholder_service.routes.stats import router as stats_router
from placeholder_service.services.renderer import PillowRenderer

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    # -----------------------------------------------------------------------
    # Lifespan: one store + coordinator per process
    # -----------------------------------------------------------------------
    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        store = ImageStore(settings.db_path)
        application.state.settings = settings
        application.state.renderer = PillowRenderer(
            font_path=settings.font_path,
            footer_text=settings.footer_text,
        )
        application.state.coordinator = GenerationCoordinator(
            store,
            stripes=settings.lock_stripes,
        )
        configure_perf_log(settings.perf_log_path)
        logger.info(
            "Placeholder service started (db=%s, stripes=%d, namespace=%s)",
            settings.db_path,
            settings.lock_stripes,
            application.state.renderer.namespace,
        )
        try:
            yield
        finally:
            application.state.coordinator.shutdown(wait=True)
            store.close()
            logger.info("Placeholder service stopped")

    application = FastAPI(title="Placeholder Service", version="0.1.0", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
        max_age=3600,
    )

    # Fixed paths first; the image route matches any single path segment.
    application.include_router(health_router)
    application.include_router(stats_router)
    application.include_router(images_router)
    return application
