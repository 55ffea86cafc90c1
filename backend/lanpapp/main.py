"""LanpApp API — application factory and process lifecycle.

Invariants:
    - Database manager and identity client exist before the first request and
      are released on shutdown
    - Every router is listed in ROUTERS; nothing is auto-discovered
    - Exceptions leaving a route always become the JSON error envelope

Design Decisions:
    - invitations is mounted ahead of lanpas so /lanpas/join/{token} wins over
      the /lanpas/{lanpa_id}/... patterns
    - Module-level `app` for uvicorn (uvicorn lanpapp.main:app)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import lanpapp.infrastructure.database as db_module
from lanpapp.api.error_handlers import register_error_handlers
from lanpapp.api.routes import (
    games, health, invitations, lanpa_games, lanpa_members, lanpas,
    nominations, notifications, punishments, stats, users,
)
from lanpapp.config import Settings, get_settings
from lanpapp.infrastructure.identity_client import close_identity, init_identity
from lanpapp.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)

ROUTERS = (
    health, invitations, lanpas, lanpa_games, lanpa_members,
    nominations, games, punishments, notifications, stats, users,
)


def _start_services(settings: Settings) -> None:
    db_module.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_identity(
        settings.identity_url,
        settings.identity_api_key,
        timeout_seconds=settings.identity_timeout_seconds,
        max_retries=settings.identity_max_retries,
        base_delay_ms=settings.identity_base_delay_ms,
        max_delay_ms=settings.identity_max_delay_ms,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    _start_services(settings)
    logger.info("LanpApp API ready", extra={"routers": len(ROUTERS)})
    try:
        yield
    finally:
        await close_identity()
        if db_module.db_manager is not None:
            await db_module.db_manager.dispose()
        logger.info("LanpApp API stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    application = FastAPI(title="LanpApp API", version="1.0.0", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for module in ROUTERS:
        application.include_router(module.router)
    register_error_handlers(application)
    return application


app = create_app()
