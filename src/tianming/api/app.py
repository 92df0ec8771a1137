"""FastAPI application wiring for Tianming."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tianming.api import routes
from tianming.api.runtime import ApiState, build_state
from tianming.config import get_settings

logger = logging.getLogger(__name__)


def create_app(*, state_factory: Callable[[], ApiState] = build_state) -> FastAPI:
    """Instantiate the FastAPI application with routing and lifecycle hooks."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = state_factory()
        app.state.api_state = state
        logger.info(
            "serving %s cities, %s generals, base turn interval %sms",
            len(state.catalog.cities),
            len(state.catalog.generals),
            state.rules.scheduler.base_interval_ms,
        )
        try:
            yield
        finally:
            await state.shutdown()
            logger.info("game session stopped")

    app = FastAPI(title="Tianming API", version="0.1.0", lifespan=lifespan)
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(routes.router)
    return app


app = create_app()
