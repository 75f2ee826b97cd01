from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from psyrisk.infrastructure.config import get_settings
from psyrisk.infrastructure.logging import get_logger
from psyrisk.web.dependencies import close_database, open_database
from psyrisk.web.routes import api

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    open_database(app, get_settings().database)
    logger.info("Questionnaire API started")
    try:
        yield
    finally:
        close_database(app)


def create_application() -> FastAPI:
    settings = get_settings().app
    app = FastAPI(
        title=settings.title,
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )
    app.include_router(api.router)
    return app


app = create_application()
