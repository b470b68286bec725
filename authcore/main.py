from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from authcore.api.routers.auth import router as auth_router
from authcore.infrastructure.db.engine import get_engine
from authcore.infrastructure.db.schema import create_schema
from authcore.shared.config import get_settings
from authcore.shared.logging import configure_logging


settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


def ensure_schema() -> None:
    if not settings.db_create_schema:
        return
    if not settings.postgres_dsn:
        logger.warning("DB_CREATE_SCHEMA is set but POSTGRES_DSN is empty; skipping schema creation")
        return
    create_schema(get_engine(settings.postgres_dsn))


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_schema()
    yield


app = FastAPI(title="Auth API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)


def run() -> None:
    uvicorn.run(app, host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
