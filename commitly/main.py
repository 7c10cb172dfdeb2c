"""Commitly — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from commitly.config import settings
from commitly.core import build_core
from commitly.db.database import close_db, init_db

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting Commitly server...")
    db = await init_db() if settings.profile_store_backend == "sqlite" else None

    core = build_core(db)
    await core.auth.hydrate()
    app.state.core = core

    logger.info("Commitly server ready (mode=%s)", settings.deployment_mode)
    yield

    await core.close()
    if db is not None:
        await close_db()
    logger.info("Commitly server stopped")


app = FastAPI(
    title="Commitly",
    description="GitHub activity points, streaks and notifications",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from commitly.api.profiles import router as profiles_router
from commitly.api.github import router as github_router
from commitly.api.notifications import router as notifications_router

app.include_router(profiles_router)
app.include_router(github_router)
app.include_router(notifications_router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "commitly", "version": "0.1.0"}


@app.get("/")
async def root():
    return {"service": "commitly", "docs": "/docs"}
