# app/main.py
"""
Application entrypoint. Includes routers and mounts.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routers import matching
from app.config.settings import settings
from app.infrastructure.db.session import create_tables, engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting matching service (%s)", settings.ENV)
    await create_tables()
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Matching service stopped")


app = FastAPI(title="Weekly Cohort Matching", lifespan=lifespan)

# Basic CORS (adjust origins in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routers
app.include_router(matching.router, prefix="/api/v1/matching", tags=["matching"])


@app.get("/")
async def index():
    """Health / basic info endpoint."""
    return {"status": "ok", "service": "matching-backend", "env": settings.ENV}
