# app/infrastructure/db/session.py
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.config.settings import settings

Base = declarative_base()


def make_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False, future=True)
    return create_async_engine(
        url,
        echo=False,
        future=True,
        pool_pre_ping=True,      # validates connections
        pool_recycle=300,        # drops idle connections
        pool_size=10,
        max_overflow=20,
    )


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = make_engine(settings.DATABASE_URL)

# Async session factory
AsyncSessionLocal = make_sessionmaker(engine)


async def create_tables(bind: AsyncEngine = engine):
    # imported for the side effect of registering the tables on Base
    from app.infrastructure import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        # health check before yield
        await session.execute(text("SELECT 1"))
        yield session
