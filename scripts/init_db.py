# scripts/init_db.py
"""
Script to initialize database tables. Run from project root:
    python scripts/init_db.py
"""
import asyncio
import logging

from app.infrastructure.db.session import create_tables, engine

logger = logging.getLogger(__name__)


async def init():
    await create_tables()
    await engine.dispose()
    logger.info("DB initialized")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init())
