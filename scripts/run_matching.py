# scripts/run_matching.py
"""
Scheduled entry point for the weekly matching run. Run from project root:
    python scripts/run_matching.py [--force]

Exits with status 1 when the run fails for infrastructure reasons, so the job
runner sees a failure instead of a zero-group success.
"""
import argparse
import asyncio
import logging
import sys

from app.config.settings import settings
from app.domain.errors import MatchingError
from app.infrastructure.db.session import AsyncSessionLocal, engine
from app.services.matching_service import MatchingService

logger = logging.getLogger(__name__)


async def main(force: bool) -> int:
    service = MatchingService(
        AsyncSessionLocal,
        options=settings.matching_options(),
        timeout=settings.MATCHING_RUN_TIMEOUT_SECONDS,
    )
    try:
        report = await service.run_weekly_matching(force=force)
    except MatchingError:
        logger.exception("Weekly matching failed")
        return 1
    finally:
        await engine.dispose()

    logger.info("Weekly matching finished: %s", report.to_dict())
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    parser = argparse.ArgumentParser(description="Run the weekly cohort matching")
    parser.add_argument("--force", action="store_true", help="run even if this week already has groups")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.force)))
