import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.models import MatchingRunLock

logger = logging.getLogger(__name__)


class RunLockRepo:
    """
    Database-wide named locks, visible to every process sharing the database.

    A lock is a row keyed by name. Claiming it is an INSERT, so two processes
    racing for the same name can never both succeed: the primary key rejects
    the second one. Rows past `expires_at` belong to a crashed holder and are
    cleared before claiming.

    Each call runs its own transaction on the given session.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def try_acquire(self, name: str, owner: str, ttl: timedelta, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        async with self.db.begin():
            await self.db.execute(
                delete(MatchingRunLock).where(
                    MatchingRunLock.name == name,
                    MatchingRunLock.expires_at < now,
                )
            )
        try:
            async with self.db.begin():
                self.db.add(MatchingRunLock(name=name, owner=owner, acquired_at=now, expires_at=now + ttl))
                await self.db.flush()
        except IntegrityError:
            logger.info("Lock %s is held by another run", name)
            return False
        return True

    async def release(self, name: str, owner: str) -> bool:
        async with self.db.begin():
            result = await self.db.execute(
                delete(MatchingRunLock).where(
                    MatchingRunLock.name == name,
                    MatchingRunLock.owner == owner,
                )
            )
        return result.rowcount > 0
