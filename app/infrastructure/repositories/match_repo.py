from datetime import date
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.domain.models import CandidateGroup
from app.infrastructure.models import ChatMessage, MatchGroup, MatchingLog, MatchMember


class MatchRepo:
    """
    Rows for weekly match groups. Methods only add and flush;
    the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_group(self, group: CandidateGroup, match_week: date, welcome_text: str) -> MatchGroup:
        match = MatchGroup(
            id=group.group_id,
            group_name=f"Week of {match_week.isoformat()}",
            status="active",
            match_week=match_week,
            average_score=group.average_score,
        )
        self.db.add(match)
        await self.db.flush()

        self.db.add_all([MatchMember(match_id=match.id, user_id=uid) for uid in group.member_ids])
        await self.db.flush()

        self.db.add(ChatMessage(
            match_id=match.id,
            user_id=None,
            message_type="system",
            content=welcome_text,
        ))
        await self.db.flush()
        return match

    async def has_matches_for_week(self, match_week: date) -> bool:
        result = await self.db.execute(
            select(MatchGroup.id).where(MatchGroup.match_week == match_week).limit(1)
        )
        return result.first() is not None

    async def list_groups_for_week(self, match_week: date) -> List[MatchGroup]:
        result = await self.db.execute(
            select(MatchGroup)
            .where(MatchGroup.match_week == match_week)
            .options(selectinload(MatchGroup.members).selectinload(MatchMember.profile))
            .order_by(MatchGroup.created_at, MatchGroup.id)
        )
        return list(result.scalars().all())

    async def get_messages(self, match_id: str) -> List[ChatMessage]:
        result = await self.db.execute(
            select(ChatMessage).where(ChatMessage.match_id == match_id).order_by(ChatMessage.id)
        )
        return list(result.scalars().all())

    async def log_run(
        self,
        week: date,
        status: str,
        eligible_users: int = 0,
        groups_attempted: int = 0,
        groups_created: int = 0,
        reason: Optional[str] = None,
    ) -> MatchingLog:
        entry = MatchingLog(
            week=week,
            status=status,
            eligible_users=eligible_users,
            groups_attempted=groups_attempted,
            groups_created=groups_created,
            reason=reason,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_logs(self, limit: int = 5) -> List[MatchingLog]:
        result = await self.db.execute(
            select(MatchingLog).order_by(MatchingLog.created_at.desc(), MatchingLog.id.desc()).limit(limit)
        )
        return list(result.scalars().all())
