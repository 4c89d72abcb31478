import logging
from datetime import date
from typing import Iterable, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import CandidateProfile, MembershipRecord
from app.infrastructure.models import MatchGroup, MatchMember, Profile

logger = logging.getLogger(__name__)


def to_candidate(row: Profile) -> CandidateProfile:
    """Raises pydantic.ValidationError for rows that can't enter a matching pool."""
    return CandidateProfile(
        id=row.id,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        specialty=row.specialty or "",
        city=row.city or "",
        gender=row.gender or "",
        gender_preference=row.gender_preference or "no-preference",
        interests=row.interests,
        availability_slots=row.availability_slots,
    )


class CandidateRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_eligible(self) -> List[CandidateProfile]:
        """
        Verified, paid, onboarded members with interests and availability.
        Rows that fail profile validation are logged and left out of the pool.
        """
        result = await self.db.execute(
            select(Profile)
            .where(
                Profile.is_verified.is_(True),
                Profile.is_paid.is_(True),
                Profile.onboarding_completed.is_(True),
                Profile.interests.is_not(None),
                Profile.availability_slots.is_not(None),
            )
            .order_by(Profile.created_at, Profile.id)
        )
        pool = []
        for row in result.scalars().all():
            if not row.interests or not row.availability_slots:
                continue
            try:
                pool.append(to_candidate(row))
            except ValidationError as e:
                logger.warning("Rejected profile %s: %s", row.id, e.errors()[0].get("msg"))
        return pool

    async def fetch_recent_memberships(self, since: date) -> List[MembershipRecord]:
        result = await self.db.execute(
            select(MatchMember.match_id, MatchMember.user_id, MatchGroup.match_week)
            .join(MatchGroup, MatchGroup.id == MatchMember.match_id)
            .where(MatchGroup.match_week >= since)
        )
        return [
            MembershipRecord(group_id=match_id, candidate_id=user_id, reference_date=week)
            for match_id, user_id, week in result.all()
        ]

    async def get_profiles(self, ids: Iterable[str]) -> List[CandidateProfile]:
        ids = list(ids)
        result = await self.db.execute(select(Profile).where(Profile.id.in_(ids)))
        rows = {row.id: row for row in result.scalars().all()}
        return [to_candidate(rows[i]) for i in ids if i in rows]

    async def get_profile(self, profile_id: str) -> Optional[CandidateProfile]:
        profiles = await self.get_profiles([profile_id])
        return profiles[0] if profiles else None
