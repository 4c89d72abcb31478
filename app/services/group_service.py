import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.domain.models import CandidateGroup, CandidateProfile
from app.domain.welcome import build_welcome_message
from app.infrastructure.repositories.match_repo import MatchRepo

logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    attempted: int = 0
    persisted: int = 0
    failed_group_ids: List[str] = field(default_factory=list)


class GroupService:
    """
    Hands produced groups over to storage. Every group is written in its own
    transaction: group row, one membership row per member and one system
    welcome message. A failure rolls back that group only.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        message_builder: Callable[[Sequence[CandidateProfile]], str] = build_welcome_message,
    ):
        self.session_factory = session_factory
        self.message_builder = message_builder

    async def persist_group(self, group: CandidateGroup, match_week: date) -> bool:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    welcome = self.message_builder(group.members)
                    await MatchRepo(db).create_group(group, match_week, welcome)
        except Exception:
            logger.exception("Failed to save match group %s, rolled back", group.group_id)
            return False
        logger.info("Saved match %s with %d members", group.group_id, len(group))
        return True

    async def persist_groups(self, groups: Sequence[CandidateGroup], match_week: date) -> PersistResult:
        result = PersistResult()
        for group in groups:
            result.attempted += 1
            if await self.persist_group(group, match_week):
                result.persisted += 1
            else:
                result.failed_group_ids.append(group.group_id)
        return result
