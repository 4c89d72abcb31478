# app/services/matching_service.py
"""
Weekly matching run: load the pool and history, build cohorts, persist them.

Only one run executes at a time. An asyncio lock rejects overlapping runs inside
one process, and a lock row in the database rejects runs started by other
processes (API workers, the scheduled script). A run is bounded by a coarse
overall timeout. "Zero groups" because of policy is reported
normally; failing to reach storage raises MatchingRunError.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Union

from sqlalchemy.ext.asyncio import async_sessionmaker

from app.domain.cohorts import MIN_POOL_SIZE, build_cohorts_with_options
from app.domain.errors import MatchingRunError, MatchingRunInProgress
from app.domain.grouping import MatchingOptions
from app.domain.models import CandidateGroup
from app.domain.recency import cooldown_start, excluded_pairs
from app.infrastructure.repositories.candidate_repo import CandidateRepo
from app.infrastructure.repositories.match_repo import MatchRepo
from app.infrastructure.repositories.run_lock_repo import RunLockRepo
from app.services.group_service import GroupService

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_PARTIAL = "partial"
STATUS_NO_GROUPS = "no_groups"
STATUS_SKIPPED = "skipped"
STATUS_ERROR = "error"

RUN_LOCK_NAME = "weekly-matching"
# lock rows outlive a crashed holder by at most this long when no timeout is set
DEFAULT_RUN_LOCK_TTL = timedelta(hours=1)


def week_start(day: date) -> date:
    """Monday of the week containing `day`; used as the group's reference week."""
    return day - timedelta(days=day.weekday())


def as_date(now: Optional[Union[date, datetime]]) -> date:
    if now is None:
        return datetime.now(timezone.utc).date()
    if isinstance(now, datetime):
        return now.date()
    return now


@dataclass
class MatchingRunReport:
    match_week: date
    status: str
    eligible_count: int = 0
    excluded_pair_count: int = 0
    groups_attempted: int = 0
    groups_persisted: int = 0
    reason: str = ""
    groups: List[CandidateGroup] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "match_week": self.match_week.isoformat(),
            "status": self.status,
            "eligible_count": self.eligible_count,
            "excluded_pair_count": self.excluded_pair_count,
            "groups_attempted": self.groups_attempted,
            "groups_persisted": self.groups_persisted,
            "reason": self.reason,
        }


class MatchingService:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        options: Optional[MatchingOptions] = None,
        timeout: Optional[float] = None,
        group_service: Optional[GroupService] = None,
    ):
        self.session_factory = session_factory
        self.options = options or MatchingOptions()
        self.timeout = timeout
        self.group_service = group_service or GroupService(session_factory)
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @property
    def lock_ttl(self) -> timedelta:
        if self.timeout:
            return timedelta(seconds=self.timeout * 2)
        return DEFAULT_RUN_LOCK_TTL

    async def run_weekly_matching(self, now: Optional[Union[date, datetime]] = None, force: bool = False) -> MatchingRunReport:
        """
        Run one matching round for the week containing `now`.

        Raises MatchingRunInProgress if another run holds the in-process or the
        database lock, and MatchingRunError on infrastructure failure or timeout.
        """
        if self._lock.locked():
            raise MatchingRunInProgress("A matching run is already in progress")

        today = as_date(now)
        async with self._lock:
            owner = uuid.uuid4().hex
            await self._acquire_run_lock(owner)
            try:
                return await asyncio.wait_for(self._run(today, force), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                logger.error("Matching run timed out after %s seconds", self.timeout)
                await self._log_run(MatchingRunReport(
                    match_week=week_start(today), status=STATUS_ERROR, reason="Error: run timed out",
                ))
                raise MatchingRunError("Matching run timed out") from e
            finally:
                await self._release_run_lock(owner)

    async def _acquire_run_lock(self, owner: str):
        try:
            async with self.session_factory() as db:
                acquired = await RunLockRepo(db).try_acquire(RUN_LOCK_NAME, owner, self.lock_ttl)
        except Exception as e:
            logger.exception("Failed to acquire the matching run lock")
            raise MatchingRunError("Could not acquire the matching run lock") from e
        if not acquired:
            raise MatchingRunInProgress("A matching run is already in progress")

    async def _release_run_lock(self, owner: str):
        # an unreleased row expires after lock_ttl
        try:
            async with self.session_factory() as db:
                await RunLockRepo(db).release(RUN_LOCK_NAME, owner)
        except Exception:
            logger.exception("Failed to release the matching run lock")

    async def _run(self, today: date, force: bool) -> MatchingRunReport:
        week = week_start(today)
        logger.info("Starting weekly matching for week of %s", week.isoformat())

        try:
            async with self.session_factory() as db:
                if not force and await MatchRepo(db).has_matches_for_week(week):
                    logger.info("Matching already completed for week of %s", week.isoformat())
                    return MatchingRunReport(
                        match_week=week,
                        status=STATUS_SKIPPED,
                        reason="Matching already completed for this week",
                    )
                repo = CandidateRepo(db)
                pool = await repo.fetch_eligible()
                history = await repo.fetch_recent_memberships(
                    cooldown_start(today, self.options.cooldown_weeks)
                )
        except Exception as e:
            logger.exception("Failed to load matching input")
            await self._log_run(MatchingRunReport(match_week=week, status=STATUS_ERROR, reason=f"Error: {e}"))
            raise MatchingRunError("Failed to load candidates or match history") from e

        excluded = excluded_pairs(history, self.options.cooldown_weeks, now=today)
        logger.info("Found %d eligible users, avoiding %d recent pairs", len(pool), len(excluded))

        groups = await asyncio.to_thread(build_cohorts_with_options, pool, excluded, self.options)

        report = MatchingRunReport(
            match_week=week,
            status=STATUS_NO_GROUPS,
            eligible_count=len(pool),
            excluded_pair_count=len(excluded),
            groups=groups,
        )

        if not groups:
            if len(pool) < MIN_POOL_SIZE:
                report.reason = "Insufficient eligible users"
            else:
                report.reason = "No compatible groups"
            logger.info("No matches created this week: %s", report.reason)
            await self._log_run(report)
            return report

        persisted = await self.group_service.persist_groups(groups, week)
        report.groups_attempted = persisted.attempted
        report.groups_persisted = persisted.persisted

        if persisted.persisted == 0:
            report.status = STATUS_ERROR
            report.reason = "Error: no group could be saved"
            await self._log_run(report)
            raise MatchingRunError(f"None of {persisted.attempted} groups could be saved")

        if persisted.failed_group_ids:
            report.status = STATUS_PARTIAL
            report.reason = f"{len(persisted.failed_group_ids)} groups failed to save"
        else:
            report.status = STATUS_COMPLETED
            report.reason = "Success"

        logger.info("Created %d/%d match groups", report.groups_persisted, report.groups_attempted)
        await self._log_run(report)
        return report

    async def _log_run(self, report: MatchingRunReport):
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    await MatchRepo(db).log_run(
                        week=report.match_week,
                        status=report.status,
                        eligible_users=report.eligible_count,
                        groups_attempted=report.groups_attempted,
                        groups_created=report.groups_persisted,
                        reason=report.reason,
                    )
        except Exception:
            logger.exception("Failed to log matching result")
