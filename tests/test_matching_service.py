# tests/test_matching_service.py
import asyncio
from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from app.domain.errors import MatchingRunError, MatchingRunInProgress
from app.infrastructure.models import MatchingRunLock, MatchMember
from app.infrastructure.repositories.match_repo import MatchRepo
from app.infrastructure.repositories.run_lock_repo import RunLockRepo
from app.services.group_service import GroupService
from app.services.matching_service import (
    STATUS_COMPLETED,
    STATUS_ERROR,
    STATUS_NO_GROUPS,
    STATUS_PARTIAL,
    STATUS_SKIPPED,
    RUN_LOCK_NAME,
    MatchingService,
    week_start,
)

# a Wednesday; its matching week starts on Monday 2026-10-19
TODAY = date(2026, 10, 21)
WEEK = date(2026, 10, 19)


async def latest_logs(session_factory, limit=10):
    async with session_factory() as db:
        return await MatchRepo(db).list_logs(limit)


async def groups_for_week(session_factory, week=WEEK):
    async with session_factory() as db:
        return await MatchRepo(db).list_groups_for_week(week)


def broken_factory():
    raise ConnectionError("database unavailable")


class BlockingGroupService(GroupService):
    """Holds the run inside the persistence step until released."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def persist_groups(self, groups, match_week):
        self.entered.set()
        await self.release.wait()
        return await super().persist_groups(groups, match_week)


class SlowGroupService(GroupService):
    async def persist_groups(self, groups, match_week):
        await asyncio.sleep(5)
        return await super().persist_groups(groups, match_week)


def test_week_start_is_monday():
    assert week_start(TODAY) == WEEK
    assert week_start(WEEK) == WEEK
    assert week_start(date(2026, 10, 25)) == WEEK


@pytest.mark.asyncio
async def test_completed_run(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)

    report = await MatchingService(session_factory).run_weekly_matching(now=TODAY)

    assert report.status == STATUS_COMPLETED
    assert report.match_week == WEEK
    assert report.eligible_count == 7
    assert (report.groups_attempted, report.groups_persisted) == (2, 2)
    assert [g.member_ids for g in report.groups] == [("p1", "p2", "p3", "p4"), ("p5", "p6", "p7")]

    stored = await groups_for_week(session_factory)
    assert sorted(len(g.members) for g in stored) == [3, 4]

    [log] = await latest_logs(session_factory)
    assert (log.status, log.eligible_users, log.groups_created, log.reason) == (STATUS_COMPLETED, 7, 2, "Success")
    assert report.to_dict()["match_week"] == "2026-10-19"


@pytest.mark.asyncio
async def test_second_run_same_week_is_skipped(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)
    service = MatchingService(session_factory)
    await service.run_weekly_matching(now=TODAY)

    report = await service.run_weekly_matching(now=date(2026, 10, 23))

    assert report.status == STATUS_SKIPPED
    assert report.groups == []
    assert len(await groups_for_week(session_factory)) == 2


@pytest.mark.asyncio
async def test_forced_rerun_respects_recent_pairs(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)
    service = MatchingService(session_factory)
    await service.run_weekly_matching(now=TODAY)

    # every candidate already shared a group with everyone they could join
    report = await service.run_weekly_matching(now=TODAY, force=True)

    assert report.status == STATUS_NO_GROUPS
    assert report.reason == "No compatible groups"
    assert report.excluded_pair_count == 6 + 3
    assert len(await groups_for_week(session_factory)) == 2


@pytest.mark.asyncio
async def test_cooldown_expires(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)
    service = MatchingService(session_factory)
    await service.run_weekly_matching(now=TODAY)

    report = await service.run_weekly_matching(now=date(2026, 12, 9))

    assert report.status == STATUS_COMPLETED
    assert report.excluded_pair_count == 0
    assert report.match_week == date(2026, 12, 7)


@pytest.mark.asyncio
async def test_insufficient_pool(session_factory, add_profiles, make_row):
    await add_profiles([make_row("a"), make_row("b"), make_row("c", is_paid=False)])

    report = await MatchingService(session_factory).run_weekly_matching(now=TODAY)

    assert report.status == STATUS_NO_GROUPS
    assert report.reason == "Insufficient eligible users"
    [log] = await latest_logs(session_factory)
    assert (log.status, log.eligible_users) == (STATUS_NO_GROUPS, 2)


@pytest.mark.asyncio
async def test_partial_persistence(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)

    def builder(members):
        if any(m.id == "p5" for m in members):
            raise RuntimeError("boom")
        return "Welcome"

    service = MatchingService(session_factory, group_service=GroupService(session_factory, message_builder=builder))
    report = await service.run_weekly_matching(now=TODAY)

    assert report.status == STATUS_PARTIAL
    assert (report.groups_attempted, report.groups_persisted) == (2, 1)
    assert len(await groups_for_week(session_factory)) == 1


@pytest.mark.asyncio
async def test_nothing_persisted_raises(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)

    def builder(members):
        raise RuntimeError("boom")

    service = MatchingService(session_factory, group_service=GroupService(session_factory, message_builder=builder))
    with pytest.raises(MatchingRunError):
        await service.run_weekly_matching(now=TODAY)

    [log] = await latest_logs(session_factory)
    assert (log.status, log.groups_attempted, log.groups_created) == (STATUS_ERROR, 2, 0)


@pytest.mark.asyncio
async def test_unreachable_store_raises():
    service = MatchingService(broken_factory)
    with pytest.raises(MatchingRunError):
        await service.run_weekly_matching(now=TODAY)
    assert not service.running


@pytest.mark.asyncio
async def test_concurrent_run_rejected(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)
    blocking = BlockingGroupService(session_factory)
    service = MatchingService(session_factory, group_service=blocking)

    first = asyncio.create_task(service.run_weekly_matching(now=TODAY))
    await asyncio.wait_for(blocking.entered.wait(), timeout=5)
    assert service.running

    with pytest.raises(MatchingRunInProgress):
        await service.run_weekly_matching(now=TODAY, force=True)

    blocking.release.set()
    report = await first
    assert report.status == STATUS_COMPLETED
    assert not service.running


@pytest.mark.asyncio
async def test_run_timeout(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)
    service = MatchingService(session_factory, timeout=0.2, group_service=SlowGroupService(session_factory))

    with pytest.raises(MatchingRunError):
        await service.run_weekly_matching(now=TODAY)

    assert not service.running
    [log] = await latest_logs(session_factory)
    assert log.status == STATUS_ERROR
    assert "timed out" in log.reason
    assert await groups_for_week(session_factory) == []


async def lock_rows(session_factory):
    async with session_factory() as db:
        return (await db.execute(select(func.count()).select_from(MatchingRunLock))).scalar_one()


@pytest.mark.asyncio
async def test_two_services_never_double_assign(session_factory, add_profiles, alternating_pool_rows):
    # separate instances stand in for separate processes sharing one database
    await add_profiles(alternating_pool_rows)
    first, second = MatchingService(session_factory), MatchingService(session_factory)

    results = await asyncio.gather(
        first.run_weekly_matching(now=TODAY),
        second.run_weekly_matching(now=TODAY),
        return_exceptions=True,
    )

    completed = [r for r in results if not isinstance(r, BaseException) and r.status == STATUS_COMPLETED]
    others = [r for r in results if r not in completed]
    assert len(completed) == 1
    [other] = others
    assert isinstance(other, MatchingRunInProgress) or other.status == STATUS_SKIPPED

    async with session_factory() as db:
        members = (await db.execute(select(MatchMember.user_id))).scalars().all()
    assert len(members) == len(set(members)) == 7
    assert len(await groups_for_week(session_factory)) == 2
    assert await lock_rows(session_factory) == 0


@pytest.mark.asyncio
async def test_lock_held_elsewhere_rejects_run(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)
    async with session_factory() as db:
        assert await RunLockRepo(db).try_acquire(RUN_LOCK_NAME, "scheduled-job", timedelta(hours=1))

    with pytest.raises(MatchingRunInProgress):
        await MatchingService(session_factory).run_weekly_matching(now=TODAY)

    assert await groups_for_week(session_factory) == []
    assert await lock_rows(session_factory) == 1


@pytest.mark.asyncio
async def test_lock_released_after_failed_run(session_factory, add_profiles, alternating_pool_rows):
    await add_profiles(alternating_pool_rows)

    def builder(members):
        raise RuntimeError("boom")

    service = MatchingService(session_factory, group_service=GroupService(session_factory, message_builder=builder))
    with pytest.raises(MatchingRunError):
        await service.run_weekly_matching(now=TODAY)
    assert await lock_rows(session_factory) == 0

    report = await MatchingService(session_factory).run_weekly_matching(now=TODAY)
    assert report.status == STATUS_COMPLETED


def test_lock_ttl_follows_timeout():
    assert MatchingService(broken_factory, timeout=30).lock_ttl == timedelta(seconds=60)
    assert MatchingService(broken_factory).lock_ttl == timedelta(hours=1)
