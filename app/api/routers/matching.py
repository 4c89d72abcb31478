# app/api/routers/matching.py
"""
Matching endpoints: trigger the weekly run, list this week's groups,
run history, pool stats and pairwise compatibility.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_matching_service, require_cron_secret
from app.config.settings import settings
from app.domain.errors import MatchingRunError, MatchingRunInProgress
from app.domain.scoring import compatibility_percentage, describe_compatibility
from app.infrastructure.db.session import get_async_session as get_db
from app.infrastructure.repositories.candidate_repo import CandidateRepo
from app.infrastructure.repositories.match_repo import MatchRepo
from app.services.matching_service import MatchingService, as_date, week_start

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/run", summary="Run weekly matching", dependencies=[Depends(require_cron_secret)])
async def run_matching(
    force: bool = Query(False, description="Run even if this week already has groups"),
    service: MatchingService = Depends(get_matching_service),
):
    try:
        report = await service.run_weekly_matching(force=force)
    except MatchingRunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MatchingRunError as e:
        logger.error("Matching run failed: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to run matching algorithm: {e}")

    body = report.to_dict()
    body["groups"] = [
        {
            "group_id": g.group_id,
            "member_count": len(g),
            "average_score": round(g.average_score, 3),
            "members": [
                {"name": f"{m.first_name} {m.last_name}".strip(), "specialty": m.specialty, "city": m.city}
                for m in g.members
            ],
        }
        for g in report.groups
    ]
    return body


@router.get("/groups", summary="Groups of a matching week")
async def list_groups(week: Optional[date] = None, db: AsyncSession = Depends(get_db)):
    match_week = week_start(week or as_date(None))
    groups = await MatchRepo(db).list_groups_for_week(match_week)
    return {
        "match_week": match_week.isoformat(),
        "groups": [
            {
                "id": g.id,
                "group_name": g.group_name,
                "status": g.status,
                "average_score": g.average_score,
                "members": [
                    {
                        "id": m.user_id,
                        "first_name": m.profile.first_name if m.profile else None,
                        "specialty": m.profile.specialty if m.profile else None,
                        "city": m.profile.city if m.profile else None,
                    }
                    for m in g.members
                ],
            }
            for g in groups
        ],
    }


def _log_entry(entry) -> dict:
    return {
        "week": entry.week.isoformat(),
        "status": entry.status,
        "eligible_users": entry.eligible_users,
        "groups_attempted": entry.groups_attempted,
        "groups_created": entry.groups_created,
        "reason": entry.reason,
    }


@router.get("/history", summary="Recent matching runs")
async def history(limit: int = Query(5, ge=1, le=100), db: AsyncSession = Depends(get_db)):
    logs = await MatchRepo(db).list_logs(limit)
    return [_log_entry(entry) for entry in logs]


@router.get("/stats", summary="Current eligible pool and recent runs")
async def stats(limit: int = Query(5, ge=1, le=100), db: AsyncSession = Depends(get_db)):
    eligible = await CandidateRepo(db).fetch_eligible()
    logs = await MatchRepo(db).list_logs(limit)
    return {
        "eligible_count": len(eligible),
        "history": [_log_entry(entry) for entry in logs],
    }


@router.get("/compatibility/{user_a}/{user_b}", summary="Compatibility of two members")
async def compatibility(user_a: str, user_b: str, db: AsyncSession = Depends(get_db)):
    try:
        profiles = await CandidateRepo(db).get_profiles([user_a, user_b])
    except ValidationError:
        raise HTTPException(status_code=422, detail="Profile is incomplete")
    if len(profiles) != 2:
        raise HTTPException(status_code=404, detail="Profile not found")
    result = describe_compatibility(
        compatibility_percentage(profiles[0], profiles[1], settings.scoring_weights())
    )
    return {"percentage": result.percentage, "description": result.description, "level": result.level}
