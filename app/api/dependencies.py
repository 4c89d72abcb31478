# app/api/dependencies.py
"""
Shared FastAPI dependencies.
"""
from typing import Optional

from fastapi import Header, HTTPException, status

from app.config.settings import settings
from app.infrastructure.db.session import AsyncSessionLocal
from app.services.matching_service import MatchingService

_matching_service: Optional[MatchingService] = None


def get_matching_service() -> MatchingService:
    """One service per process so its run lock is shared by every request."""
    global _matching_service
    if _matching_service is None:
        _matching_service = MatchingService(
            AsyncSessionLocal,
            options=settings.matching_options(),
            timeout=settings.MATCHING_RUN_TIMEOUT_SECONDS,
        )
    return _matching_service


def require_cron_secret(authorization: Optional[str] = Header(default=None)):
    if not settings.CRON_SECRET:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Cron secret not configured")
    if authorization != f"Bearer {settings.CRON_SECRET}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
