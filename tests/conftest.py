"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest
from sqlalchemy import event

from app.domain.models import CandidateProfile
from app.infrastructure import models
from app.infrastructure.db.session import Base, make_engine, make_sessionmaker


def _make_profile(id: str, **overrides) -> CandidateProfile:
    data: Dict[str, Any] = {
        "id": id,
        "first_name": id.title(),
        "specialty": "Cardiology",
        "city": "Riyadh",
        "gender": "female",
        "gender_preference": "no-preference",
        "interests": {"ai", "hiking"},
        "availability_slots": {"sat-pm"},
    }
    data.update(overrides)
    return CandidateProfile(**data)


@pytest.fixture
def make_profile():
    """Factory for candidate profiles; every field can be overridden."""
    return _make_profile


@pytest.fixture
async def session_factory(tmp_path):
    """Async session factory bound to a throw-away SQLite file with FKs enforced."""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'matching.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield make_sessionmaker(engine)
    await engine.dispose()


def profile_row(id: str, **overrides) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": id,
        "first_name": id.title(),
        "last_name": "Doe",
        "specialty": "Cardiology",
        "city": "Riyadh",
        "gender": "female",
        "gender_preference": "no-preference",
        "interests": ["ai", "hiking"],
        "availability_slots": ["sat-pm"],
        "is_verified": True,
        "is_paid": True,
        "onboarding_completed": True,
    }
    data.update(overrides)
    return data


@pytest.fixture
def add_profiles(session_factory):
    """Insert profile rows; creation times follow the given order."""
    async def _add(rows: List[Dict[str, Any]]):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        async with session_factory() as db:
            async with db.begin():
                for i, row in enumerate(rows):
                    db.add(models.Profile(created_at=start + timedelta(minutes=i), **row))
    return _add


@pytest.fixture
def alternating_pool_rows() -> List[Dict[str, Any]]:
    """Seven identical, unrestricted profiles with alternating genders."""
    return [
        profile_row(f"p{i}", gender="female" if i % 2 else "male")
        for i in range(1, 8)
    ]


@pytest.fixture
def make_row():
    """Factory for raw `profiles` rows (eligible by default)."""
    return profile_row
