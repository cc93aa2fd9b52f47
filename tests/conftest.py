"""
Shared test fixtures for the attendance service test suite.

Every test gets its own in-memory aiosqlite database and a frozen civil
clock; the FastAPI app is wired to both through dependency overrides.
"""

import math
import os
import sys
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from intern_attendance.api.v1.deps import get_civil_clock, get_session_factory
from intern_attendance.core.civil_time import CivilClock
from intern_attendance.core.config import AttendancePolicy
from intern_attendance.core.geo import EARTH_RADIUS_METERS
from intern_attendance.db.base import Base
from intern_attendance.main import app
from intern_attendance.models import User, UserRole
from intern_attendance.repositories.activity_log import ActivityLogSink
from intern_attendance.repositories.attendance import AttendanceStore
from intern_attendance.services.attendance import AttendanceService

OFFICE_LAT = 5.194133
OFFICE_LON = 97.017938
CIVIL_OFFSET = timedelta(hours=7)


class FrozenUtc:
    """Callable UTC source whose value is set in civil (UTC+7) terms."""

    def __init__(self) -> None:
        self.value = datetime(2025, 8, 4, 1, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.value

    def set_civil(self, hour: int, minute: int = 0, second: int = 0, day: int = 4) -> None:
        civil = datetime(2025, 8, day, hour, minute, second, tzinfo=timezone.utc)
        self.value = civil - CIVIL_OFFSET


@pytest.fixture
def frozen_utc() -> FrozenUtc:
    return FrozenUtc()


@pytest.fixture
def civil_clock(frozen_utc: FrozenUtc) -> CivilClock:
    return CivilClock(offset_hours=7, utc_now=frozen_utc)


@pytest.fixture
def policy() -> AttendancePolicy:
    return AttendancePolicy(
        office_name="PT Pupuk Iskandar Muda",
        office_latitude=OFFICE_LAT,
        office_longitude=OFFICE_LON,
        max_distance_meters=50,
    )


@pytest.fixture
def point_at():
    """Return (lat, lon) due north of the office at the given distance in metres."""

    def _point_at(meters: float) -> tuple[float, float]:
        return OFFICE_LAT + math.degrees(meters / EARTH_RADIUS_METERS), OFFICE_LON

    return _point_at


# ── Database ────────────────────────────────────────────────────────
@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with all tables for one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def intern(db_session: AsyncSession) -> User:
    user = User(
        badge="2021001",
        name="Ahmad Fauzi",
        email="ahmad.fauzi@example.com",
        hashed_password="not-a-real-hash",
        role=UserRole.INTERN.value,
        university="Universitas Syiah Kuala",
    )
    db_session.add(user)
    await db_session.commit()
    return user


# ── Engine ──────────────────────────────────────────────────────────
@pytest.fixture
async def service(
    session_factory, civil_clock: CivilClock, policy: AttendancePolicy
) -> AsyncGenerator[AttendanceService, None]:
    async with session_factory() as session:
        yield AttendanceService(
            store=AttendanceStore(session),
            activity_log=ActivityLogSink(session_factory),
            clock=civil_clock,
            policy=policy,
        )


# ── HTTP ────────────────────────────────────────────────────────────
@pytest.fixture
async def async_client(
    session_factory, civil_clock: CivilClock
) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_civil_clock] = lambda: civil_clock
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
