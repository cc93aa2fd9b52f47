"""
Internship attendance service — application entry point.

This is the **only** file that assembles the app. Business logic lives in
the `services/`, `repositories/`, `models/` and `core/` packages.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select

from intern_attendance.api.v1.api import api_router
from intern_attendance.core.config import settings
from intern_attendance.core.exceptions import register_exception_handlers
from intern_attendance.core.security import get_password_hash
from intern_attendance.db.base import Base
from intern_attendance.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from intern_attendance.models import ActivityLog, AttendanceRecord  # noqa: F401
from intern_attendance.models import User, UserRole

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed default admin user on first run
    async with async_session_factory() as session:
        result = await session.execute(
            select(User).where(User.email == settings.FIRST_ADMIN_EMAIL)
        )
        if result.scalar_one_or_none() is None:
            admin = User(
                badge="ADM001",
                name="System Administrator",
                email=settings.FIRST_ADMIN_EMAIL,
                hashed_password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
                role=UserRole.ADMIN.value,
            )
            session.add(admin)
            await session.commit()
            logger.info(
                "Default admin created: %s (password: <redacted>)",
                settings.FIRST_ADMIN_EMAIL,
            )

    policy = settings.attendance_policy()
    logger.info(
        "%s v%s started, office %s (%.6f, %.6f), radius %gm",
        settings.PROJECT_NAME,
        settings.VERSION,
        policy.office_name,
        policy.office_latitude,
        policy.office_longitude,
        policy.max_distance_meters,
    )
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Geofenced internship attendance service",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
