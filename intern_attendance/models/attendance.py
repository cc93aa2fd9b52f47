"""
Daily attendance record, at most one row per (user, civil day).

``date``, ``check_in``, ``check_out``, ``created_at`` and ``updated_at`` hold
naive civil (UTC+7) wall-clock values, see ``core.civil_time``.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (Column, DateTime, Float, ForeignKey, Integer, String,
                        UniqueConstraint)

from intern_attendance.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"
    SICK = "SICK"


class AttendanceRecord(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
    )

    id: str = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))  # type: ignore[assignment]
    user_id: str = Column(  # type: ignore[assignment]
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: datetime = Column(DateTime, nullable=False, index=True)  # type: ignore[assignment]
    check_in: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    check_out: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    location: str | None = Column(String(300), nullable=True)  # type: ignore[assignment]
    latitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    longitude: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    distance: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]  # metres
    duration: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]  # minutes
    status: str = Column(  # type: ignore[assignment]
        String(10), nullable=False, default=AttendanceStatus.PRESENT.value
    )
    created_at: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
    updated_at: datetime | None = Column(DateTime, nullable=True)  # type: ignore[assignment]
