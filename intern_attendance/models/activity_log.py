"""
Append-only activity (audit) log.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from intern_attendance.db.base import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: str = Column(  # type: ignore[assignment]
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: str = Column(String(40), nullable=False, index=True)  # type: ignore[assignment]
    # CHECK_IN | CHECK_OUT | LOGIN | ...
    description: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime, nullable=False, index=True)  # type: ignore[assignment]  # civil time
