"""
Activity log sink. Writes are best-effort and use their own session: a
failure is logged and swallowed so it never fails (or expires the state of)
the attendance operation that triggered it.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from intern_attendance.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityLogSink:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self, user_id: str, action: str, description: str, at: datetime
    ) -> bool:
        """Append one entry; returns False when the write failed."""
        try:
            async with self._session_factory() as session:
                session.add(
                    ActivityLog(
                        user_id=user_id,
                        action=action,
                        description=description,
                        created_at=at,
                    )
                )
                await session.commit()
        except Exception as exc:
            # Driver errors such as refused connections are not wrapped by SQLAlchemy
            logger.warning("Could not write activity log %s for %s: %s", action, user_id, exc)
            return False
        return True
