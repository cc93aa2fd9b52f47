"""
Attendance record store over async SQLAlchemy, keyed by (user, civil day).

Uniqueness of (user_id, date) is enforced by the ``uq_attendance_user_date``
constraint; ``create`` surfaces a violation as ``RecordConflictError`` and
``update`` can be guarded on a column still being NULL so concurrent writers
cannot overwrite a half of the record that is already set.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from intern_attendance.models.attendance import AttendanceRecord

logger = logging.getLogger(__name__)


class RecordConflictError(Exception):
    """A row for the same (user_id, date) already exists."""


class StaleRecordError(Exception):
    """A guarded update matched no row (column already set or row gone)."""


class AttendanceStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_user_and_date(
        self, user_id: str, day: datetime
    ) -> AttendanceRecord | None:
        result = await self._session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date == day,
            )
        )
        return result.scalar_one_or_none()

    async def find_open_by_user_and_date(
        self, user_id: str, day: datetime
    ) -> AttendanceRecord | None:
        """Record with check-in set and check-out still empty."""
        result = await self._session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date == day,
                AttendanceRecord.check_in.is_not(None),
                AttendanceRecord.check_out.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def create(self, record: AttendanceRecord) -> AttendanceRecord:
        user_id, day = record.user_id, record.date
        self._session.add(record)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            # Other integrity failures (e.g. unknown user FK) are not conflicts
            if await self.find_by_user_and_date(user_id, day) is None:
                raise
            logger.info(
                "Attendance insert conflict for user %s on %s",
                user_id,
                day,
            )
            raise RecordConflictError(str(exc.orig)) from exc
        await self._session.refresh(record)
        return record

    async def update(
        self,
        record_id: str,
        fields: dict[str, Any],
        *,
        unset: str | None = None,
    ) -> AttendanceRecord:
        """Apply ``fields`` to one row; with ``unset`` only while that column is NULL."""
        stmt = update(AttendanceRecord).where(AttendanceRecord.id == record_id)
        if unset is not None:
            stmt = stmt.where(getattr(AttendanceRecord, unset).is_(None))
        result = await self._session.execute(
            stmt.values(**fields).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self._session.rollback()
            raise StaleRecordError(f"Attendance {record_id} not updated (guard: {unset})")
        await self._session.commit()

        refreshed = await self._session.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.id == record_id)
            .execution_options(populate_existing=True)
        )
        return refreshed.scalar_one()

    async def list_by_user(self, user_id: str, limit: int) -> list[AttendanceRecord]:
        result = await self._session.execute(
            select(AttendanceRecord)
            .where(AttendanceRecord.user_id == user_id)
            .order_by(AttendanceRecord.date.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_status(
        self,
        user_id: str,
        statuses: Iterable[str],
        since: datetime | None = None,
    ) -> int:
        query = select(func.count(AttendanceRecord.id)).where(
            AttendanceRecord.user_id == user_id,
            AttendanceRecord.status.in_(list(statuses)),
        )
        if since is not None:
            query = query.where(AttendanceRecord.date >= since)
        result = await self._session.execute(query)
        return result.scalar() or 0
