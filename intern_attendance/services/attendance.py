"""
Geofenced attendance engine: accepts or rejects check-in / check-out.

Per (user, civil day) a record moves NoRecord -> CheckedIn -> Complete and
never back. Rejections are raised as typed ``AttendanceError`` subclasses;
store conflicts caused by concurrent requests are translated into the same
errors a sequential caller would have received.
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from intern_attendance.core.civil_time import CivilClock
from intern_attendance.core.config import AttendancePolicy
from intern_attendance.core.exceptions import (DuplicateError, InternalError,
                                               OutOfRangeError, StateError,
                                               TimeWindowError, ValidationError)
from intern_attendance.core.geo import haversine_distance, round_half_up
from intern_attendance.models.attendance import AttendanceRecord, AttendanceStatus
from intern_attendance.repositories.activity_log import ActivityLogSink
from intern_attendance.repositories.attendance import (AttendanceStore,
                                                       RecordConflictError,
                                                       StaleRecordError)

logger = logging.getLogger(__name__)

_PRESENT_STATUSES = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)
_LEAVE_STATUSES = (AttendanceStatus.LEAVE.value, AttendanceStatus.SICK.value)


@dataclass(frozen=True)
class AttendanceOutcome:
    record: AttendanceRecord
    message: str


def _validate_request(user_id: Any, latitude: Any, longitude: Any) -> tuple[str, float, float]:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("User ID is required")
    if latitude is None or longitude is None:
        raise ValidationError("GPS coordinates (latitude & longitude) are required")
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError("GPS coordinates must be numbers")
        if not math.isfinite(value):
            raise ValidationError("GPS coordinates must be finite numbers")
    return user_id.strip(), float(latitude), float(longitude)


def _split_minutes(minutes: int) -> tuple[int, int]:
    return minutes // 60, minutes % 60


class AttendanceService:
    def __init__(
        self,
        store: AttendanceStore,
        activity_log: ActivityLogSink,
        clock: CivilClock,
        policy: AttendancePolicy,
    ) -> None:
        self._store = store
        self._activity_log = activity_log
        self._clock = clock
        self._policy = policy

    # ── Helpers ─────────────────────────────────────────────────────
    @asynccontextmanager
    async def _persistence(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Store failure during %s", operation)
            raise InternalError(f"Store failure during {operation}") from exc

    def _check_geofence(self, latitude: float, longitude: float) -> float:
        policy = self._policy
        distance = haversine_distance(
            latitude, longitude, policy.office_latitude, policy.office_longitude
        )
        if distance > policy.max_distance_meters:
            rounded = round_half_up(distance)
            raise OutOfRangeError(
                f"Location is too far from the office. Your distance: {rounded} meters. "
                f"Maximum: {policy.max_distance_meters:g} meters.",
                distance=rounded,
                max_distance=policy.max_distance_meters,
                user_location={"latitude": latitude, "longitude": longitude},
                office_location=policy.office_location(),
            )
        return distance

    def _check_window(self, now: datetime, open_hour: int, action: str) -> None:
        if now.hour < open_hour:
            label = self._policy.civil_tz_label
            current = self._clock.format_clock(now)
            raise TimeWindowError(
                f"{action} is not open yet. It opens at {open_hour:02d}:00 {label}. "
                f"Now: {current} {label}",
                current_time=current,
                min_time=f"{open_hour:02d}:00",
            )

    @staticmethod
    def _not_open(existing: AttendanceRecord | None) -> StateError:
        """Check-out rejection carrying today's record as it currently stands."""
        return StateError(
            "Not checked in yet or already checked out today",
            existing_check_in=existing.check_in if existing is not None else None,
            existing_check_out=existing.check_out if existing is not None else None,
        )

    def is_late(self, now: datetime) -> bool:
        open_hour = self._policy.check_in_open_hour
        return now.hour > open_hour or (
            now.hour == open_hour and now.minute > self._policy.check_in_grace_minute
        )

    # ── Check-in ────────────────────────────────────────────────────
    async def check_in(self, user_id: Any, latitude: Any, longitude: Any) -> AttendanceOutcome:
        user_id, latitude, longitude = _validate_request(user_id, latitude, longitude)
        policy = self._policy
        now = self._clock.now()
        today = self._clock.day_of(now)

        self._check_window(now, policy.check_in_open_hour, "Check-in")

        async with self._persistence("check-in lookup"):
            existing = await self._store.find_by_user_and_date(user_id, today)
        if existing is not None and existing.check_in is not None:
            raise DuplicateError(
                "Already checked in today",
                existing_check_in=existing.check_in,
            )

        distance = self._check_geofence(latitude, longitude)
        rounded = round_half_up(distance)
        late = self.is_late(now)
        status = AttendanceStatus.LATE if late else AttendanceStatus.PRESENT
        fields = {
            "check_in": now,
            "location": f"{policy.office_name} ({latitude:.6f}, {longitude:.6f})",
            "latitude": latitude,
            "longitude": longitude,
            "distance": rounded,
            "status": status.value,
            "updated_at": now,
        }

        try:
            async with self._persistence("check-in write"):
                if existing is not None:
                    record = await self._store.update(existing.id, fields, unset="check_in")
                else:
                    record = await self._store.create(
                        AttendanceRecord(user_id=user_id, date=today, created_at=now, **fields)
                    )
        except (RecordConflictError, StaleRecordError) as exc:
            logger.info("Concurrent check-in rejected for %s: %s", user_id, exc)
            async with self._persistence("check-in conflict lookup"):
                winner = await self._store.find_by_user_and_date(user_id, today)
            raise DuplicateError(
                "Already checked in today",
                existing_check_in=winner.check_in if winner is not None else None,
            ) from exc

        clock = self._clock.format_clock(now)
        label = policy.civil_tz_label
        logger.info(
            "Check-in %s for %s at %s (%dm)", status.value, user_id, clock, rounded
        )
        await self._activity_log.record(
            user_id,
            "CHECK_IN",
            f"Checked in at {clock} {label} - {'LATE' if late else 'ON TIME'} - Distance: {rounded}m",
            now,
        )

        prefix = "Check-in successful (LATE)!" if late else "Check-in successful!"
        return AttendanceOutcome(
            record=record,
            message=f"{prefix} Time: {clock} {label}. Distance: {rounded} meters",
        )

    # ── Check-out ───────────────────────────────────────────────────
    async def check_out(self, user_id: Any, latitude: Any, longitude: Any) -> AttendanceOutcome:
        user_id, latitude, longitude = _validate_request(user_id, latitude, longitude)
        now = self._clock.now()
        today = self._clock.day_of(now)

        self._check_window(now, self._policy.check_out_open_hour, "Check-out")

        async with self._persistence("check-out lookup"):
            record = await self._store.find_open_by_user_and_date(user_id, today)
        if record is None:
            async with self._persistence("check-out lookup"):
                existing = await self._store.find_by_user_and_date(user_id, today)
            raise self._not_open(existing)

        self._check_geofence(latitude, longitude)

        duration = math.floor((now - record.check_in).total_seconds() / 60)
        try:
            async with self._persistence("check-out write"):
                record = await self._store.update(
                    record.id,
                    {"check_out": now, "duration": duration, "updated_at": now},
                    unset="check_out",
                )
        except StaleRecordError as exc:
            logger.info("Concurrent check-out rejected for %s: %s", user_id, exc)
            async with self._persistence("check-out conflict lookup"):
                existing = await self._store.find_by_user_and_date(user_id, today)
            raise self._not_open(existing) from exc

        hours, minutes = _split_minutes(duration)
        logger.info("Check-out for %s after %d minutes", user_id, duration)
        await self._activity_log.record(
            user_id,
            "CHECK_OUT",
            f"Checked out at {now:%H:%M:%S} - Duration: {hours}h {minutes}m",
            now,
        )
        return AttendanceOutcome(
            record=record,
            message=f"Check-out successful! Work duration: {hours} hours {minutes} minutes",
        )

    # ── Reads ───────────────────────────────────────────────────────
    def get_office_location(self) -> dict[str, Any]:
        return {
            **self._policy.office_location(),
            "max_distance": self._policy.max_distance_meters,
        }

    async def get_today(self, user_id: str) -> AttendanceRecord | None:
        async with self._persistence("today lookup"):
            return await self._store.find_by_user_and_date(user_id, self._clock.today())

    async def get_history(self, user_id: str, limit: int = 10) -> list[AttendanceRecord]:
        """Most recent records for the user, newest civil day first."""
        async with self._persistence("history"):
            return await self._store.list_by_user(user_id, limit)

    async def get_stats(self, user_id: str) -> dict[str, int]:
        month_start = self._clock.month_start(self._clock.now())
        async with self._persistence("stats"):
            return {
                "total_present": await self._store.count_by_status(user_id, _PRESENT_STATUSES),
                "total_leave": await self._store.count_by_status(user_id, _LEAVE_STATUSES),
                "monthly_present": await self._store.count_by_status(
                    user_id, _PRESENT_STATUSES, since=month_start
                ),
            }
