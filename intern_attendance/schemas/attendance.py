"""Pydantic schemas for attendance check-in / check-out."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator


# ── Requests ────────────────────────────────────────────────────────
class AttendanceActionRequest(BaseModel):
    user_id: str = Field(validation_alias=AliasChoices("user_id", "userId"))
    latitude: float = Field(allow_inf_nan=False)
    longitude: float = Field(allow_inf_nan=False)

    @field_validator("user_id")
    @classmethod
    def _user_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("User ID must not be empty")
        return v

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _numeric(cls, v: object) -> object:
        # Strings and booleans would be coerced by pydantic's lax mode
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("GPS coordinates must be numbers")
        return v


# ── Responses ───────────────────────────────────────────────────────
class AttendanceRead(BaseModel):
    id: str
    user_id: str
    date: datetime
    check_in: datetime | None
    check_out: datetime | None
    location: str | None
    latitude: float | None
    longitude: float | None
    distance: int | None
    duration: int | None
    status: str
    created_at: datetime | None
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class AttendanceActionResponse(AttendanceRead):
    message: str


class OfficeLocationResponse(BaseModel):
    latitude: float
    longitude: float
    name: str
    max_distance: float


class AttendanceStatsResponse(BaseModel):
    total_present: int
    total_leave: int
    monthly_present: int


# ── Health ──────────────────────────────────────────────────────────
class HealthResponse(BaseModel):
    status: str
    db: bool
