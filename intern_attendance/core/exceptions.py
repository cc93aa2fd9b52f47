"""
Attendance error taxonomy and global exception handlers.

Every rejection raised by the attendance engine is an ``AttendanceError``
carrying an HTTP-equivalent status, a stable ``code`` and a structured
payload; the handlers below turn them into JSON without leaking stack traces.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class AttendanceError(Exception):
    """Base class for typed attendance failures."""

    status_code: int = 400
    code: str = "attendance_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {
            "detail": self.message,
            "success": False,
            "code": self.code,
            **jsonable_encoder(self.details),
        }


class ValidationError(AttendanceError):
    """Missing or malformed input."""

    code = "validation_error"


class TimeWindowError(AttendanceError):
    """Attempt made before the check-in / check-out window opens."""

    code = "time_window"


class DuplicateError(AttendanceError):
    """The requested half of today's record is already set."""

    code = "duplicate"


class OutOfRangeError(AttendanceError):
    """Submitted position lies outside the office geofence."""

    code = "out_of_range"


class StateError(AttendanceError):
    """Check-out without an open record for today."""

    code = "invalid_state"


class InternalError(AttendanceError):
    """Persistence or infrastructure failure."""

    status_code = 500
    code = "internal_error"


# ── Handlers ────────────────────────────────────────────────────────
async def _attendance_error_handler(_request: Request, exc: AttendanceError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("Internal attendance error: %s", exc.message, exc_info=exc.__cause__)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": "Internal server error", "success": False, "code": exc.code},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request body",
            "success": False,
            "code": ValidationError.code,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AttendanceError, _attendance_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
