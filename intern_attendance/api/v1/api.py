"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from intern_attendance.api.v1.endpoints import attendance, health

api_router = APIRouter()

# Check-in / check-out, office location, today's record, stats
api_router.include_router(attendance.router)

# Liveness
api_router.include_router(health.router)
