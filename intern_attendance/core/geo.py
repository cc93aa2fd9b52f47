"""
Great-circle distance between two GPS coordinates (Haversine).
"""

from __future__ import annotations

import math

EARTH_RADIUS_METERS = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the distance in metres between two (lat, lon) points given in degrees."""
    for value in (lat1, lon1, lat2, lon2):
        if not math.isfinite(value):
            raise ValueError(f"Coordinate must be a finite number, got {value!r}")

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def round_half_up(meters: float) -> int:
    """Whole metres, with .5 going up (12.5 -> 13), unlike ``round``."""
    return math.floor(meters + 0.5)
