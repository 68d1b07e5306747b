"""Great-circle trend between consecutive position samples."""

from __future__ import annotations

import math
from typing import Sequence

from ..models import PositionLog, PositionTrend
from .extract import first_float

EARTH_RADIUS_KM = 6371.0
MOVEMENT_THRESHOLD_KM = 0.1


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def compute_trend(logs: Sequence[PositionLog]) -> PositionTrend:
    """Trend from logs ordered newest first; fewer than two gives a neutral trend."""

    if len(logs) < 2:
        return PositionTrend()
    current, previous = logs[0], logs[1]

    lat1 = first_float(previous.payload, "latitude", "lat")
    lon1 = first_float(previous.payload, "longitude", "lon", "lng")
    lat2 = first_float(current.payload, "latitude", "lat")
    lon2 = first_float(current.payload, "longitude", "lon", "lng")
    velocity = first_float(current.payload, "velocity")

    delta_km = haversine_km(lat1, lon1, lat2, lon2)
    return PositionTrend(
        movement=delta_km > MOVEMENT_THRESHOLD_KM,
        delta_km=delta_km,
        dt_sec=(current.fetched_at - previous.fetched_at).total_seconds(),
        velocity_kmh=velocity * 3.6 if velocity > 0 else None,
        from_time=previous.fetched_at,
        to_time=current.fetched_at,
        from_lat=lat1,
        from_lon=lon1,
        to_lat=lat2,
        to_lon=lon2,
    )


__all__ = ["EARTH_RADIUS_KM", "MOVEMENT_THRESHOLD_KM", "compute_trend", "haversine_km"]
