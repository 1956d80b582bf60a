"""Geospatial helpers."""
from __future__ import annotations

import math

from .models import GeoPoint

EARTH_RADIUS_METERS = 6371000.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_meters(lat1, lon1, lat2, lon2) / 1000.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points. NaN inputs yield NaN."""
    return haversine_meters(a.latitude, a.longitude, b.latitude, b.longitude)


def km_to_meters(km: float) -> int:
    return max(0, int(round(km * 1000)))


def zoom_level_for_span(latitude_delta: float) -> int:
    """Approximate map zoom level for a visible latitude span in degrees."""
    if latitude_delta <= 0:
        raise ValueError("latitude_delta must be > 0")
    return max(1, int(round(math.log2(360.0 / latitude_delta))))
