"""Value types shared across the search pipeline."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .categories import SearchCategory


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        lat = self.latitude
        lon = self.longitude
        if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
            return False
        if isinstance(lat, bool) or isinstance(lon, bool):
            return False
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["GeoPoint"]:
        """Build a point from provider ({lat, lng}) or UI ({latitude, longitude}) shapes.

        Returns None when either coordinate is missing or not numeric.
        """
        if not isinstance(data, Mapping):
            return None
        lat = data.get("latitude", data.get("lat"))
        lon = data.get("longitude", data.get("lng", data.get("lon")))
        lat_f = _as_float(lat)
        lon_f = _as_float(lon)
        if lat_f is None or lon_f is None:
            return None
        return cls(lat_f, lon_f)

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class PlaceResult:
    id: str
    name: Optional[str] = None
    location: Optional[GeoPoint] = None
    categories: Tuple[str, ...] = ()
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    open_now: Optional[bool] = None
    address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "latitude": self.location.latitude if self.location else None,
            "longitude": self.location.longitude if self.location else None,
            "categories": list(self.categories),
            "rating": self.rating,
            "rating_count": self.rating_count,
            "open_now": self.open_now,
            "address": self.address,
        }


@dataclass(frozen=True)
class SearchRequest:
    """One user-triggered search.

    An empty ``categories`` tuple means "all default categories". A request
    with ``free_text_query`` skips category fan-out, gating and post-filters.
    """

    origin: Optional[GeoPoint]
    radius_meters: float = 0.0
    categories: Tuple[SearchCategory, ...] = ()
    free_text_query: Optional[str] = None
    min_rating: Optional[float] = None

    def __post_init__(self) -> None:
        if self.radius_meters < 0:
            raise ValueError("radius_meters must be >= 0")
        if self.min_rating is not None and not 0.0 <= self.min_rating <= 5.0:
            raise ValueError("min_rating must be between 0 and 5")

    @property
    def is_text_search(self) -> bool:
        return bool(self.free_text_query and self.free_text_query.strip())

    @property
    def radius_km(self) -> float:
        return self.radius_meters / 1000.0

    @classmethod
    def from_km(
        cls,
        origin: Optional[GeoPoint],
        radius_km: float,
        categories: Tuple[SearchCategory, ...] = (),
        free_text_query: Optional[str] = None,
        min_rating: Optional[float] = None,
    ) -> "SearchRequest":
        return cls(
            origin=origin,
            radius_meters=float(max(0, round(radius_km * 1000))),
            categories=tuple(categories),
            free_text_query=free_text_query,
            min_rating=min_rating,
        )


@dataclass(frozen=True)
class SearchSnapshot:
    """State published to the map UI."""

    results: Tuple[PlaceResult, ...] = ()
    progress_percent: int = 0
    advisory_message: Optional[str] = None
    searching: bool = False
    sequence: int = 0
