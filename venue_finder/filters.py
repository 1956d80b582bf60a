"""Post-filters applied to merged search results."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .geo import distance_meters
from .models import GeoPoint, PlaceResult

logger = logging.getLogger(__name__)


def within_radius(
    results: Iterable[PlaceResult],
    origin: Optional[GeoPoint],
    radius_meters: float,
) -> List[PlaceResult]:
    """Keep results inside the exact circle around ``origin``.

    The provider's own radius is approximate and can return points near the
    corners of its bounding box. Results without a usable location are
    dropped. An absent or invalid origin leaves the input unchanged.
    """
    results = list(results)
    if origin is None or not origin.is_valid():
        return results

    kept: List[PlaceResult] = []
    for place in results:
        if place.location is None or not place.location.is_valid():
            continue
        if distance_meters(origin, place.location) <= radius_meters:
            kept.append(place)
    dropped = len(results) - len(kept)
    if dropped:
        logger.debug("Radius filter dropped %s of %s results (radius=%sm)", dropped, len(results), radius_meters)
    return kept


def with_min_rating(results: Iterable[PlaceResult], min_rating: Optional[float]) -> List[PlaceResult]:
    results = list(results)
    if not min_rating or min_rating <= 0:
        return results
    return [place for place in results if (place.rating or 0) >= min_rating]
