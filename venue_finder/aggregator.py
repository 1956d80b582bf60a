"""Category fan-out, merge and dedup."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from .categories import DEFAULT_CATEGORIES, SearchCategory
from .models import GeoPoint, PlaceResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class NearbySearcher(Protocol):
    def search_nearby(
        self, origin: GeoPoint, category_code: Optional[str], radius_meters: float
    ) -> Iterable[PlaceResult]:
        ...


def dedup_by_id(results: Iterable[PlaceResult]) -> List[PlaceResult]:
    """Drop repeated ids, keeping the first occurrence in order."""
    seen = set()
    unique: List[PlaceResult] = []
    for place in results:
        if place.id in seen:
            continue
        seen.add(place.id)
        unique.append(place)
    return unique


def _unique_codes(categories: Sequence[SearchCategory]) -> List[str]:
    codes: List[str] = []
    for category in categories:
        code = category.provider_code
        if code not in codes:
            codes.append(code)
    return codes


def _search_category(client: NearbySearcher, origin: GeoPoint, code: str, radius_meters: float) -> List[PlaceResult]:
    try:
        return list(client.search_nearby(origin, code, radius_meters))
    except Exception:
        logger.exception("Nearby search for %s failed", code)
        return []


def aggregate_by_categories(
    client: NearbySearcher,
    origin: GeoPoint,
    categories: Sequence[SearchCategory],
    radius_meters: float,
    on_progress: Optional[ProgressCallback] = None,
    parallel: bool = False,
    max_workers: int = 4,
) -> List[PlaceResult]:
    """Search each category and return the merged, deduplicated results.

    Categories are merged in input order (and pages in page order) so the
    first occurrence of an id always comes from the earliest category.
    ``on_progress`` receives the completed fraction after each category, in
    input order, including when ``parallel`` is set.
    """
    if not categories:
        categories = DEFAULT_CATEGORIES
    codes = _unique_codes(categories)
    total = len(codes)

    combined: List[PlaceResult] = []

    def report(done: int) -> None:
        if on_progress is not None:
            on_progress(done / total)

    if parallel and total > 1:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, total))) as executor:
            futures: Dict[str, Future] = {
                code: executor.submit(_search_category, client, origin, code, radius_meters) for code in codes
            }
            for index, code in enumerate(codes, start=1):
                combined.extend(futures[code].result())
                report(index)
    else:
        for index, code in enumerate(codes, start=1):
            found = _search_category(client, origin, code, radius_meters)
            logger.info("Category %s: %s results (%s/%s)", code, len(found), index, total)
            combined.extend(found)
            report(index)

    unique = dedup_by_id(combined)
    logger.info("Aggregated %s results, %s unique across %s categories", len(combined), len(unique), total)
    return unique
