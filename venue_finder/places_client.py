"""Places web-service client: nearby search, text search, details."""
from __future__ import annotations

import logging
import math
import os
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

import requests

from . import config
from .geo import km_to_meters
from .http import HttpClient, RequestMetrics
from .models import GeoPoint, PlaceResult
from .pagination import Paginator

logger = logging.getLogger(__name__)


def default_radius_meters() -> int:
    return km_to_meters(config.DEFAULT_RADIUS_KM)


def resolve_api_key(environ: Optional[Dict[str, str]] = None) -> Optional[str]:
    env = os.environ if environ is None else environ
    for name in config.API_KEY_ENV_VARS:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return None


class PlacesClient:
    def __init__(
        self,
        http_client: HttpClient,
        sleep: Callable[[float], None] = time.sleep,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        self.http = http_client
        self.sleep = sleep
        self.metrics = metrics

    def _get(self, kind: str, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.metrics is not None:
            self.metrics.inc_network(kind)
        return self.http.get_json(url, params)

    def _paginate(self, kind: str, url: str, first_params: Dict[str, Any], label: str) -> Iterator[PlaceResult]:
        def fetch_page(page_token: Optional[str]) -> Dict[str, Any]:
            params = {"pagetoken": page_token} if page_token else first_params
            return self._get(kind, url, params)

        paginator = Paginator(fetch_page, label=label, sleep=self.sleep, metrics=self.metrics)
        for page in paginator.pages():
            for raw in page:
                place = _parse_or_skip(raw, label)
                if place is not None:
                    yield place
        logger.debug(
            "Places %s: %s pages, %s not-ready retries, state=%s",
            label,
            paginator.pages_fetched,
            paginator.not_ready_retries,
            paginator.state.value,
        )

    def search_nearby(
        self,
        origin: GeoPoint,
        category_code: Optional[str],
        radius_meters: Optional[float] = None,
    ) -> Iterator[PlaceResult]:
        """Lazily yield every result of a nearby search, following page tokens."""
        if radius_meters is None:
            radius_meters = default_radius_meters()
        params = build_nearby_params(origin, category_code, radius_meters)
        return self._paginate("nearby", config.PLACES_NEARBY_SEARCH_URL, params, f"nearby[{category_code}]")

    def search_by_text(
        self,
        query: str,
        origin: GeoPoint,
        radius_meters: Optional[float] = None,
    ) -> Iterator[PlaceResult]:
        if radius_meters is None:
            radius_meters = default_radius_meters()
        params = build_text_search_params(query, origin, radius_meters)
        return self._paginate("text", config.PLACES_TEXT_SEARCH_URL, params, f"text[{query}]")

    def get_details(self, place_id: str) -> Optional[PlaceResult]:
        if not place_id:
            return None
        try:
            response = self._get("details", config.PLACES_DETAILS_URL, {"place_id": place_id})
        except (requests.RequestException, ValueError) as exc:
            logger.error("Places details for %s failed: %s", place_id, exc)
            return None

        status = response.get("status")
        if status != config.STATUS_OK:
            logger.error("Places details for %s: provider status %s", place_id, status)
            return None
        result = _parse_or_skip(response.get("result") or {}, f"details[{place_id}]")
        if result is None:
            logger.error("Places details for %s: malformed result", place_id)
        return result


def build_nearby_params(origin: GeoPoint, category_code: Optional[str], radius_meters: float) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "location": f"{origin.latitude},{origin.longitude}",
        "radius": str(int(round(radius_meters))),
    }
    if category_code:
        params["type"] = category_code
    return params


def build_text_search_params(query: str, origin: GeoPoint, radius_meters: float) -> Dict[str, Any]:
    return {
        "query": query,
        "location": f"{origin.latitude},{origin.longitude}",
        "radius": str(int(round(radius_meters))),
    }


# Adapter/mapper for Places response fields

def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _parse_or_skip(raw: Any, label: str) -> Optional[PlaceResult]:
    try:
        return parse_place(raw)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.warning("Places %s: skipping unparseable record: %s", label, exc)
        return None


def parse_place(raw: Dict[str, Any]) -> Optional[PlaceResult]:
    if not isinstance(raw, dict):
        return None
    place_id = raw.get("place_id") or raw.get("id")
    if not place_id:
        return None
    geometry = raw.get("geometry") or {}
    location = GeoPoint.from_mapping(geometry.get("location") if isinstance(geometry, dict) else None)

    rating = _finite_number(raw.get("rating"))
    if rating is not None and not 0 <= rating <= 5:
        rating = None
    rating_count = _finite_number(raw.get("user_ratings_total"))
    if rating_count is not None and rating_count < 0:
        rating_count = None

    opening_hours = raw.get("opening_hours")
    open_now = opening_hours.get("open_now") if isinstance(opening_hours, dict) else None
    if not isinstance(open_now, bool):
        open_now = None

    types = raw.get("types") or []
    if not isinstance(types, list):
        types = []

    return PlaceResult(
        id=str(place_id),
        name=raw.get("name"),
        location=location,
        categories=tuple(str(t) for t in types),
        rating=float(rating) if rating is not None else None,
        rating_count=int(rating_count) if rating_count is not None else None,
        open_now=open_now,
        address=raw.get("vicinity") or raw.get("formatted_address"),
    )


def parse_places_response(response: Dict[str, Any]) -> List[PlaceResult]:
    parsed: List[PlaceResult] = []
    for raw in response.get("results") or []:
        place = parse_place(raw)
        if place is not None:
            parsed.append(place)
    return parsed
