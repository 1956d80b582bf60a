"""Venue categories and their Places API type codes."""
from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class SearchCategory(str, Enum):
    BAR = "bar"
    RESTAURANT = "restaurant"
    NIGHTCLUB = "nightclub"
    CAFE = "cafe"
    QUICK_SERVICE = "quick_service"
    LIQUOR_STORE = "liquor_store"
    FOOD_TRUCK = "food_truck"

    @property
    def provider_code(self) -> str:
        return CATEGORY_CODES[self]

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_CODES: Mapping[SearchCategory, str] = MappingProxyType(
    {
        SearchCategory.BAR: "bar",
        SearchCategory.RESTAURANT: "restaurant",
        SearchCategory.NIGHTCLUB: "night_club",
        SearchCategory.CAFE: "cafe",
        SearchCategory.QUICK_SERVICE: "meal_takeaway",
        SearchCategory.LIQUOR_STORE: "liquor_store",
        SearchCategory.FOOD_TRUCK: "meal_takeaway",
    }
)

# Labels shown by the filter screen.
CATEGORY_LABELS: Mapping[SearchCategory, str] = MappingProxyType(
    {
        SearchCategory.BAR: "Bares",
        SearchCategory.RESTAURANT: "Restaurantes",
        SearchCategory.NIGHTCLUB: "Baladas",
        SearchCategory.CAFE: "Cafés",
        SearchCategory.QUICK_SERVICE: "Lanchonetes",
        SearchCategory.LIQUOR_STORE: "Adegas",
        SearchCategory.FOOD_TRUCK: "Food Trucks",
    }
)

DEFAULT_CATEGORIES: Tuple[SearchCategory, ...] = (
    SearchCategory.BAR,
    SearchCategory.RESTAURANT,
    SearchCategory.NIGHTCLUB,
    SearchCategory.CAFE,
    SearchCategory.QUICK_SERVICE,
    SearchCategory.LIQUOR_STORE,
)

FALLBACK_CATEGORY = SearchCategory.RESTAURANT

_BY_LABEL: Mapping[str, SearchCategory] = MappingProxyType(
    {label.casefold(): category for category, label in CATEGORY_LABELS.items()}
)

# First category wins for codes shared by several categories.
_BY_CODE: Mapping[str, SearchCategory] = MappingProxyType(
    {code: category for category, code in reversed(list(CATEGORY_CODES.items()))}
)


def category_from_label(label: str) -> Optional[SearchCategory]:
    """Resolve a filter label ("Bares") or enum value ("bar")."""
    key = (label or "").strip()
    if not key:
        return None
    found = _BY_LABEL.get(key.casefold())
    if found is not None:
        return found
    try:
        return SearchCategory(key.lower())
    except ValueError:
        return None


def categories_from_labels(labels: Iterable[str]) -> Tuple[SearchCategory, ...]:
    """Map filter-screen labels to categories, keeping order.

    Unknown labels fall back to RESTAURANT, matching the filter screen's
    historical behaviour.
    """
    out: List[SearchCategory] = []
    for label in labels:
        category = category_from_label(label)
        if category is None:
            logger.warning("Unknown category label %r; using %s", label, FALLBACK_CATEGORY.value)
            category = FALLBACK_CATEGORY
        out.append(category)
    return tuple(out)


def category_for_types(types: Iterable[str]) -> SearchCategory:
    """Return the first category matching a place's provider types, BAR if none."""
    if isinstance(types, (str, bytes)):
        return SearchCategory.BAR
    for place_type in types or ():
        match = _BY_CODE.get(place_type)
        if match is not None:
            return match
    return SearchCategory.BAR
