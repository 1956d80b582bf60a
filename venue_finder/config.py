"""Project configuration.

Loads user-defined search limits from search_config.json when available,
falling back to sensible defaults. Keep provider request shapes centralized here.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- API endpoints ---

PLACES_NEARBY_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PLACES_TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
PLACES_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"

API_KEY_ENV_VARS = ("GOOGLE_MAPS_API_KEY", "EXPO_PUBLIC_GOOGLE_MAPS_API_KEY")

# --- Provider statuses ---

STATUS_OK = "OK"
STATUS_ZERO_RESULTS = "ZERO_RESULTS"
STATUS_INVALID_REQUEST = "INVALID_REQUEST"

# --- Pagination ---

# Google returns at most 60 results per query (3 pages of 20).
PLACES_MAX_PAGES_PER_QUERY = 3
PAGE_TOKEN_DELAY_SECONDS = 2.0
NOT_READY_BACKOFF_SECONDS = 1.5
NOT_READY_MAX_RETRIES = 5

# --- Search policy ---

DEFAULT_RADIUS_KM = 0.5
MAX_RADIUS_KM = 5.0
MIN_ZOOM_LEVEL = 12
TEXT_SEARCH_RADIUS_METERS = 50000

ADVISORY_RADIUS_TOO_LARGE = (
    "Aproxime mais o mapa ou reduza o raio (máx. {max_km:g}km) para ver novos locais."
)
ADVISORY_ZOOM_TOO_LOW = "Aproxime o mapa (zoom >= {min_zoom}) para carregar os estabelecimentos."

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 20
HTTP_RETRY_MAX = 3
HTTP_BACKOFF_BASE = 0.5
HTTP_BACKOFF_MAX = 8.0

# --- Outputs ---

OUTPUT_DIR = "out"

_CONFIG_KEYS: Dict[str, tuple] = {
    "max_radius_km": ("MAX_RADIUS_KM", float),
    "min_zoom_level": ("MIN_ZOOM_LEVEL", int),
    "default_radius_km": ("DEFAULT_RADIUS_KM", float),
    "text_search_radius_m": ("TEXT_SEARCH_RADIUS_METERS", int),
    "max_pages": ("PLACES_MAX_PAGES_PER_QUERY", int),
    "page_token_delay_s": ("PAGE_TOKEN_DELAY_SECONDS", float),
    "not_ready_backoff_s": ("NOT_READY_BACKOFF_SECONDS", float),
    "not_ready_max_retries": ("NOT_READY_MAX_RETRIES", int),
}


def load_search_config(path: Optional[str] = None) -> bool:
    """Load search limits from a JSON file.

    Updates module-level globals with values from the config file.
    Returns True if config was loaded, False if file not found.
    """
    if path is None:
        path = str(_REPO_ROOT / "search_config.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data: Dict[str, Any] = json.load(f)

    globals_ref = globals()
    for key, (name, cast) in _CONFIG_KEYS.items():
        value = data.get(key)
        if value is None:
            continue
        try:
            globals_ref[name] = cast(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for {key!r} in {config_path}: {value!r}") from exc

    if PLACES_MAX_PAGES_PER_QUERY < 1:
        raise ValueError("max_pages must be >= 1")
    return True
