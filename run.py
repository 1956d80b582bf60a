"""CLI entrypoint."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv as _load_dotenv

from venue_finder import config
from venue_finder.categories import categories_from_labels
from venue_finder.coordinator import RequestCoordinator, SearchStatus
from venue_finder.http import HttpClient, RequestMetrics
from venue_finder.models import GeoPoint, SearchRequest
from venue_finder.places_client import PlacesClient, resolve_api_key
from venue_finder.reporting import (
    build_result_row,
    build_result_rows,
    ensure_dir,
    render_summary,
    write_results_csv,
    write_results_json,
)


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    _load_dotenv(dotenv_path=env_path, override=False)


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find bars, restaurants and clubs near a point")
    parser.add_argument("--preflight", action="store_true", help="Check API key and config only")
    parser.add_argument("--lat", type=float, default=None)
    parser.add_argument("--lon", type=float, default=None)
    parser.add_argument(
        "--radius-km",
        type=float,
        default=None,
        help="Search radius in km (default from config)",
    )
    parser.add_argument(
        "--categories",
        type=str,
        default=None,
        help='Comma-separated category labels, e.g. "Bares,Cafés" (default: all)',
    )
    parser.add_argument("--query", type=str, default=None, help="Free-text search (ignores filters)")
    parser.add_argument("--min-rating", type=float, default=None)
    parser.add_argument("--zoom", type=float, default=None, help="Current map zoom level for gating")
    parser.add_argument("--parallel", action="store_true", help="Query categories concurrently")
    parser.add_argument("--details", type=str, default=None, help="Fetch details for one place id and exit")
    parser.add_argument("--config", type=str, default=None, help="Path to search_config.json")
    parser.add_argument("--out", type=str, default=config.OUTPUT_DIR)
    parser.add_argument("--top", type=int, default=10, help="Rows to print in the summary")
    return parser.parse_args(argv)


def build_request(args: argparse.Namespace) -> SearchRequest:
    if args.lat is None or args.lon is None:
        raise ValueError("--lat and --lon are required")
    origin = GeoPoint(args.lat, args.lon)
    if not origin.is_valid():
        raise ValueError(f"Invalid coordinates: {args.lat}, {args.lon}")
    radius_km = config.DEFAULT_RADIUS_KM if args.radius_km is None else args.radius_km
    return SearchRequest.from_km(
        origin,
        radius_km,
        categories=categories_from_labels(_split_csv(args.categories)),
        free_text_query=args.query,
        min_rating=args.min_rating,
    )


def run_preflight(api_key: Optional[str]) -> int:
    ok = True
    if api_key:
        print("API key: OK")
    else:
        print("API key: MISSING")
        ok = False
    print(
        "Limits: max_radius_km={max_radius}, min_zoom={min_zoom}, max_pages={pages}".format(
            max_radius=config.MAX_RADIUS_KM,
            min_zoom=config.MIN_ZOOM_LEVEL,
            pages=config.PLACES_MAX_PAGES_PER_QUERY,
        )
    )
    print("Preflight: PASS" if ok else "Preflight: FAIL")
    return 0 if ok else 1


def make_places_client(api_key: str, metrics: Optional[RequestMetrics] = None) -> PlacesClient:
    http_client = HttpClient(
        api_key,
        timeout=config.HTTP_TIMEOUT_SECONDS,
        retry_max=config.HTTP_RETRY_MAX,
        backoff_base=config.HTTP_BACKOFF_BASE,
        backoff_max=config.HTTP_BACKOFF_MAX,
    )
    return PlacesClient(http_client, metrics=metrics)


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        config.load_search_config(args.config)
    except ValueError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 1

    api_key = resolve_api_key(os.environ)
    if args.preflight:
        return run_preflight(api_key)
    if not api_key:
        print("Missing GOOGLE_MAPS_API_KEY in environment", file=sys.stderr)
        return 1

    metrics = RequestMetrics()
    places_client = make_places_client(api_key, metrics=metrics)

    if args.details:
        place = places_client.get_details(args.details)
        if place is None:
            print(f"No details for {args.details}", file=sys.stderr)
            return 1
        for key, value in build_result_row(place).items():
            print(f"{key}: {value}")
        return 0

    try:
        request = build_request(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    with RequestCoordinator(places_client, parallel=args.parallel) as coordinator:
        outcome = coordinator.start_search(request, zoom_level=args.zoom)

    if outcome.status is SearchStatus.GATED:
        print(outcome.advisory_message)
        return 2
    if outcome.status is not SearchStatus.COMMITTED:
        print(f"Search ended with status {outcome.status.value}", file=sys.stderr)
        return 1

    rows = build_result_rows(outcome.results, request.origin)
    ensure_dir(args.out)
    write_results_json(f"{args.out}/results.json", rows)
    write_results_csv(f"{args.out}/results.csv", rows)
    for line in render_summary(rows, top_n=args.top):
        print(line)
    print(
        f"Requests: nearby={metrics.network_nearby} text={metrics.network_text} "
        f"not_ready_retries={metrics.not_ready_retries} failed_pages={metrics.failed_pages}"
    )
    print(f"Done. Results written to {args.out}/results.csv and {args.out}/results.json")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
