"""Output reporting helpers."""
from __future__ import annotations

import csv
import json
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO

from .categories import category_for_types
from .geo import distance_meters
from .models import GeoPoint, PlaceResult

RESULT_FIELDNAMES = [
    "id",
    "name",
    "category",
    "rating",
    "rating_count",
    "open_now",
    "address",
    "latitude",
    "longitude",
    "distance_m",
    "categories",
]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _fsync_dir(path: str) -> None:
    try:
        dir_fd = os.open(path, os.O_DIRECTORY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


@contextmanager
def atomic_writer(
    path: str,
    mode: str = "w",
    encoding: str = "utf-8",
    newline: Optional[str] = None,
) -> Iterator[TextIO]:
    dir_path = os.path.dirname(path) or "."
    base = os.path.basename(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{base}.", suffix=".tmp", dir=dir_path)
    try:
        with os.fdopen(fd, mode, encoding=encoding, newline=newline) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        _fsync_dir(dir_path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def build_result_row(place: PlaceResult, origin: Optional[GeoPoint] = None) -> Dict[str, Any]:
    distance = None
    if origin is not None and place.location is not None and origin.is_valid() and place.location.is_valid():
        distance = int(round(distance_meters(origin, place.location)))
    row = place.to_dict()
    row["category"] = category_for_types(place.categories).label
    row["distance_m"] = distance
    return row


def build_result_rows(places: Iterable[PlaceResult], origin: Optional[GeoPoint] = None) -> List[Dict[str, Any]]:
    return [build_result_row(place, origin) for place in places]


def write_results_json(path: str, rows: Iterable[Dict[str, Any]]) -> None:
    with atomic_writer(path, mode="w", encoding="utf-8") as f:
        json.dump(list(rows), f, ensure_ascii=False, indent=2)


def write_results_csv(path: str, rows: Iterable[Dict[str, Any]]) -> None:
    rows = list(rows)
    with atomic_writer(path, mode="w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=RESULT_FIELDNAMES, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            out = dict(row)
            out["categories"] = json.dumps(out.get("categories", []), ensure_ascii=False)
            writer.writerow(out)


def render_summary(rows: List[Dict[str, Any]], top_n: int = 10) -> List[str]:
    lines = [f"Results: {len(rows)}"]
    by_category: Dict[str, int] = {}
    for row in rows:
        by_category[row["category"]] = by_category.get(row["category"], 0) + 1
    for label in sorted(by_category):
        lines.append(f"- {label}: {by_category[label]}")
    for row in rows[:top_n]:
        rating = f"{row['rating']:.1f}" if row.get("rating") is not None else "-"
        distance = f"{row['distance_m']}m" if row.get("distance_m") is not None else "?"
        lines.append(f"  {row.get('name') or row['id']} ({row['category']}, {rating}, {distance})")
    return lines
