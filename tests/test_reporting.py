import csv
import json
import os

import pytest

from venue_finder.models import GeoPoint, PlaceResult
from venue_finder.reporting import (
    atomic_writer,
    build_result_rows,
    render_summary,
    write_results_csv,
    write_results_json,
)

ORIGIN = GeoPoint(-23.5505, -46.6333)


def _rows():
    places = [
        PlaceResult(
            id="b1",
            name="Boteco",
            location=GeoPoint(-23.5510, -46.6333),
            categories=("bar", "point_of_interest"),
            rating=4.5,
        ),
        PlaceResult(id="c1", name="Café", categories=("cafe",)),
    ]
    return build_result_rows(places, ORIGIN)


def test_result_rows_include_category_and_distance():
    rows = _rows()

    assert rows[0]["category"] == "Bares"
    assert rows[0]["distance_m"] == 56
    assert rows[1]["category"] == "Cafés"
    assert rows[1]["distance_m"] is None


def test_write_results_json_and_csv(tmp_path):
    rows = _rows()
    json_path = tmp_path / "results.json"
    csv_path = tmp_path / "results.csv"

    write_results_json(str(json_path), rows)
    write_results_csv(str(csv_path), rows)

    assert json.loads(json_path.read_text(encoding="utf-8"))[0]["id"] == "b1"
    with csv_path.open(encoding="utf-8", newline="") as f:
        parsed = list(csv.DictReader(f))
    assert [r["id"] for r in parsed] == ["b1", "c1"]
    assert json.loads(parsed[0]["categories"]) == ["bar", "point_of_interest"]


def test_empty_csv_still_has_header(tmp_path):
    path = tmp_path / "results.csv"
    write_results_csv(str(path), [])

    assert path.read_text(encoding="utf-8").startswith("id,name,category")


def test_atomic_writer_leaves_original_on_error(tmp_path):
    path = tmp_path / "results.json"
    path.write_text("original", encoding="utf-8")

    with pytest.raises(RuntimeError):
        with atomic_writer(str(path)) as f:
            f.write("partial")
            raise RuntimeError("boom")

    assert path.read_text(encoding="utf-8") == "original"
    assert [p for p in os.listdir(tmp_path) if p.endswith(".tmp")] == []


def test_render_summary_counts_by_category():
    lines = render_summary(_rows(), top_n=1)

    assert lines[0] == "Results: 2"
    assert "- Bares: 1" in lines
    assert "- Cafés: 1" in lines
    assert lines[-1] == "  Boteco (Bares, 4.5, 56m)"
