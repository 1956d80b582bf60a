from venue_finder.aggregator import aggregate_by_categories
from venue_finder.categories import SearchCategory
from venue_finder.filters import within_radius
from venue_finder.geo import distance_meters
from venue_finder.http import HttpClient, RequestMetrics
from venue_finder.models import GeoPoint
from venue_finder.places_client import PlacesClient

ORIGIN = GeoPoint(-23.5505, -46.6333)


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload
        self.status_code = 200
        self.headers = {}

    def json(self):
        return self._payload

    def raise_for_status(self):
        return None


class FakeSession:
    def __init__(self, payloads):
        self.payloads = list(payloads)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append(dict(params or {}))
        return FakeResponse(self.payloads.pop(0))


def _raw(place_id, lat_offset):
    return {
        "place_id": place_id,
        "name": f"Bar {place_id}",
        "types": ["bar"],
        "geometry": {"location": {"lat": ORIGIN.latitude + lat_offset, "lng": ORIGIN.longitude}},
    }


def test_bar_search_two_pages_with_duplicate():
    # 20 results on page 1 and 5 on page 2; "abc123" appears on both pages.
    page1 = [_raw("abc123", 0.001)] + [_raw(f"p{i}", 0.0004 * i) for i in range(1, 20)]
    page2 = [_raw("abc123", 0.001)] + [
        _raw(f"q{i}", offset) for i, offset in enumerate([0.002, 0.004, 0.012, 0.02], start=1)
    ]
    session = FakeSession(
        [
            {"status": "OK", "results": page1, "next_page_token": "T1"},
            {"status": "OK", "results": page2},
        ]
    )
    http_client = HttpClient(api_key="dummy", retry_max=1, sleep=lambda s: None)
    http_client.session = session
    metrics = RequestMetrics()
    client = PlacesClient(http_client, sleep=lambda s: None, metrics=metrics)

    merged = aggregate_by_categories(client, ORIGIN, [SearchCategory.BAR], 1000)

    assert len(merged) == 24
    assert len({p.id for p in merged}) == 24
    assert metrics.network_nearby == 2
    assert session.calls[0]["type"] == "bar"

    filtered = within_radius(merged, ORIGIN, 1000)

    # q3 (~1.3 km) and q4 (~2.2 km) lie outside the circle.
    assert len(filtered) == 22
    assert {"q3", "q4"}.isdisjoint(p.id for p in filtered)
    assert all(distance_meters(ORIGIN, p.location) <= 1000 for p in filtered)
