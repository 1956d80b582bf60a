import math

import pytest

from venue_finder.geo import distance_meters, haversine_km, km_to_meters, zoom_level_for_span
from venue_finder.models import GeoPoint


SAO_PAULO = GeoPoint(-23.5505, -46.6333)
RIO = GeoPoint(-22.9068, -43.1729)


def test_distance_to_self_is_zero():
    assert distance_meters(SAO_PAULO, SAO_PAULO) == 0.0


def test_distance_is_symmetric():
    assert distance_meters(SAO_PAULO, RIO) == pytest.approx(distance_meters(RIO, SAO_PAULO))


def test_one_degree_of_latitude():
    a = GeoPoint(0.0, 0.0)
    b = GeoPoint(1.0, 0.0)
    assert distance_meters(a, b) == pytest.approx(2 * math.pi * 6371000 / 360, rel=1e-9)


def test_sao_paulo_to_rio():
    assert haversine_km(SAO_PAULO.latitude, SAO_PAULO.longitude, RIO.latitude, RIO.longitude) == pytest.approx(
        361.0, abs=5.0
    )


def test_nan_input_propagates():
    assert math.isnan(distance_meters(GeoPoint(float("nan"), 0.0), SAO_PAULO))


def test_km_to_meters_rounds_and_clamps():
    assert km_to_meters(0.5) == 500
    assert km_to_meters(1.25) == 1250
    assert km_to_meters(-3) == 0


def test_zoom_level_for_span():
    assert zoom_level_for_span(0.01) == 15
    assert zoom_level_for_span(360.0) == 1
    assert zoom_level_for_span(1000.0) == 1
    with pytest.raises(ValueError):
        zoom_level_for_span(0)
