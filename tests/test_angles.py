# tests/test_angles.py
from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from astrochart.core.angles import (
    ZodiacPlacement,
    circular_midpoint,
    element_of,
    map_longitude,
    normalize,
    quality_of,
    ruler_of,
    separation,
    signed_delta,
)

finite = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)


@given(finite)
def test_normalize_range_and_idempotent(x):
    v = normalize(x)
    assert 0.0 <= v < 360.0
    assert normalize(v) == v


@given(finite, finite)
def test_separation_symmetric_and_bounded(a, b):
    s = separation(a, b)
    assert 0.0 <= s <= 180.0
    assert s == pytest.approx(separation(b, a), abs=1e-9)


def test_separation_wraps_zero():
    assert separation(350.0, 10.0) == pytest.approx(20.0)
    assert separation(0.0, 180.0) == pytest.approx(180.0)
    assert separation(-30.0, 330.0) == pytest.approx(0.0)


def test_signed_delta_direction():
    assert signed_delta(350.0, 10.0) == pytest.approx(20.0)
    assert signed_delta(10.0, 350.0) == pytest.approx(-20.0)
    assert signed_delta(0.0, 180.0) == pytest.approx(-180.0)


@pytest.mark.parametrize("a,b,mid", [
    (350.0, 10.0, 0.0),
    (10.0, 350.0, 0.0),
    (0.0, 90.0, 45.0),
    (90.0, 0.0, 45.0),
    (100.0, 100.0, 100.0),
])
def test_circular_midpoint_examples(a, b, mid):
    assert separation(circular_midpoint(a, b), mid) == pytest.approx(0.0, abs=1e-9)


@given(finite, finite)
def test_circular_midpoint_is_equidistant(a, b):
    m = circular_midpoint(a, b)
    assert separation(m, a) == pytest.approx(separation(m, b), abs=1e-6)


@pytest.mark.parametrize("lon,expected", [
    (0.0, -0.0), (179.9, 179.9), (180.0, -180.0), (190.0, -170.0), (359.0, -1.0), (-10.0, -10.0),
])
def test_map_longitude(lon, expected):
    assert map_longitude(lon) == pytest.approx(expected)
    assert -180.0 <= map_longitude(lon) < 180.0


@pytest.mark.parametrize("lon,sign,deg", [
    (0.0, "Aries", 0.0),
    (29.999, "Aries", 29.999),
    (30.0, "Taurus", 0.0),
    (142.5, "Leo", 22.5),
    (359.5, "Pisces", 29.5),
    (-0.5, "Pisces", 29.5),
    (720.0, "Aries", 0.0),
])
def test_zodiac_placement_from_longitude(lon, sign, deg):
    p = ZodiacPlacement.from_longitude(lon)
    assert p.sign == sign
    assert p.degrees == pytest.approx(deg, abs=1e-9)


@given(finite)
def test_zodiac_placement_round_trips_longitude(x):
    p = ZodiacPlacement.from_longitude(x)
    assert 0.0 <= p.degrees < 30.0
    assert separation(p.longitude, normalize(x)) < 1e-9


def test_zodiac_placement_as_dict_rounds():
    d = ZodiacPlacement.from_longitude(142.123456789).as_dict()
    assert d == {"sign": "Leo", "degrees": 22.1235, "longitude": 142.123457}


def test_sign_tables():
    assert element_of("Leo") == "Fire"
    assert element_of("Cancer") == "Water"
    assert quality_of("Scorpio") == "Fixed"
    assert quality_of("Capricorn") == "Cardinal"
    assert quality_of("Pisces") == "Mutable"
    assert ruler_of("Scorpio") == "Pluto"
    assert ruler_of("Leo") == "Sun"
    assert ZodiacPlacement.from_longitude(200.0).element == "Air"
