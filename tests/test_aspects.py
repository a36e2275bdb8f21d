# tests/test_aspects.py
from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from astrochart.core.angles import ZodiacPlacement
from astrochart.core.aspects import (
    NATAL_ASPECTS,
    TRANSIT_ASPECTS,
    AspectSpec,
    find_aspects,
    find_cross_aspects,
    match_aspect,
    rank_aspects,
)

lon360 = st.floats(min_value=0.0, max_value=359.999, allow_nan=False)


def _body(name, lon):
    return (name, ZodiacPlacement.from_longitude(lon))


@pytest.mark.parametrize("sep,name", [
    (0.0, "conjunction"),
    (10.0, "conjunction"),
    (10.01, None),
    (54.0, "sextile"),
    (66.0, "sextile"),
    (82.0, "square"),
    (98.0, "square"),
    (120.0, "trine"),
    (150.0, None),
    (169.9, None),
    (170.0, "opposition"),
    (180.0, "opposition"),
])
def test_natal_windows_are_inclusive(sep, name):
    hit = match_aspect(sep, NATAL_ASPECTS)
    if name is None:
        assert hit is None
    else:
        spec, orb = hit
        assert spec.name == name
        assert orb == pytest.approx(abs(sep - spec.angle))


def test_transit_windows_are_tighter():
    assert match_aspect(4.9, TRANSIT_ASPECTS)[0].name == "conjunction"
    assert match_aspect(5.1, TRANSIT_ASPECTS) is None
    assert match_aspect(64.0, TRANSIT_ASPECTS)[0].name == "sextile"
    assert match_aspect(64.5, TRANSIT_ASPECTS) is None


def test_first_match_vs_closest_on_overlapping_catalog():
    catalog = (AspectSpec("wide", 0.0, 50.0), AspectSpec("narrow", 45.0, 10.0))
    assert match_aspect(40.0, catalog, "first")[0].name == "wide"
    spec, orb = match_aspect(40.0, catalog, "closest")
    assert spec.name == "narrow"
    assert orb == pytest.approx(5.0)


@given(lon360, lon360)
def test_aspects_are_symmetric(a, b):
    ab = find_aspects([_body("A", a), _body("B", b)])
    ba = find_aspects([_body("B", b), _body("A", a)])
    assert len(ab) == len(ba)
    if ab:
        assert ab[0].aspect == ba[0].aspect
        assert ab[0].orb == pytest.approx(ba[0].orb, abs=1e-9)
        assert 0.0 <= ab[0].orb <= 10.0


def test_find_aspects_visits_each_pair_once():
    bodies = [_body("Sun", 10.0), _body("Moon", 12.0), _body("Mars", 14.0)]
    recs = find_aspects(bodies)
    assert [(r.planet_a, r.planet_b) for r in recs] == [("Sun", "Moon"), ("Sun", "Mars"), ("Moon", "Mars")]
    assert all(r.aspect == "conjunction" for r in recs)


def test_find_cross_aspects_is_full_product():
    a = [_body("Sun", 0.0), _body("Moon", 90.0)]
    b = [_body("Sun", 0.0), _body("Moon", 90.0)]
    recs = find_cross_aspects(a, b)
    assert len(recs) == 4
    by_pair = {(r.planet_a, r.planet_b): r.aspect for r in recs}
    assert by_pair[("Sun", "Sun")] == "conjunction"
    assert by_pair[("Sun", "Moon")] == "square"
    assert by_pair[("Moon", "Sun")] == "square"


def test_separation_wraps_in_records():
    rec = find_aspects([_body("Sun", 355.0), _body("Moon", 3.0)])[0]
    assert rec.aspect == "conjunction"
    assert rec.separation == pytest.approx(8.0)
    assert rec.orb == pytest.approx(8.0)


def test_rank_aspects_orders_and_limits():
    bodies = [_body("Sun", 0.0), _body("Moon", 121.0), _body("Mars", 182.0), _body("Venus", 60.5)]
    ranked = rank_aspects(find_aspects(bodies), 2)
    assert len(ranked) == 2
    assert ranked[0].orb <= ranked[1].orb
    assert ranked[0].orb == pytest.approx(0.5)


def test_record_description_and_dict():
    rec = find_aspects([_body("Sun", 142.0), _body("Moon", 262.5)])[0]
    assert rec.description == "Sun in Leo forms a trine with Moon in Sagittarius"
    d = rec.as_dict()
    assert d["type"] == "trine"
    assert d["orb"] == 0.5
    assert d["exact_angle"] == 120.0
    assert rec.is_pair("Moon", "Sun")
    assert rec.involves("Sun") and not rec.involves("Mars")
