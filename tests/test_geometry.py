"""Tests for rectangle predicates and conversions."""

from __future__ import annotations

import numpy as np
import pytest

from statement_grid.geometry_utils import (
    Rect,
    attaches_to,
    bounding_rect,
    boxes_to_array,
    center_inside,
    centers_inside,
    contains,
    intersection,
    intersects,
    overlap_ratio,
    to_pixels,
    to_unit,
)

TABLE = Rect(100.0, 100.0, 500.0, 500.0)


@pytest.mark.smoke
class TestPredicates:
    def test_contains_with_tolerance(self):
        assert contains(TABLE, Rect(150, 150, 50, 50))
        assert contains(TABLE, Rect(99.5, 100, 50, 50), eps=0.75)
        assert not contains(TABLE, Rect(98, 100, 50, 50), eps=0.75)

    def test_intersects_touching_edges(self):
        assert intersects(TABLE, Rect(600.5, 100, 10, 10), eps=0.75)
        assert not intersects(TABLE, Rect(602, 100, 10, 10), eps=0.75)

    def test_intersection(self):
        assert intersection(TABLE, Rect(550, 550, 100, 100)) == Rect(550, 550, 50, 50)
        assert intersection(TABLE, Rect(0, 0, 50, 50)) is None
        # shared edge has no area
        assert intersection(TABLE, Rect(600, 100, 10, 10)) is None

    def test_overlap_ratio(self):
        assert overlap_ratio(TABLE, Rect(560, 100, 100, 500)) == pytest.approx(0.4)
        assert overlap_ratio(TABLE, Rect(0, 0, 10, 10)) == 0.0
        assert overlap_ratio(TABLE, Rect(150, 150, 0, 10)) == 0.0

    def test_attachment_by_center_or_overlap(self):
        inside = Rect(110, 120, 30, 30)
        straddling = Rect(560, 100, 100, 500)
        barely = Rect(580, 100, 100, 500)
        assert attaches_to(TABLE, inside, 0.35)
        assert not center_inside(TABLE, straddling)
        assert attaches_to(TABLE, straddling, 0.35)
        assert not attaches_to(TABLE, barely, 0.35)


@pytest.mark.smoke
def test_bounding_rect():
    assert bounding_rect([]) is None
    rects = [Rect(10, 20, 5, 5), Rect(0, 30, 40, 10)]
    assert bounding_rect(rects) == Rect(0, 20, 40, 20)


@pytest.mark.smoke
def test_unit_pixel_conversion():
    unit = Rect(0.1, 0.2, 0.5, 0.25)
    px = to_pixels(unit, 800, 400)
    assert px == pytest.approx(Rect(80, 80, 400, 100))
    back = to_unit(px, 800, 400)
    assert back == pytest.approx(unit)
    with pytest.raises(ValueError):
        to_unit(px, 0, 400)


@pytest.mark.smoke
def test_centers_inside_mask():
    boxes = boxes_to_array([Rect(0, 0, 10, 10), Rect(200, 200, 10, 10), Rect(95, 95, 10, 10)])
    mask = centers_inside(boxes, Rect(0, 0, 100, 100))
    assert mask.tolist() == [True, False, True]
    assert centers_inside(boxes_to_array([]), Rect(0, 0, 1, 1)).shape == (0,)
    assert boxes.dtype == np.float64
