"""
test_regions.py
Exterior / hole classification of a part's polygons.
"""
from nestprep.utils.geometry import signed_area
from nestprep.utils.regions import Shape, classify_polygons

OUTER = [(0, 0), (10, 0), (10, 10), (0, 10)]  # area 100, counter-clockwise
SECOND = [(20, 0), (30, 0), (30, 5), (20, 5)]  # area 50, counter-clockwise
HOLE = [(2, 2), (2, 4), (4, 4), (4, 2)]  # clockwise


def test_empty_input_gives_empty_shape():
    shape = classify_polygons([])
    assert isinstance(shape, Shape)
    assert shape.exterior == []
    assert shape.holes == []
    assert shape.bounding_box["width"] == 0


def test_largest_ccw_polygon_is_exterior():
    shape = classify_polygons([SECOND, OUTER])
    assert shape.exterior == OUTER
    assert shape.holes == []
    assert shape.bounding_box["width"] == 10


def test_clockwise_polygons_become_ccw_holes():
    shape = classify_polygons([HOLE, OUTER])
    assert shape.exterior == OUTER
    assert len(shape.holes) == 1
    assert shape.holes[0] == list(reversed(HOLE))
    assert signed_area(shape.holes[0]) > 0


def test_single_clockwise_polygon_is_reversed_into_exterior():
    shape = classify_polygons([list(reversed(OUTER))])
    assert signed_area(shape.exterior) > 0
    assert shape.holes == []


def test_no_ccw_polygon_leaves_exterior_empty():
    shape = classify_polygons([HOLE, list(reversed(OUTER))])
    assert shape.exterior == []
    assert len(shape.holes) == 2
