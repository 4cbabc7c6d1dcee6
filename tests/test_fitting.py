"""
test_fitting.py
Circle / arc parameter recovery from sampled vertices.
"""
import math

import pytest

from nestprep.utils.discretize import arc_points, circle_points
from nestprep.utils.fitting import circle_center, fit_arc, fit_circle


def test_circle_center_of_three_points():
    assert circle_center((1, 0), (0, 1), (-1, 0)) == pytest.approx((0, 0))


def test_fit_circle_recovers_sampled_circle():
    params = fit_circle(circle_points((10, 10), 5, 64))
    assert params["center"][0] == pytest.approx(10, abs=1e-3)
    assert params["center"][1] == pytest.approx(10, abs=1e-3)
    assert params["radius"] == pytest.approx(5, abs=1e-3)


def test_fit_circle_without_closing_copy():
    params = fit_circle(circle_points((-3, 4), 2, 25)[:-1])
    assert params["center"] == pytest.approx((-3, 4), abs=1e-6)
    assert params["radius"] == pytest.approx(2, abs=1e-6)


def test_fit_arc_recovers_quarter_arc():
    params = fit_arc(arc_points((0, 0), 10, 0, 90, 16))
    assert params["center"][0] == pytest.approx(0, abs=1e-6)
    assert params["center"][1] == pytest.approx(0, abs=1e-6)
    assert params["radius"] == pytest.approx(10)
    assert params["start_angle"] == pytest.approx(0, abs=1e-6)
    assert params["end_angle"] == pytest.approx(math.pi / 2)


@pytest.mark.parametrize("vertices", [
    None,
    [],
    [(0, 0), (1, 1)],
])
def test_too_few_vertices(vertices):
    assert fit_circle(vertices) is None
    assert fit_arc(vertices) is None


def test_collinear_points_do_not_fit():
    assert fit_circle([(0, 0), (1, 1), (2, 2)]) is None
    assert fit_arc([(0, 0), (1, 1), (2, 2)]) is None


def test_vertical_and_horizontal_chords_do_not_fit():
    assert circle_center((0, 0), (0, 5), (3, 7)) is None
    assert circle_center((0, 0), (5, 0), (7, 3)) is None
