# fitting.py
# Recovers circle / arc parameters from sampled polyline vertices.
# Fitting failures return None; callers fall back to the raw polyline.

import logging
import math

from nestprep.utils.geometry import distance, points_match

EPSILON = 1e-10


def circle_center(p1, p2, p3):
    """Intersection of the perpendicular bisectors of p1-p2 and p2-p3, or None."""
    mid1 = ((p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2)
    mid2 = ((p2[0] + p3[0]) / 2, (p2[1] + p3[1]) / 2)
    dx1, dy1 = p2[0] - p1[0], p2[1] - p1[1]
    dx2, dy2 = p3[0] - p2[0], p3[1] - p2[1]

    if abs(dx1) < EPSILON or abs(dx2) < EPSILON:
        return None
    # horizontal chord: the bisector is vertical and has no finite slope
    if abs(dy1) < EPSILON or abs(dy2) < EPSILON:
        return None

    slope1 = -dx1 / dy1
    slope2 = -dx2 / dy2
    if abs(slope1 - slope2) < EPSILON:
        return None

    x = (mid2[1] - mid1[1] + slope1 * mid1[0] - slope2 * mid2[0]) / (slope1 - slope2)
    y = mid1[1] + slope1 * (x - mid1[0])
    return x, y


def fit_circle(vertices):
    """Returns {"center", "radius"} or None. Radius is the mean distance of all vertices."""
    vertices = list(vertices or [])
    # a closing copy of the first vertex would skew the 1/3 sample positions
    if len(vertices) > 3 and points_match(vertices[0], vertices[-1], EPSILON):
        vertices = vertices[:-1]
    n = len(vertices)
    if n < 3:
        return None
    center = circle_center(vertices[0], vertices[n // 3], vertices[(2 * n) // 3])
    if center is None:
        logging.debug(f"Circle fit failed for {n} vertices")
        return None
    radius = sum(distance(v, center) for v in vertices) / n
    return {"center": center, "radius": radius}


def fit_arc(vertices):
    """Returns {"center", "radius", "start_angle", "end_angle"} (radians) or None."""
    vertices = list(vertices or [])
    n = len(vertices)
    if n < 3:
        return None
    first, middle, last = vertices[0], vertices[n // 2], vertices[-1]
    center = circle_center(first, middle, last)
    if center is None:
        logging.debug(f"Arc fit failed for {n} vertices")
        return None
    return {
        "center": center,
        "radius": distance(first, center),
        "start_angle": math.atan2(first[1] - center[1], first[0] - center[0]),
        "end_angle": math.atan2(last[1] - center[1], last[0] - center[0]),
    }
