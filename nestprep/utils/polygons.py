# polygons.py
# Contour -> closed polygon: discretize, join, close, subdivide long edges.
# Also the serialization-time cleanup sweep and the polygon acceptance gate.

import logging
import math

from shapely.errors import GEOSException
from shapely.geometry import Polygon
from shapely.validation import explain_validity

from nestprep.utils.discretize import entity_points
from nestprep.utils.geometry import JOIN_TOLERANCE, bounding_box, distance, ensure_ccw

MAX_EDGE_LENGTH = 20.0
COORD_DECIMALS = 6
SNAP_EPSILON = 1e-6
MIN_EXTENT = 0.1


def contour_points(contour, arc_segments=32, spline_segments=100):
    """Concatenate member entity samples, skipping a join point that repeats the previous one."""
    points = []
    for entity in contour.entities:
        for index, pt in enumerate(entity_points(entity, arc_segments, spline_segments)):
            if index == 0 and points and distance(points[-1], pt) < JOIN_TOLERANCE:
                continue
            points.append(pt)
    return points


def close_polygon(points):
    """Make first == last. A gap above the join tolerance gets a closing copy, a smaller one is snapped."""
    if not points:
        return points
    points = list(points)
    gap = distance(points[0], points[-1])
    if gap > JOIN_TOLERANCE:
        points.append(points[0])
    elif gap > 0 and len(points) > 1:
        points[-1] = points[0]
    return points


def subdivide_edges(points, max_length=MAX_EDGE_LENGTH):
    """Split every edge (wraparound included) longer than max_length into equal pieces."""
    if not points or len(points) < 2:
        return points
    subdivided = []
    n = len(points)
    for i in range(n):
        p1 = points[i]
        p2 = points[(i + 1) % n]
        subdivided.append(p1)
        length = distance(p1, p2)
        if length > max_length + 1e-9:
            pieces = math.ceil(length / max_length)
            for j in range(1, pieces):
                t = j / pieces
                subdivided.append((p1[0] + t * (p2[0] - p1[0]), p1[1] + t * (p2[1] - p1[1])))
    return subdivided


def normalize_points(points, max_length=MAX_EDGE_LENGTH):
    closed = close_polygon(points)
    subdivided = subdivide_edges(closed, max_length)
    if len(subdivided) != len(closed):
        logging.debug(f"Subdivided polygon: {len(closed)} -> {len(subdivided)} points")
    return subdivided


def contour_to_polygon(contour, arc_segments=32, spline_segments=100, max_length=MAX_EDGE_LENGTH):
    return normalize_points(contour_points(contour, arc_segments, spline_segments), max_length)


def clean_coordinate(value):
    rounded = round(float(value), COORD_DECIMALS)
    if abs(rounded) < SNAP_EPSILON:
        return 0.0
    return rounded


def clean_polygon(points):
    """Round, drop consecutive near-duplicates, then make counter-clockwise."""
    cleaned = []
    for x, y in points:
        pt = (clean_coordinate(x), clean_coordinate(y))
        if cleaned and distance(cleaned[-1], pt) < JOIN_TOLERANCE:
            continue
        cleaned.append(pt)
    if len(cleaned) != len(points):
        logging.debug(f"Removed {len(points) - len(cleaned)} duplicate consecutive points")
    return ensure_ccw(cleaned)


def _validity_warning(points):
    try:
        ring = Polygon(points)
        if ring.is_valid:
            return None
        return f"Polygon is not simple: {explain_validity(ring)}"
    except (ValueError, GEOSException) as e:
        return f"Polygon could not be checked for validity: {e}"


def check_polygon(points):
    """Acceptance gate. Returns (errors, warnings); any error rejects the polygon."""
    errors = []
    warnings = []
    if not points:
        errors.append("Polygon has no points")
        return errors, warnings
    if len(points) < 3:
        errors.append(f"Polygon has less than 3 points ({len(points)})")
        return errors, warnings

    duplicates = sum(1 for i in range(1, len(points)) if distance(points[i - 1], points[i]) < JOIN_TOLERANCE)
    if duplicates:
        warnings.append(f"Found {duplicates} duplicate consecutive point(s) - this may cause nesting issues")

    near_origin = sum(1 for p in points if math.hypot(p[0], p[1]) < JOIN_TOLERANCE)
    if near_origin > 1:
        warnings.append(f"Found {near_origin} points near origin [0,0] - may indicate conversion artifacts")

    bbox = bounding_box(points)
    if bbox["width"] < MIN_EXTENT or bbox["height"] < MIN_EXTENT:
        warnings.append(f"Polygon is very small ({bbox['width']:.3f}mm x {bbox['height']:.3f}mm) - may be degenerate")

    validity = _validity_warning(points)
    if validity:
        warnings.append(validity)
    return errors, warnings
