# discretize.py
# Samples ARC / CIRCLE / SPLINE entities into ordered point lists.

import logging
import math

from nestprep.utils.entities import Polyline
from nestprep.utils.geometry import distance, filter_duplicate_points, path_length

ORIGIN_TOLERANCE = 0.01  # points this close to (0, 0) are coordinate-frame artifacts
SPLINE_DEDUP_TOLERANCE = 1e-4
OUTPUT_DEDUP_TOLERANCE = 0.01


def _check_segments(segments):
    if segments is None or int(segments) < 1:
        raise ValueError(f"Segment count must be at least 1, got {segments}")
    return int(segments)


def arc_points(center, radius, start_angle, end_angle, segments=32, reversed_=False):
    """N+1 points from start to end angle (degrees), counter-clockwise across 0 deg if needed."""
    segments = _check_segments(segments)
    start = math.radians(start_angle)
    end = math.radians(end_angle)
    sweep = end - start
    if sweep < 0:
        sweep += 2 * math.pi
    step = sweep / segments
    points = [
        (center[0] + radius * math.cos(start + step * i), center[1] + radius * math.sin(start + step * i))
        for i in range(segments + 1)
    ]
    if reversed_:
        points.reverse()
    return points


def circle_points(center, radius, segments=32):
    """N points counter-clockwise from angle 0, plus a closing copy of the first."""
    segments = _check_segments(segments)
    step = 2 * math.pi / segments
    points = [
        (center[0] + radius * math.cos(step * i), center[1] + radius * math.sin(step * i))
        for i in range(segments)
    ]
    points.append(points[0])
    return points


def _catmull_rom(p0, p1, p2, p3, t):
    t2 = t * t
    t3 = t2 * t
    return tuple(
        0.5 * (2 * p1[k] + (-p0[k] + p2[k]) * t
               + (2 * p0[k] - 5 * p1[k] + 4 * p2[k] - p3[k]) * t2
               + (-p0[k] + 3 * p1[k] - 3 * p2[k] + p3[k]) * t3)
        for k in (0, 1)
    )


def _filter_spline_source(points, label, entity_id):
    kept = [p for p in points if math.hypot(p[0], p[1]) >= ORIGIN_TOLERANCE]
    if len(kept) != len(points):
        logging.debug(f"SPLINE {entity_id}: removed {len(points) - len(kept)} {label} near origin")
    return filter_duplicate_points(kept, SPLINE_DEDUP_TOLERANCE)


def spline_points(spline, segments=100):
    """Sample a spline. Fit points (when any survive filtering) are preferred over control points."""
    segments = _check_segments(segments)
    source = _filter_spline_source(list(spline.fit_points or []), "fit points", spline.id)
    if not source:
        source = _filter_spline_source(list(spline.control_points or []), "control points", spline.id)
    if not source:
        logging.warning(f"SPLINE {spline.id} has no valid points after filtering")
        return []

    if spline.degree <= 1 or len(source) <= 2:
        return list(source)

    n = len(source)
    per_window = math.ceil(segments / (n - 1))
    points = []
    for i in range(n - 1):
        p0 = source[max(0, i - 1)]
        p1 = source[i]
        p2 = source[i + 1]
        p3 = source[min(n - 1, i + 2)]
        for j in range(per_window):
            points.append(_catmull_rom(p0, p1, p2, p3, j / per_window))
    points.append(source[-1])

    filtered = filter_duplicate_points(points, OUTPUT_DEDUP_TOLERANCE)
    if len(filtered) != len(points):
        logging.debug(f"SPLINE {spline.id}: filtered output {len(points)} -> {len(filtered)} points")
    return filtered


def entity_points(entity, arc_segments=32, spline_segments=100):
    """Ordered points for any entity. Closed polylines do not repeat their first vertex."""
    kind = entity.type
    if kind in ("LINE", "POLYLINE"):
        return list(entity.vertices)
    if kind == "ARC":
        return arc_points(entity.center, entity.radius, entity.start_angle, entity.end_angle,
                          arc_segments, reversed_=entity.reversed)
    if kind == "CIRCLE":
        return circle_points(entity.center, entity.radius, arc_segments)
    if kind == "SPLINE":
        return spline_points(entity, spline_segments)
    raise ValueError(f"Unknown entity type: {kind}")


def start_point(entity, arc_segments=32, spline_segments=100):
    points = entity_points(entity, arc_segments, spline_segments)
    return points[0] if points else None


def end_point(entity, arc_segments=32, spline_segments=100):
    points = entity_points(entity, arc_segments, spline_segments)
    return points[-1] if points else None


def endpoints(entity, arc_segments=32, spline_segments=100):
    points = entity_points(entity, arc_segments, spline_segments)
    if not points:
        return None, None
    return points[0], points[-1]


def entity_length(entity, spline_segments=100):
    """Curve length: analytic for ARC/CIRCLE, polyline length otherwise."""
    kind = entity.type
    if kind == "LINE":
        return distance(entity.vertices[0], entity.vertices[1])
    if kind == "POLYLINE":
        return path_length(entity.vertices, closed=entity.closed)
    if kind == "CIRCLE":
        return 2 * math.pi * entity.radius
    if kind == "ARC":
        sweep = entity.end_angle - entity.start_angle
        if sweep < 0:
            sweep += 360
        return math.radians(sweep) * entity.radius
    if kind == "SPLINE":
        return path_length(spline_points(entity, spline_segments), closed=entity.closed)
    raise ValueError(f"Unknown entity type: {kind}")


def to_editable(entity, arc_segments=32, spline_segments=100):
    """Curves as sampled polylines tagged with their source type; LINE/POLYLINE pass through."""
    if entity.type in ("LINE", "POLYLINE"):
        return entity
    points = entity_points(entity, arc_segments, spline_segments)
    closed = entity.type == "CIRCLE" or (entity.type == "SPLINE" and entity.closed)
    return Polyline(entity.id, entity.layer, points, closed=closed, source_type=entity.type)
