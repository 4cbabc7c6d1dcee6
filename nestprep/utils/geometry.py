# geometry.py
# Small planar helpers shared by every pipeline stage.

import math

JOIN_TOLERANCE = 0.01  # join/closure/dedup distance used by the polygon stages


def point(value):
    """Coerce {x, y} dicts, sequences and ezdxf vectors into an (x, y) float tuple."""
    if isinstance(value, dict):
        return float(value["x"]), float(value["y"])
    if hasattr(value, "x") and hasattr(value, "y"):
        return float(value.x), float(value.y)
    return float(value[0]), float(value[1])


def distance(p1, p2):
    if p1 is None or p2 is None:
        return math.inf
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def points_match(p1, p2, tol=JOIN_TOLERANCE):
    return distance(p1, p2) < tol


def path_length(points, closed=False):
    length = sum(distance(points[i - 1], points[i]) for i in range(1, len(points)))
    if closed and len(points) > 2:
        length += distance(points[-1], points[0])
    return length


def signed_area(points):
    """Shoelace area over wraparound indices; positive means counter-clockwise."""
    if not points or len(points) < 3:
        return 0.0
    n = len(points)
    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += points[i][0] * points[j][1]
        area -= points[j][0] * points[i][1]
    return area / 2


def ensure_ccw(points):
    if not points or len(points) < 3:
        return points
    if signed_area(points) < 0:
        return list(reversed(points))
    return points


def bounding_box(points):
    if not points:
        return {"min_x": 0.0, "min_y": 0.0, "max_x": 0.0, "max_y": 0.0, "width": 0.0, "height": 0.0}
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    min_x, max_x, min_y, max_y = min(xs), max(xs), min(ys), max(ys)
    return {
        "min_x": min_x, "min_y": min_y, "max_x": max_x, "max_y": max_y,
        "width": max_x - min_x, "height": max_y - min_y,
    }


def filter_duplicate_points(points, tol=1e-4):
    """Drop consecutive points closer than tol to the last kept point."""
    if not points:
        return []
    filtered = [points[0]]
    for current in points[1:]:
        if distance(filtered[-1], current) >= tol:
            filtered.append(current)
    return filtered
