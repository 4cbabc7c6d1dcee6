# regions.py
# Picks one exterior and the holes of a part from its normalized polygons.

import logging
from dataclasses import dataclass, field
from typing import List

from nestprep.utils.geometry import bounding_box, ensure_ccw, signed_area


@dataclass
class Shape:
    exterior: List = field(default_factory=list)
    holes: List = field(default_factory=list)
    bounding_box: dict = field(default_factory=dict)


def classify_polygons(polygons):
    """
    Exterior = largest |area| counter-clockwise polygon; clockwise polygons become holes
    (reversed to CCW). Other CCW polygons are discarded. A lone polygon is always the exterior.
    """
    if not polygons:
        return Shape(bounding_box=bounding_box([]))

    if len(polygons) == 1:
        exterior = ensure_ccw(list(polygons[0]))
        return Shape(exterior=exterior, holes=[], bounding_box=bounding_box(exterior))

    candidates = []
    holes = []
    for polygon in polygons:
        area = signed_area(polygon)
        if area > 0:
            candidates.append((area, polygon))
        elif area < 0:
            holes.append(list(reversed(polygon)))

    candidates.sort(key=lambda item: abs(item[0]), reverse=True)
    exterior = list(candidates[0][1]) if candidates else []
    if len(candidates) > 1:
        logging.info(f"Discarding {len(candidates) - 1} additional counter-clockwise polygon(s)")
    if not candidates:
        logging.warning("No counter-clockwise polygon found; exterior is empty")
    return Shape(exterior=exterior, holes=holes, bounding_box=bounding_box(exterior))
