# contours.py
# Groups connected entities into contours by greedy endpoint chaining.

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from nestprep.utils.discretize import endpoints, entity_points
from nestprep.utils.geometry import JOIN_TOLERANCE, bounding_box, distance

DEFAULT_TOLERANCE = 0.5


@dataclass
class Contour:
    entities: List = field(default_factory=list)
    closed: bool = False
    single: bool = False
    bounding_box: dict = field(default_factory=dict)
    warning: Optional[str] = None


def is_closed_entity(entity):
    if entity.type == "CIRCLE":
        return True
    if entity.type == "SPLINE":
        return entity.closed
    if entity.type == "POLYLINE":
        if entity.closed:
            return True
        vertices = entity.vertices
        return len(vertices) >= 3 and distance(vertices[0], vertices[-1]) < JOIN_TOLERANCE
    return False


def reverse_entity(entity):
    """Copy of the entity traversed in the opposite direction."""
    if entity.type in ("LINE", "POLYLINE"):
        return dataclasses.replace(entity, vertices=list(reversed(entity.vertices)))
    if entity.type == "ARC":
        return dataclasses.replace(entity, reversed=not entity.reversed)
    if entity.type == "SPLINE":
        return dataclasses.replace(
            entity,
            control_points=list(reversed(entity.control_points)),
            fit_points=list(reversed(entity.fit_points)),
        )
    logging.warning(f"Cannot reverse entity type {entity.type}")
    return entity


def _contour_bounds(entities, arc_segments, spline_segments):
    points = []
    for entity in entities:
        points.extend(entity_points(entity, arc_segments, spline_segments))
    return bounding_box(points)


def build_contours(entities, tolerance=DEFAULT_TOLERANCE, auto_close=True,
                   arc_segments=32, spline_segments=100):
    """
    Chain entities into contours.

    Self-closed entities become singleton contours first. Remaining entities are chained
    greedily: the candidate whose start or end is nearest the open end (strictly within
    tolerance) is appended, reversed when it matched at its end. Ties go to the lowest
    index, forward orientation before reversed.
    """
    contours = []
    used = set()

    for index, entity in enumerate(entities):
        if is_closed_entity(entity):
            contours.append(Contour(
                entities=[entity], closed=True, single=True,
                bounding_box=_contour_bounds([entity], arc_segments, spline_segments),
            ))
            used.add(index)

    ends = [endpoints(e, arc_segments, spline_segments) for e in entities]
    logging.debug(f"Building contours from {len(entities) - len(used)} remaining entities")

    for i, seed in enumerate(entities):
        if i in used:
            continue
        chain = [seed]
        used.add(i)
        chain_start, current_end = ends[i]

        while True:
            best = None
            for j, candidate in enumerate(entities):
                if j in used:
                    continue
                start, end = ends[j]
                for dist, flip in ((distance(current_end, start), False), (distance(current_end, end), True)):
                    if dist < tolerance and (best is None or dist < best[0]):
                        best = (dist, j, flip)
            if best is None:
                break
            dist, j, flip = best
            used.add(j)
            if flip:
                chain.append(reverse_entity(entities[j]))
                current_end = ends[j][0]
            else:
                chain.append(entities[j])
                current_end = ends[j][1]
            logging.debug(f"Connected entity {j} ({entities[j].type}) {'reversed' if flip else 'forward'}, "
                         f"distance: {dist:.3f}")

        gap = distance(chain_start, current_end)
        is_closed = gap < tolerance
        logging.debug(f"Contour completed: {len(chain)} entities, closing distance: {gap:.3f}, closed: {is_closed}")
        contours.append(Contour(
            entities=chain,
            closed=is_closed or auto_close,
            single=False,
            bounding_box=_contour_bounds(chain, arc_segments, spline_segments),
            warning="Open contour detected" if not is_closed and not auto_close else None,
        ))

    logging.info(f"Built {len(contours)} contours from {len(entities)} entities")
    return contours


def validate_contours(contours):
    """Returns (errors, warnings) for a contour set."""
    errors = []
    warnings = []
    if not contours:
        errors.append("No contours found")
        return errors, warnings
    for index, contour in enumerate(contours):
        if not contour.entities:
            errors.append(f"Contour {index}: No entities")
            continue
        if not contour.closed:
            warnings.append(f"Contour {index}: Open contour (not closed)")
        if len(contour.entities) < 3 and not contour.single:
            warnings.append(f"Contour {index}: Only {len(contour.entities)} entities")
    return errors, warnings
