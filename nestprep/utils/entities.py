# entities.py
# Canonical CAD entities and normalisation of raw parsed records into them.
# Raw records follow the dxf-parser shape (type, handle, layer, vertices, center, radius,
# startAngle, endAngle, controlPoints, fitPoints, degree, shape/closed); dxf_reader builds
# the same shape from ezdxf documents.

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from nestprep.utils.geometry import point

Point = Tuple[float, float]

SUPPORTED_TYPES = ("LINE", "ARC", "CIRCLE", "POLYLINE", "SPLINE")
RECORD_TYPES = {
    "LINE": "LINE",
    "ARC": "ARC",
    "CIRCLE": "CIRCLE",
    "LWPOLYLINE": "POLYLINE",
    "POLYLINE": "POLYLINE",
    "SPLINE": "SPLINE",
}
DEFAULT_LAYER = "0"


@dataclass
class Line:
    id: str
    layer: str
    vertices: List[Point]
    type: str = field(default="LINE", init=False)

    def __post_init__(self):
        if len(self.vertices) != 2:
            raise ValueError(f"LINE {self.id} must have exactly 2 vertices, got {len(self.vertices)}")


@dataclass
class Polyline:
    id: str
    layer: str
    vertices: List[Point]
    closed: bool = False
    # ARC/CIRCLE/SPLINE when the polyline is a sampled stand-in for that primitive (editing path)
    source_type: Optional[str] = None
    type: str = field(default="POLYLINE", init=False)


@dataclass
class Circle:
    id: str
    layer: str
    center: Point
    radius: float
    type: str = field(default="CIRCLE", init=False)


@dataclass
class Arc:
    id: str
    layer: str
    center: Point
    radius: float
    start_angle: float  # degrees
    end_angle: float  # degrees
    reversed: bool = False  # traverse end -> start when sampled
    type: str = field(default="ARC", init=False)


@dataclass
class Spline:
    id: str
    layer: str
    control_points: List[Point]
    fit_points: List[Point] = field(default_factory=list)
    degree: int = 3
    closed: bool = False
    type: str = field(default="SPLINE", init=False)


def _points(values):
    return [point(v) for v in values or []]


def _record_id(record, entity_type, index):
    ident = record.get("id")
    if ident is None:
        ident = record.get("handle")
    return str(ident) if ident is not None else f"{entity_type}-{index}"


def normalize_record(record, index=0):
    """Turn one raw record into a canonical entity. Returns None for unsupported types."""
    raw_type = str(record.get("type", "")).upper()
    entity_type = RECORD_TYPES.get(raw_type)
    if entity_type is None:
        return None
    entity_id = _record_id(record, entity_type, index)
    layer = str(record.get("layer") or DEFAULT_LAYER)

    if entity_type == "LINE":
        return Line(entity_id, layer, _points(record.get("vertices")))
    if entity_type == "POLYLINE":
        vertices = _points(record.get("vertices"))
        if not vertices:
            raise ValueError(f"{raw_type} {entity_id} has no vertices")
        closed = bool(record.get("closed") or record.get("shape"))
        return Polyline(entity_id, layer, vertices, closed=closed, source_type=record.get("sourceType"))
    if entity_type == "CIRCLE":
        radius = float(record["radius"])
        if radius <= 0:
            raise ValueError(f"CIRCLE {entity_id} has non-positive radius {radius}")
        return Circle(entity_id, layer, point(record["center"]), radius)
    if entity_type == "ARC":
        radius = float(record["radius"])
        if radius <= 0:
            raise ValueError(f"ARC {entity_id} has non-positive radius {radius}")
        return Arc(entity_id, layer, point(record["center"]), radius,
                   float(record.get("startAngle", 0.0)), float(record.get("endAngle", 360.0)))
    control_points = _points(record.get("controlPoints"))
    fit_points = _points(record.get("fitPoints"))
    if not control_points and not fit_points:
        raise ValueError(f"SPLINE {entity_id} has neither control nor fit points")
    return Spline(entity_id, layer, control_points, fit_points,
                  degree=int(record.get("degree") or 3), closed=bool(record.get("closed")))


def extract_entities(records):
    """Normalise raw records; returns (entities, warnings). Unsupported types are skipped with a warning."""
    entities = []
    warnings = []
    unsupported = Counter()
    for index, record in enumerate(records or []):
        try:
            entity = normalize_record(record, index)
        except (KeyError, TypeError, ValueError) as e:
            logging.warning(f"Skipping malformed {record.get('type')} record {index}: {e}")
            warnings.append(f"Skipped malformed {record.get('type')} entity: {e}")
            continue
        if entity is None:
            unsupported[str(record.get("type", "UNKNOWN")).upper()] += 1
            continue
        entities.append(entity)

    if unsupported:
        types = ", ".join(sorted(unsupported))
        warnings.append(f"Unsupported entity types found (will be ignored): {types}")
        warnings.append(f"{sum(unsupported.values())} unsupported entities will be skipped")
        logging.info(f"Unsupported entity counts: {dict(unsupported)}")
    logging.debug(f"Extracted {len(entities)} entities from {len(records or [])} records")
    return entities, warnings


def to_record(entity):
    """Inverse of normalize_record, used by the HTTP surface."""
    record = {"id": entity.id, "type": entity.type, "layer": entity.layer}
    if entity.type in ("LINE", "POLYLINE"):
        record["vertices"] = [{"x": x, "y": y} for x, y in entity.vertices]
        if entity.type == "POLYLINE":
            record["closed"] = entity.closed
            if entity.source_type:
                record["sourceType"] = entity.source_type
    elif entity.type == "CIRCLE":
        record["center"] = {"x": entity.center[0], "y": entity.center[1]}
        record["radius"] = entity.radius
    elif entity.type == "ARC":
        record["center"] = {"x": entity.center[0], "y": entity.center[1]}
        record["radius"] = entity.radius
        record["startAngle"] = entity.start_angle
        record["endAngle"] = entity.end_angle
    elif entity.type == "SPLINE":
        record["controlPoints"] = [{"x": x, "y": y} for x, y in entity.control_points]
        record["fitPoints"] = [{"x": x, "y": y} for x, y in entity.fit_points]
        record["degree"] = entity.degree
        record["closed"] = entity.closed
    return record


def entity_stats(entities):
    """Counts by type and layer, used for conversion stats and logging."""
    return {
        "total": len(entities),
        "by_type": dict(Counter(e.type for e in entities)),
        "by_layer": dict(Counter(e.layer for e in entities)),
    }
