# dxf_writer.py
# Writes canonical entities back to a DXF file with ezdxf, one layer per entity layer.
# Polylines that stand in for sampled arcs/circles are fitted back to true primitives.

import logging
import math

import ezdxf

from nestprep.utils.discretize import spline_points
from nestprep.utils.fitting import fit_arc, fit_circle
from nestprep.utils.geometry import signed_area

DEFAULT_LAYER = "CUTTING"


def _attribs(layer):
    return {"layer": layer}


def _write_polyline(msp, vertices, closed, layer):
    if len(vertices) < 2:
        raise ValueError("POLYLINE must have at least 2 vertices")
    msp.add_lwpolyline([(x, y) for x, y in vertices], close=closed, dxfattribs=_attribs(layer))


def _write_fitted_circle(msp, entity, layer):
    params = fit_circle(entity.vertices)
    if params is None:
        logging.warning(f"Failed to fit circle for {entity.id}, writing as polyline")
        _write_polyline(msp, entity.vertices, True, layer)
        return "POLYLINE"
    msp.add_circle(params["center"], params["radius"], dxfattribs=_attribs(layer))
    return "CIRCLE"


def _write_fitted_arc(msp, entity, layer):
    params = fit_arc(entity.vertices)
    if params is None:
        logging.warning(f"Failed to fit arc for {entity.id}, writing as polyline")
        _write_polyline(msp, entity.vertices, entity.closed, layer)
        return "POLYLINE"
    start = math.degrees(params["start_angle"])
    end = math.degrees(params["end_angle"])
    # DXF arcs run counter-clockwise; a clockwise sample swaps the ends
    if signed_area([params["center"]] + list(entity.vertices)) < 0:
        start, end = end, start
    msp.add_arc(params["center"], params["radius"], start, end, dxfattribs=_attribs(layer))
    return "ARC"


def write_entity(msp, entity, spline_segments=100):
    """Add one entity to the modelspace; returns the DXF type actually written."""
    layer = entity.layer or DEFAULT_LAYER
    if entity.type == "LINE":
        msp.add_line(entity.vertices[0], entity.vertices[1], dxfattribs=_attribs(layer))
        return "LINE"
    if entity.type == "CIRCLE":
        msp.add_circle(entity.center, entity.radius, dxfattribs=_attribs(layer))
        return "CIRCLE"
    if entity.type == "ARC":
        msp.add_arc(entity.center, entity.radius, entity.start_angle, entity.end_angle,
                    dxfattribs=_attribs(layer))
        return "ARC"
    if entity.type == "SPLINE":
        # splines go out as their polyline approximation
        _write_polyline(msp, spline_points(entity, spline_segments), entity.closed, layer)
        return "POLYLINE"
    if entity.type == "POLYLINE":
        if entity.source_type == "CIRCLE":
            return _write_fitted_circle(msp, entity, layer)
        if entity.source_type == "ARC":
            return _write_fitted_arc(msp, entity, layer)
        _write_polyline(msp, entity.vertices, entity.closed, layer)
        return "POLYLINE"
    raise ValueError(f"Unsupported entity type for writing: {entity.type}")


def write_dxf(entities, file_path, spline_segments=100):
    """Write entities to file_path grouped by layer. Returns {written type: count}."""
    if not entities:
        raise ValueError("Cannot write DXF file with no entities")

    doc = ezdxf.new("R2010")
    msp = doc.modelspace()
    by_layer = {}
    for entity in entities:
        by_layer.setdefault(entity.layer or DEFAULT_LAYER, []).append(entity)

    written = {}
    for layer, layer_entities in by_layer.items():
        if not doc.layers.has_entry(layer):
            doc.layers.new(layer)
        for entity in layer_entities:
            try:
                kind = write_entity(msp, entity, spline_segments)
            except ValueError as e:
                logging.warning(f"Failed to write entity {entity.id}: {e}")
                continue
            written[kind] = written.get(kind, 0) + 1

    doc.saveas(file_path)
    logging.info(f"Wrote {sum(written.values())} entities to {file_path}: {written}")
    return written
