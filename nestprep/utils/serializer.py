# serializer.py
# Builds the nesting-solver problem document and writes it as canonical JSON text.
# The solver's deserializer rejects integer-typed floats, so every float carries a
# fractional part ("6000.0") while id/demand stay plain integers.

import json
import logging
import math

from nestprep.utils.polygons import clean_polygon

ROTATIONS = [0.0, 90.0, 180.0, 270.0]
SHAPE_TYPE = "simple_polygon"


def allowed_orientations(allow_rotations=True):
    return list(ROTATIONS) if allow_rotations else [0.0]


def format_item(item_id, shape, demand=1, dxf=None, orientations=None):
    """One problem item from a classified Shape. Returns (item, warnings)."""
    warnings = []
    if shape.holes:
        message = (f"Item {item_id}: Has {len(shape.holes)} hole(s) - only simple polygons are "
                   f"supported. Holes will be ignored.")
        logging.warning(message)
        warnings.append(message)
    item = {
        "id": int(item_id),
        "demand": int(demand or 1),
        "dxf": dxf or f"item_{item_id}.dxf",
        "allowed_orientations": [float(o) for o in (orientations if orientations is not None else ROTATIONS)],
        "shape": {"type": SHAPE_TYPE, "data": [[x, y] for x, y in clean_polygon(shape.exterior)]},
    }
    return item, warnings


def format_problem(items, name="dxf_conversion", strip_height=6000):
    """
    items: iterable of dicts with keys shape, demand, dxf, orientations.
    Ids are assigned consecutively from 0 in list order. Returns (problem, warnings) where each
    warning is a {"file", "message"} ledger row.
    """
    formatted = []
    warnings = []
    for entry in items:
        item, item_warnings = format_item(
            len(formatted), entry["shape"], entry.get("demand", 1), entry.get("dxf"), entry.get("orientations"),
        )
        formatted.append(item)
        warnings.extend({"file": item["dxf"], "message": m} for m in item_warnings)
    problem = {"name": name or "dxf_conversion", "strip_height": float(strip_height), "items": formatted}
    return problem, warnings


def _format_float(value):
    if value == 0:
        return "0.0"  # also folds -0.0
    text = repr(float(value))
    if "e" in text or "E" in text:
        text = f"{value:.6f}".rstrip("0")
        if text.endswith("."):
            text += "0"
    return text


def _scalar(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot serialize non-finite number {value}")
        return _format_float(value)
    if value is None:
        return "null"
    return json.dumps(value, ensure_ascii=False)


def _dumps(value, indent, level):
    pad = " " * (indent * (level + 1))
    closing = " " * (indent * level)
    if isinstance(value, dict):
        if not value:
            return "{}"
        body = ",\n".join(f"{pad}{json.dumps(str(k))}: {_dumps(v, indent, level + 1)}" for k, v in value.items())
        return "{\n" + body + "\n" + closing + "}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if all(not isinstance(v, (dict, list, tuple)) for v in value):
            return "[" + ", ".join(_scalar(v) for v in value) + "]"
        body = ",\n".join(pad + _dumps(v, indent, level + 1) for v in value)
        return "[\n" + body + "\n" + closing + "]"
    return _scalar(value)


def dumps_problem(problem, indent=2):
    """Canonical JSON text; scalar lists such as points and orientations stay on one line."""
    return _dumps(problem, indent, 0)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_problem(problem):
    """Schema check of a problem document. Returns (errors, warnings)."""
    errors = []
    warnings = []
    if not isinstance(problem.get("name"), str) or not problem.get("name"):
        errors.append('Missing or invalid "name" property (must be string)')
    strip_height = problem.get("strip_height")
    if not _is_number(strip_height) or strip_height <= 0:
        errors.append("Invalid strip_height: must be positive number")

    items = problem.get("items")
    if items is None:
        errors.append('Missing "items" property')
        return errors, warnings
    if not isinstance(items, list):
        errors.append('"items" must be an array')
        return errors, warnings
    if not items:
        warnings.append("Items array is empty")

    for index, item in enumerate(items):
        if not isinstance(item.get("id"), int) or isinstance(item.get("id"), bool):
            errors.append(f'Item {index}: Missing or invalid "id" (must be integer)')
        demand = item.get("demand")
        if not _is_number(demand) or demand <= 0:
            errors.append(f'Item {index}: Missing or invalid "demand" (must be positive number)')
        if not isinstance(item.get("dxf"), str) or not item.get("dxf"):
            errors.append(f'Item {index}: Missing or invalid "dxf" (must be string path)')
        orientations = item.get("allowed_orientations")
        if not isinstance(orientations, list) or not orientations:
            errors.append(f'Item {index}: "allowed_orientations" must contain at least one orientation')
        elif any(not _is_number(o) or o < 0 or o >= 360 for o in orientations):
            errors.append(f"Item {index}: Invalid orientations (must be 0-359 degrees)")

        shape = item.get("shape")
        if not isinstance(shape, dict):
            errors.append(f'Item {index}: Missing "shape" property')
            continue
        if shape.get("type") != SHAPE_TYPE:
            errors.append(f'Item {index}: shape.type must be "{SHAPE_TYPE}"')
        data = shape.get("data")
        if not isinstance(data, list):
            errors.append(f'Item {index}: "shape.data" must be an array')
            continue
        if len(data) < 3:
            errors.append(f"Item {index}.shape.data: Must have at least 3 points (has {len(data)})")
            continue
        for p_index, pt in enumerate(data):
            if not isinstance(pt, (list, tuple)) or len(pt) != 2:
                errors.append(f"Item {index}.shape.data[{p_index}]: Point must be [x, y]")
            elif not all(_is_number(c) and math.isfinite(c) for c in pt):
                errors.append(f"Item {index}.shape.data[{p_index}]: coordinates must be finite numbers")
    return errors, warnings


def problem_stats(problem):
    items = problem.get("items") or []
    return {
        "item_count": len(items),
        "total_points": sum(len(i.get("shape", {}).get("data", [])) for i in items),
        "total_demand": sum(i.get("demand", 1) for i in items),
        "strip_height": problem.get("strip_height", 0),
        "name": problem.get("name", "unknown"),
        "json_size": len(dumps_problem(problem)),
    }
