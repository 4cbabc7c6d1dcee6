# converter.py
# Batch DXF -> nesting problem conversion.
# Each file runs read -> extract -> contours -> polygons -> shape; a failing file lands in the
# error ledger with its stage and never stops the batch.

import logging
import math
import os
from dataclasses import asdict, dataclass, field, fields
from typing import List, Optional

from nestprep import config
from nestprep.utils.contours import build_contours, validate_contours
from nestprep.utils.dxf_reader import read_records
from nestprep.utils.entities import entity_stats, extract_entities
from nestprep.utils.errors import ConversionError, ValidationFailure
from nestprep.utils.polygons import check_polygon, contour_to_polygon
from nestprep.utils.regions import classify_polygons
from nestprep.utils.serializer import allowed_orientations, dumps_problem, format_problem, validate_problem

# accepted spellings for settings coming from forms, JSON bodies and the CLI
SETTING_ALIASES = {
    "stripHeight": "strip_height",
    "height": "strip_height",
    "arcSegments": "arc_segments",
    "splineSegments": "spline_segments",
    "allowRotations": "allow_rotations",
    "autoClose": "auto_close",
    "problemName": "name",
    "problem_name": "name",
    "rotationSteps": "rotation_steps",
}


def _to_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ConversionSettings:
    strip_height: float = config.STRIP_HEIGHT
    spacing: float = config.SPACING
    arc_segments: int = config.ARC_SEGMENTS
    spline_segments: int = config.SPLINE_SEGMENTS
    tolerance: float = config.TOLERANCE
    allow_rotations: bool = config.ALLOW_ROTATIONS
    auto_close: bool = config.AUTO_CLOSE
    name: str = config.PROBLEM_NAME
    rotation_steps: int = config.ROTATION_STEPS  # accepted but never used

    def __post_init__(self):
        if not all(math.isfinite(v) for v in (self.strip_height, self.spacing, self.tolerance)):
            raise ValueError("strip_height, spacing and tolerance must be finite numbers")
        if self.arc_segments < 1 or self.spline_segments < 1:
            raise ValueError("arc_segments and spline_segments must be at least 1")
        if self.strip_height <= 0:
            raise ValueError("strip_height must be positive")
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")

    @classmethod
    def from_mapping(cls, mapping=None):
        """Defaults overridden by any recognised key in mapping; empty values are ignored."""
        values = {}
        types = {f.name: f.type for f in fields(cls)}
        for key, value in (mapping or {}).items():
            key = SETTING_ALIASES.get(key, key)
            if key not in types or value is None or value == "":
                continue
            kind = types[key]
            if kind in ("bool", bool):
                values[key] = _to_bool(value)
            elif kind in ("int", int):
                try:
                    values[key] = int(float(value))
                except OverflowError as e:
                    raise ValueError(f"{key} must be a finite number") from e
            elif kind in ("float", float):
                values[key] = float(value)
            else:
                values[key] = str(value)
        return cls(**values)

    def orientations(self):
        return allowed_orientations(self.allow_rotations)


@dataclass
class ConversionResult:
    success: bool
    json: Optional[dict] = None
    errors: List[dict] = field(default_factory=list)
    warnings: List[dict] = field(default_factory=list)
    stats: dict = field(default_factory=dict)
    message: str = ""

    def json_text(self):
        return dumps_problem(self.json) if self.json is not None else None

    def to_dict(self):
        data = asdict(self)
        data["json_text"] = self.json_text()
        return data


def parse_file_spec(spec):
    """'path:quantity' -> (path, quantity). Split on the last colon so drive letters survive."""
    path, sep, tail = spec.rpartition(":")
    if sep and path and tail.strip().isdigit():
        return path, max(1, int(tail))
    return spec, 1


def convert_entities(entities, file_name, settings=None, quantity=1):
    """Canonical entities of one part -> (problem item entry, warning messages)."""
    settings = settings or ConversionSettings()
    warnings = []
    if not entities:
        raise ValidationFailure("No supported entities found", stage="extraction")

    contours = build_contours(
        entities,
        tolerance=settings.tolerance,
        auto_close=settings.auto_close,
        arc_segments=settings.arc_segments,
        spline_segments=settings.spline_segments,
    )
    contour_errors, contour_warnings = validate_contours(contours)
    if contour_errors:
        raise ValidationFailure("; ".join(contour_errors), stage="contour building")
    warnings.extend(contour_warnings)
    warnings.extend(c.warning for c in contours if c.warning)

    polygons = [contour_to_polygon(c, settings.arc_segments, settings.spline_segments) for c in contours]
    shape = classify_polygons(polygons)

    polygon_errors, polygon_warnings = check_polygon(shape.exterior)
    warnings.extend(polygon_warnings)
    if polygon_errors:
        raise ValidationFailure("; ".join(polygon_errors), stage="polygon validation")

    logging.info(f"{file_name}: {len(entities)} entities, {len(contours)} contours, "
                 f"{len(shape.exterior)} exterior points, {len(shape.holes)} holes")
    entry = {
        "shape": shape,
        "demand": quantity,
        "dxf": file_name,
        "orientations": settings.orientations(),
        "contour_count": len(contours),
    }
    return entry, warnings


def convert_file(file_path, settings=None, quantity=1, name=None):
    """One DXF file -> (problem item entry, warning messages). Raises ConversionError subclasses."""
    settings = settings or ConversionSettings()
    name = name or os.path.basename(file_path)
    records = read_records(file_path)
    if not records:
        raise ValidationFailure("No entities found in DXF file", stage="validation")
    entities, warnings = extract_entities(records)
    logging.info(f"{name}: entities {len(entities)} ({len(records)} total), {entity_stats(entities)['by_type']}")
    entry, more = convert_entities(entities, name, settings, quantity)
    return entry, warnings + more


def _file_args(item):
    if isinstance(item, dict):
        return item["path"], int(item.get("quantity") or 1), item.get("name")
    if isinstance(item, (tuple, list)):
        path = item[0]
        quantity = int(item[1]) if len(item) > 1 and item[1] else 1
        return path, quantity, item[2] if len(item) > 2 else None
    return item, 1, None


def convert_files(files, settings=None):
    """
    Convert a batch of DXF files into one nesting problem.

    files: paths, (path, quantity[, name]) tuples or {"path", "quantity", "name"} dicts.
    Returns a ConversionResult; success means at least one item converted and the
    output document passed validate_problem.
    """
    settings = settings or ConversionSettings()
    files = list(files)
    entries = []
    errors = []
    warnings = []

    for index, item in enumerate(files):
        path, quantity, name = _file_args(item)
        name = name or os.path.basename(path)
        logging.info(f"Processing file {index + 1}/{len(files)}: {name} (quantity: {quantity})")
        try:
            entry, file_warnings = convert_file(path, settings, quantity, name)
        except ConversionError as e:
            logging.warning(f"Conversion of {name} failed at {e.stage}: {e}")
            errors.append({"file": name, "stage": e.stage, "message": str(e)})
            continue
        except Exception as e:
            logging.error(f"Error processing {name}: {e}", exc_info=True)
            errors.append({"file": name, "stage": "conversion", "message": str(e)})
            continue
        warnings.extend({"file": name, "message": w} for w in file_warnings)
        entries.append(entry)
        logging.info(f"Successfully converted {name}")

    if not entries:
        return ConversionResult(success=False, errors=errors, warnings=warnings,
                                message="No items were successfully converted")

    problem, format_warnings = format_problem(entries, settings.name, settings.strip_height)
    warnings.extend(format_warnings)

    problem_errors, problem_warnings = validate_problem(problem)
    warnings.extend({"file": "output", "message": w} for w in problem_warnings)
    if problem_errors:
        errors.extend({"file": "output", "stage": "json validation", "message": e} for e in problem_errors)
        return ConversionResult(success=False, errors=errors, warnings=warnings,
                                message="Generated JSON is invalid")

    failed = len({e["file"] for e in errors})
    stats = {
        "total_files": len(files),
        "successful_files": len(entries),
        "failed_files": failed,
        "total_items": len(problem["items"]),
        "total_points": sum(len(i["shape"]["data"]) for i in problem["items"]),
    }
    message = f"Converted {len(entries)} of {len(files)} file(s)"
    logging.info(message)
    return ConversionResult(success=True, json=problem, errors=errors, warnings=warnings,
                            stats=stats, message=message)
