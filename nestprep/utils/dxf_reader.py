# dxf_reader.py
# Reads a DXF file with ezdxf and produces raw entity records (dxf-parser shape) for
# entities.extract_entities. Block references are expanded into their virtual entities.

import logging

import ezdxf

from nestprep.utils.entities import extract_entities
from nestprep.utils.errors import ParseFailure

MAX_RECURSION_DEPTH = 10


def _xy(vec):
    return {"x": float(vec[0]), "y": float(vec[1])}


def entity_record(entity):
    """One ezdxf entity -> raw record. Unsupported types keep only type/handle/layer."""
    entity_type = entity.dxftype()
    record = {
        "type": entity_type,
        "handle": entity.dxf.get("handle"),
        "layer": entity.dxf.get("layer", "0"),
    }
    if entity_type == "LINE":
        record["vertices"] = [_xy(entity.dxf.start), _xy(entity.dxf.end)]
    elif entity_type == "CIRCLE":
        record["center"] = _xy(entity.dxf.center)
        record["radius"] = float(entity.dxf.radius)
    elif entity_type == "ARC":
        record["center"] = _xy(entity.dxf.center)
        record["radius"] = float(entity.dxf.radius)
        record["startAngle"] = float(entity.dxf.start_angle)
        record["endAngle"] = float(entity.dxf.end_angle)
    elif entity_type == "LWPOLYLINE":
        points = list(entity.get_points("xyb"))
        if any(abs(bulge) > 0 for _, _, bulge in points):
            logging.warning(f"LWPOLYLINE {record['handle']} has bulge segments; bulges are ignored")
        record["vertices"] = [{"x": float(x), "y": float(y)} for x, y, _ in points]
        record["shape"] = bool(entity.closed)
    elif entity_type == "POLYLINE":
        if entity.is_2d_polyline or entity.is_3d_polyline:
            record["vertices"] = [_xy(p) for p in entity.points()]
            record["shape"] = bool(entity.is_closed)
        else:
            # polyface / polymesh are not cut geometry
            record["type"] = "POLYMESH"
    elif entity_type == "SPLINE":
        record["controlPoints"] = [_xy(p) for p in entity.control_points]
        record["fitPoints"] = [_xy(p) for p in entity.fit_points]
        record["degree"] = int(entity.dxf.get("degree", 3))
        record["closed"] = bool(entity.closed)
    return record


def collect_records(entities, depth=0):
    """Flatten modelspace entities, expanding INSERT block references up to MAX_RECURSION_DEPTH."""
    records = []
    for entity in entities:
        if entity.dxftype() == "INSERT":
            if depth >= MAX_RECURSION_DEPTH:
                logging.warning(f"Skipping INSERT {entity.dxf.get('name')} at depth {depth}")
                continue
            try:
                virtual = list(entity.virtual_entities())
            except (ezdxf.DXFError, ValueError) as e:
                logging.warning(f"Could not expand block {entity.dxf.get('name')}: {e}")
                continue
            logging.debug(f"INSERT {entity.dxf.get('name')}: {len(virtual)} block entities")
            records.extend(collect_records(virtual, depth + 1))
            continue
        records.append(entity_record(entity))
    return records


def read_records(file_path):
    """Raw records of every modelspace entity in the file. Raises ParseFailure on unreadable input."""
    try:
        doc = ezdxf.readfile(file_path)
    except IOError as e:
        raise ParseFailure(f"Cannot read DXF file {file_path}: {e}")
    except ezdxf.DXFStructureError as e:
        raise ParseFailure(f"Invalid or corrupted DXF file {file_path}: {e}")

    units = doc.header.get("$INSUNITS", 0)
    logging.info(f"Reading {file_path}: DXF {doc.dxfversion}, units {units}")
    msp = doc.modelspace()
    records = collect_records(msp.query("*"))
    logging.info(f"{file_path}: {len(records)} modelspace entities")
    return records


def read_dxf(file_path):
    """Read a DXF file into canonical entities. Returns (entities, warnings)."""
    return extract_entities(read_records(file_path))
