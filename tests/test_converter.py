"""
test_converter.py
Conversion settings, file specs and the batch DXF -> problem pipeline with its
per-file error ledger.
"""
import pytest

from nestprep.utils.converter import (
    ConversionResult,
    ConversionSettings,
    convert_entities,
    convert_file,
    convert_files,
    parse_file_spec,
)
from nestprep.utils.entities import Polyline
from nestprep.utils.errors import ConversionError, ParseFailure, ValidationFailure

def test_settings_defaults():
    settings = ConversionSettings()
    assert settings.strip_height == 6000
    assert settings.arc_segments == 32
    assert settings.spline_segments == 100
    assert settings.tolerance == 0.5
    assert settings.orientations() == [0.0, 90.0, 180.0, 270.0]

def test_settings_from_mapping_with_aliases():
    settings = ConversionSettings.from_mapping({
        "stripHeight": "1200",
        "arcSegments": "16",
        "allowRotations": "false",
        "name": "",
        "spacing": None,
        "unknown": "ignored",
    })
    assert settings.strip_height == 1200.0
    assert settings.arc_segments == 16
    assert settings.allow_rotations is False
    assert settings.name == "dxf_conversion"
    assert settings.orientations() == [0.0]

@pytest.mark.parametrize("mapping", [
    {"arc_segments": 0},
    {"splineSegments": "-1"},
    {"strip_height": -5},
    {"tolerance": 0},
    {"height": "tall"},
    {"stripHeight": "nan"},
    {"spacing": "inf"},
    {"tolerance": "nan"},
    {"arcSegments": "inf"},
])
def test_invalid_settings_raise(mapping):
    with pytest.raises(ValueError):
        ConversionSettings.from_mapping(mapping)

@pytest.mark.parametrize("spec,expected", [
    ("part.dxf:3", ("part.dxf", 3)),
    ("part.dxf", ("part.dxf", 1)),
    ("part.dxf:0", ("part.dxf", 1)),
    (r"C:\parts\a.dxf", (r"C:\parts\a.dxf", 1)),
    (r"C:\parts\a.dxf:2", (r"C:\parts\a.dxf", 2)),
])
def test_parse_file_spec(spec, expected):
    assert parse_file_spec(spec) == expected

def test_error_stages():
    assert ParseFailure("x").stage == "parsing"
    assert ValidationFailure("x").stage == "validation"
    assert ValidationFailure("x", stage="extraction").stage == "extraction"
    assert isinstance(ParseFailure("x"), ConversionError)

def test_convert_entities_builds_entry(mixed_entities):
    entry, warnings = convert_entities(mixed_entities, "mixed.dxf", quantity=4)
    assert entry["dxf"] == "mixed.dxf"
    assert entry["demand"] == 4
    assert entry["contour_count"] == 2
    assert entry["orientations"] == [0.0, 90.0, 180.0, 270.0]
    # the arc-capped slot outline wins over the small circle
    assert entry["shape"].bounding_box["width"] == pytest.approx(50)

def test_convert_entities_without_entities_fails_at_extraction():
    with pytest.raises(ValidationFailure) as exc:
        convert_entities([], "empty.dxf")
    assert exc.value.stage == "extraction"

def test_degenerate_polygon_fails_at_polygon_validation():
    with pytest.raises(ValidationFailure) as exc:
        convert_entities([Polyline("p", "0", [(5.0, 5.0)])], "dot.dxf")
    assert exc.value.stage == "polygon validation"
    assert "less than 3 points" in str(exc.value)

def test_convert_file_plate(plate_dxf):
    entry, warnings = convert_file(plate_dxf, quantity=2)
    assert entry["dxf"] == "plate.dxf"
    assert entry["demand"] == 2
    assert entry["contour_count"] == 2
    assert entry["shape"].bounding_box["width"] == pytest.approx(100)
    assert entry["shape"].bounding_box["height"] == pytest.approx(60)

def test_convert_files_single_plate(plate_dxf):
    result = convert_files([plate_dxf])
    assert isinstance(result, ConversionResult)
    assert result.success
    assert result.errors == []
    assert result.stats["total_files"] == 1
    assert result.stats["successful_files"] == 1
    assert result.stats["failed_files"] == 0
    assert result.stats["total_items"] == 1
    # 100x60 outline: sides split into 5, 3, 5 and 3 pieces plus the closing point
    assert result.stats["total_points"] == 17
    assert result.message == "Converted 1 of 1 file(s)"
    text = result.json_text()
    assert '"strip_height": 6000.0' in text
    assert '"dxf": "plate.dxf"' in text

def test_missing_file_fails_at_parsing(tmp_path):
    result = convert_files([str(tmp_path / "missing.dxf")])
    assert not result.success
    assert result.json is None
    assert result.message == "No items were successfully converted"
    assert result.errors[0]["file"] == "missing.dxf"
    assert result.errors[0]["stage"] == "parsing"

def test_garbage_file_fails_at_parsing(tmp_path):
    path = tmp_path / "garbage.dxf"
    path.write_text("this is not a drawing\n")
    result = convert_files([str(path)])
    assert not result.success
    assert result.errors[0]["stage"] == "parsing"

def test_text_only_file_fails_at_extraction(make_dxf):
    path = make_dxf("text.dxf", lambda msp: msp.add_text("LABEL"))
    result = convert_files([path])
    assert not result.success
    assert result.errors[0]["stage"] == "extraction"

def test_mixed_batch_keeps_going(plate_dxf, tmp_path):
    missing = str(tmp_path / "missing.dxf")
    result = convert_files([
        (plate_dxf, 2),
        missing,
        {"path": plate_dxf, "quantity": 1, "name": "second.dxf"},
    ], ConversionSettings(name="batch", allow_rotations=False))
    assert result.success
    items = result.json["items"]
    assert [i["id"] for i in items] == [0, 1]
    assert [i["demand"] for i in items] == [2, 1]
    assert [i["dxf"] for i in items] == ["plate.dxf", "second.dxf"]
    assert items[0]["allowed_orientations"] == [0.0]
    assert result.json["name"] == "batch"
    assert result.stats["successful_files"] == 2
    assert result.stats["failed_files"] == 1
    assert [e["file"] for e in result.errors] == ["missing.dxf"]
    assert result.message == "Converted 2 of 3 file(s)"

def test_result_to_dict_includes_text(plate_dxf):
    data = convert_files([plate_dxf]).to_dict()
    assert set(data) == {"success", "json", "errors", "warnings", "stats", "message", "json_text"}
    assert data["json_text"].startswith("{\n")

def test_non_finite_settings_fail_construction():
    with pytest.raises(ValueError, match="finite"):
        ConversionSettings(strip_height=float("nan"))
    with pytest.raises(ValueError, match="finite"):
        ConversionSettings.from_mapping({"splineSegments": "-inf"})
