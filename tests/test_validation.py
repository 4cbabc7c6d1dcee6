"""
test_validation.py
Defect detection on edited line-work (open contours, duplicates, zero-length entities,
self-intersections) and the optional auto-fixes.
"""
from nestprep.utils.discretize import to_editable
from nestprep.utils.entities import Arc, Circle, Line, Polyline
from nestprep.utils.validation import (
    DUPLICATE_LINE,
    ERROR,
    OPEN_CONTOUR,
    SELF_INTERSECTING,
    WARNING,
    ZERO_LENGTH_TYPE,
    apply_auto_fixes,
    are_duplicates,
    filter_issues,
    has_self_intersection,
    problematic_entity_ids,
    segments_intersect,
    validate_entities,
    validation_summary,
)


def test_open_polyline_with_large_gap():
    poly = Polyline("p1", "0", [(0, 0), (100, 0), (100, 50), (3, 10)])
    issues = validate_entities([poly])
    assert len(issues) == 1
    issue = issues[0]
    assert issue.type == OPEN_CONTOUR
    assert issue.severity == ERROR
    assert issue.entity_ids == ["p1"]
    assert issue.auto_fixable is False
    assert issue.message == "Open contour with 10.440mm gap"


def test_small_gap_is_auto_fixable():
    poly = Polyline("p1", "0", [(0, 0), (10, 0), (10, 10), (0.05, 0)])
    issues = validate_entities([poly])
    assert [i.type for i in issues] == [OPEN_CONTOUR]
    assert issues[0].auto_fixable


def test_closed_and_sampled_polylines_are_not_open_contours():
    closed = Polyline("c", "0", [(0, 0), (10, 0), (10, 10)], closed=True)
    sampled_arc = to_editable(Arc("a", "0", (0, 0), 5, 0, 90), arc_segments=8)
    assert validate_entities([closed, sampled_arc]) == []


def test_duplicate_lines_in_either_direction():
    a = Line("a", "0", [(0, 0), (10, 0)])
    b = Line("b", "0", [(10, 0), (0, 0)])
    issues = validate_entities([a, b])
    assert len(issues) == 1
    assert issues[0].type == DUPLICATE_LINE
    assert issues[0].severity == WARNING
    assert issues[0].entity_ids == ["a", "b"]
    assert issues[0].auto_fixable


def test_duplicates_need_same_kind():
    line = Line("a", "0", [(0, 0), (10, 0)])
    poly = Polyline("b", "0", [(0, 0), (10, 0)])
    assert not are_duplicates(line, poly)
    assert not are_duplicates(Circle("c", "0", (0, 0), 1), Circle("d", "0", (0, 0), 1))


def test_zero_length_entity():
    tiny = Line("z", "0", [(1, 1), (1, 1.0005)])
    issues = validate_entities([tiny])
    assert [i.type for i in issues] == [ZERO_LENGTH_TYPE]
    assert issues[0].auto_fixable


def test_segments_intersect_excludes_endpoints():
    assert segments_intersect((0, 0), (10, 10), (0, 10), (10, 0))
    assert not segments_intersect((0, 0), (10, 0), (10, 0), (10, 10))
    assert not segments_intersect((0, 0), (10, 0), (0, 1), (10, 1))


def test_self_intersecting_polyline():
    bowtie = Polyline("b", "0", [(0, 0), (10, 10), (10, 0), (0, 10), (0, 0)], closed=True)
    assert has_self_intersection(bowtie.vertices)
    issues = validate_entities([bowtie])
    assert [i.type for i in issues] == [SELF_INTERSECTING]
    assert issues[0].severity == WARNING
    assert not issues[0].auto_fixable


def test_square_ring_is_simple():
    assert not has_self_intersection([(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)])


def _mixed_defects():
    return [
        Polyline("p", "0", [(0, 0), (10, 0), (10, 10), (0.05, 0)]),
        Line("a", "0", [(20, 0), (30, 0)]),
        Line("a2", "0", [(20, 0), (30, 0)]),
        Line("z", "0", [(5, 5), (5, 5.0001)]),
    ]


def test_summary_filter_and_ids():
    issues = validate_entities(_mixed_defects())
    assert validation_summary(issues) == {"total": 3, "errors": 1, "warnings": 2, "auto_fixable": 3}
    assert [i.type for i in filter_issues(issues, severity=WARNING)] == [DUPLICATE_LINE, ZERO_LENGTH_TYPE]
    assert len(filter_issues(issues, type=OPEN_CONTOUR)) == 1
    assert problematic_entity_ids(issues) == ["p", "a", "a2", "z"]


def test_issue_to_dict_keys():
    issue = validate_entities(_mixed_defects())[0]
    assert issue.to_dict() == {
        "type": OPEN_CONTOUR,
        "entityIds": ["p"],
        "severity": ERROR,
        "message": "Open contour with 0.050mm gap",
        "autoFixable": True,
    }


def test_auto_fixes():
    entities = _mixed_defects()
    fixed, applied = apply_auto_fixes(entities)
    assert len(applied) == 3
    assert [e.id for e in fixed] == ["p", "a"]
    poly = fixed[0]
    assert poly.closed
    assert poly.vertices == [(0.025, 0.0), (10, 0), (10, 10)]
    # the input list is untouched
    assert entities[0].closed is False
    assert validate_entities(fixed) == []


def test_auto_fix_skips_unfixable_issues():
    poly = Polyline("p1", "0", [(0, 0), (100, 0), (100, 50), (3, 10)])
    fixed, applied = apply_auto_fixes([poly])
    assert applied == []
    assert fixed == [poly]
