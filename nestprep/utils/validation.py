# validation.py
# Geometric defect detection for edited line-work, plus the optional auto-fixes.

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import List

from nestprep.utils.discretize import entity_length
from nestprep.utils.geometry import distance

GAP_TOLERANCE = 0.001  # 1 micron
SNAP_TOLERANCE = 0.1
DUPLICATE_TOLERANCE = 0.001
ZERO_LENGTH = 0.001
PARAM_EPSILON = 1e-6
PARALLEL_EPSILON = 1e-10

OPEN_CONTOUR = "OPEN_CONTOUR"
DUPLICATE_LINE = "DUPLICATE_LINE"
ZERO_LENGTH_TYPE = "ZERO_LENGTH"
SELF_INTERSECTING = "SELF_INTERSECTING"

ERROR = "ERROR"
WARNING = "WARNING"


@dataclass
class ValidationIssue:
    type: str
    entity_ids: List[str] = field(default_factory=list)
    severity: str = WARNING
    message: str = ""
    auto_fixable: bool = False

    def to_dict(self):
        return {
            "type": self.type,
            "entityIds": list(self.entity_ids),
            "severity": self.severity,
            "message": self.message,
            "autoFixable": self.auto_fixable,
        }


def _kind(entity):
    # sampled ARC/CIRCLE/SPLINE polylines keep their source identity
    return getattr(entity, "source_type", None) or entity.type


def _is_plain_polyline(entity):
    return entity.type == "POLYLINE" and not entity.source_type


def check_open_contours(entities):
    issues = []
    for entity in entities:
        if not _is_plain_polyline(entity) or entity.closed or not entity.vertices:
            continue
        gap = distance(entity.vertices[0], entity.vertices[-1])
        if gap > GAP_TOLERANCE:
            issues.append(ValidationIssue(
                type=OPEN_CONTOUR,
                entity_ids=[entity.id],
                severity=ERROR,
                message=f"Open contour with {gap:.3f}mm gap",
                auto_fixable=gap <= SNAP_TOLERANCE,
            ))
    return issues


def _same_points(a, b, tol=DUPLICATE_TOLERANCE):
    return all(abs(pa[0] - pb[0]) < tol and abs(pa[1] - pb[1]) < tol for pa, pb in zip(a, b))


def are_duplicates(a, b):
    if _kind(a) != _kind(b) or a.type not in ("LINE", "POLYLINE"):
        return False
    if len(a.vertices) != len(b.vertices):
        return False
    return _same_points(a.vertices, b.vertices) or _same_points(a.vertices, list(reversed(b.vertices)))


def check_duplicates(entities):
    issues = []
    for i in range(len(entities)):
        for j in range(i + 1, len(entities)):
            if are_duplicates(entities[i], entities[j]):
                issues.append(ValidationIssue(
                    type=DUPLICATE_LINE,
                    entity_ids=[entities[i].id, entities[j].id],
                    severity=WARNING,
                    message="Duplicate geometry detected",
                    auto_fixable=True,
                ))
    return issues


def check_zero_length(entities):
    issues = []
    for entity in entities:
        length = entity_length(entity)
        if length < ZERO_LENGTH:
            issues.append(ValidationIssue(
                type=ZERO_LENGTH_TYPE,
                entity_ids=[entity.id],
                severity=WARNING,
                message=f"Zero-length entity ({length:.6f}mm)",
                auto_fixable=True,
            ))
    return issues


def segments_intersect(p1, p2, p3, p4):
    """True when the segments cross strictly inside both (endpoints excluded)."""
    d1x, d1y = p2[0] - p1[0], p2[1] - p1[1]
    d2x, d2y = p4[0] - p3[0], p4[1] - p3[1]
    cross = d1x * d2y - d1y * d2x
    if abs(cross) < PARALLEL_EPSILON:
        return False
    t1 = ((p3[0] - p1[0]) * d2y - (p3[1] - p1[1]) * d2x) / cross
    t2 = ((p3[0] - p1[0]) * d1y - (p3[1] - p1[1]) * d1x) / cross
    return PARAM_EPSILON < t1 < 1 - PARAM_EPSILON and PARAM_EPSILON < t2 < 1 - PARAM_EPSILON


def has_self_intersection(vertices):
    n = len(vertices)
    if n < 4:
        return False
    for i in range(n - 1):
        for j in range(i + 2, n - 1):
            if i == 0 and j == n - 2:
                continue
            if segments_intersect(vertices[i], vertices[i + 1], vertices[j], vertices[j + 1]):
                return True
    return False


def check_self_intersections(entities):
    issues = []
    for entity in entities:
        if not _is_plain_polyline(entity) or len(entity.vertices) < 4:
            continue
        if has_self_intersection(entity.vertices):
            issues.append(ValidationIssue(
                type=SELF_INTERSECTING,
                entity_ids=[entity.id],
                severity=WARNING,
                message="Self-intersecting polyline",
                auto_fixable=False,
            ))
    return issues


def validate_entities(entities):
    """Run every defect check in order: open contours, duplicates, zero-length, self-intersections."""
    entities = list(entities)
    issues = []
    issues.extend(check_open_contours(entities))
    issues.extend(check_duplicates(entities))
    issues.extend(check_zero_length(entities))
    issues.extend(check_self_intersections(entities))
    logging.debug(f"Validated {len(entities)} entities: {len(issues)} issue(s)")
    return issues


def validation_summary(issues):
    return {
        "total": len(issues),
        "errors": sum(1 for i in issues if i.severity == ERROR),
        "warnings": sum(1 for i in issues if i.severity == WARNING),
        "auto_fixable": sum(1 for i in issues if i.auto_fixable),
    }


def filter_issues(issues, type=None, severity=None):
    return [
        i for i in issues
        if (type is None or i.type == type) and (severity is None or i.severity == severity)
    ]


def problematic_entity_ids(issues):
    """Ids referenced by any issue, first-seen order, no repeats."""
    seen = []
    for issue in issues:
        for entity_id in issue.entity_ids:
            if entity_id not in seen:
                seen.append(entity_id)
    return seen


def apply_auto_fixes(entities, issues=None):
    """
    Apply every auto-fixable issue and return (entities, applied_issues).

    Duplicates drop the second entity, zero-length entities are removed, and open polylines
    within the snap tolerance are closed by merging both ends at their midpoint.
    """
    if issues is None:
        issues = validate_entities(entities)
    remove = set()
    snap = set()
    applied = []
    for issue in issues:
        if not issue.auto_fixable:
            continue
        if issue.type == DUPLICATE_LINE:
            remove.add(issue.entity_ids[1])
        elif issue.type == ZERO_LENGTH_TYPE:
            remove.add(issue.entity_ids[0])
        elif issue.type == OPEN_CONTOUR:
            snap.add(issue.entity_ids[0])
        else:
            continue
        applied.append(issue)

    fixed = []
    for entity in entities:
        if entity.id in remove:
            logging.info(f"Auto-fix: removing entity {entity.id}")
            continue
        if entity.id in snap:
            first, last = entity.vertices[0], entity.vertices[-1]
            mid = ((first[0] + last[0]) / 2, (first[1] + last[1]) / 2)
            vertices = [mid] + list(entity.vertices[1:-1])
            entity = dataclasses.replace(entity, vertices=vertices, closed=True)
            logging.info(f"Auto-fix: closed polyline {entity.id} at ({mid[0]:.3f}, {mid[1]:.3f})")
        fixed.append(entity)
    return fixed, applied
