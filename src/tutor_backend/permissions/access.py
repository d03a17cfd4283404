"""
Student-facing access evaluation for exam materials.

`evaluate_student_access` is a pure predicate over a material record and a
student record. It works on ORM rows and on any object exposing the same
attribute names, so it can be exercised without a database.
"""

import datetime
import logging
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from tutor_backend.api.exceptions import forbidden
from tutor_backend.permissions.levels import AccessTier, StudentStatus
from tutor_backend.utils import as_utc, utc_now

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    INACTIVE = "inactive"
    LOCKED = "locked"
    TIER = "tier"
    STUDENT_NOT_LISTED = "student_not_listed"
    GRADE_NOT_LISTED = "grade_not_listed"
    SUBJECT_NOT_LISTED = "subject_not_listed"
    NOT_YET_AVAILABLE = "not_yet_available"
    EXPIRED = "expired"


class AccessDecision(BaseModel):
    allowed: bool
    reason: Optional[DenyReason] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AccessDecision(allowed=True)


def _deny(reason: DenyReason) -> AccessDecision:
    return AccessDecision(allowed=False, reason=reason)


def _scoped(values: Optional[Iterable[Any]]) -> list[str]:
    return [str(value) for value in (values or [])]


def evaluate_student_access(material: Any, student: Any, now: Optional[datetime.datetime] = None) -> AccessDecision:
    """Decide whether `student` may see `material`.

    Checks short-circuit in a fixed order: lifecycle flags, tier, student
    allow-list, grade allow-list, subject allow-list, time window. An empty
    allow-list leaves its dimension unrestricted.
    """

    if not material.is_active:
        return _deny(DenyReason.INACTIVE)

    if material.is_locked:
        return _deny(DenyReason.LOCKED)

    try:
        student_tier = AccessTier.resolve(student.access_level)
    except ValueError:
        # Unrecognized tiers rank below basic
        logger.warning(f"Student {student.id} has unknown access level {student.access_level!r}")
        return _deny(DenyReason.TIER)

    material_tier = AccessTier.resolve(material.access_level)

    if student_tier < material_tier:
        return _deny(DenyReason.TIER)

    allowed_students = _scoped(material.allowed_students)
    if allowed_students and str(student.id) not in allowed_students:
        return _deny(DenyReason.STUDENT_NOT_LISTED)

    allowed_grades = _scoped(material.allowed_grades)
    if allowed_grades and student.grade not in allowed_grades:
        return _deny(DenyReason.GRADE_NOT_LISTED)

    allowed_subjects = set(_scoped(material.allowed_subjects))
    if allowed_subjects and not allowed_subjects.intersection(_scoped(student.subjects)):
        return _deny(DenyReason.SUBJECT_NOT_LISTED)

    now = as_utc(now) if now is not None else utc_now()
    start_date = as_utc(material.start_date)
    end_date = as_utc(material.end_date)

    if start_date is not None and now < start_date:
        return _deny(DenyReason.NOT_YET_AVAILABLE)

    if end_date is not None and now > end_date:
        return _deny(DenyReason.EXPIRED)

    return ALLOW


def check_student_eligibility(student: Any) -> None:
    """Reject students that may not use exam materials at all.

    This is a policy denial separate from per-material evaluation and carries
    its own reason so clients can tell the two apart.
    """

    if student is None or student.status != StudentStatus.ACTIVE.value:
        raise forbidden("student_inactive", "Student account is not active")

    if not student.has_exam_access:
        logger.debug(f"Student {student.id} has no exam material access")
        raise forbidden("exam_access_disabled", "Exam materials are not enabled for this student")


def filter_accessible(materials: Iterable[Any], student: Any, now: Optional[datetime.datetime] = None) -> list[Any]:
    """Apply the evaluator to each candidate and keep only the allowed ones."""
    now = now or utc_now()
    return [material for material in materials if evaluate_student_access(material, student, now).allowed]
