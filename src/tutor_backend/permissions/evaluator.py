import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from tutor_backend.api.exceptions import forbidden
from tutor_backend.model.teacher_permission import TeacherPermission
from tutor_backend.permissions.grants import is_grant_valid
from tutor_backend.permissions.levels import PERMISSION_LEVELS, required_rank

logger = logging.getLogger(__name__)


def grant_satisfies(permission: TeacherPermission, action: str, now: Optional[datetime.datetime] = None) -> bool:
    if not is_grant_valid(permission, now):
        return False
    return PERMISSION_LEVELS.get(permission.permission_type, 0) >= required_rank(action)


def find_active_permission(db: Session, teacher_id: str, exam_material_id: str) -> Optional[TeacherPermission]:
    return (
        db.query(TeacherPermission)
        .filter(
            TeacherPermission.teacher_id == teacher_id,
            TeacherPermission.exam_material_id == exam_material_id,
            TeacherPermission.is_active == True,
        )
        .first()
    )


def has_permission(db: Session, teacher_id: str, exam_material_id: str, action: str, now: Optional[datetime.datetime] = None) -> bool:
    """Whether the teacher's active grant on the material covers `action`."""
    permission = find_active_permission(db, teacher_id, exam_material_id)

    if permission is None:
        return False

    return grant_satisfies(permission, action, now)


def require_permission(db: Session, teacher_id: str, exam_material_id: str, action: str) -> TeacherPermission:
    """Return the grant backing `action`, or raise Forbidden."""
    permission = find_active_permission(db, teacher_id, exam_material_id)

    if permission is None or not grant_satisfies(permission, action):
        logger.info(f"Teacher {teacher_id} denied {action} on material {exam_material_id}")
        raise forbidden("permission_denied", f"No valid '{action}' permission for this exam material")

    return permission
