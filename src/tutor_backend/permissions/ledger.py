"""
Lifecycle of teacher permissions over exam materials.

The ledger owns creation, modification, soft revocation and the capped
audit log of each grant. Uniqueness of active grants is enforced by the
`teacher_permission_active_key` partial index; a violation surfaces as a
ConflictException instead of a pre-insert existence check.
"""

import datetime
import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tutor_backend.api.exceptions import BadRequestException, ConflictException, NotFoundException
from tutor_backend.interface.teacher_permissions import (
    PermissionStats,
    TeacherPermissionQuery,
    TeacherPermissionUpdate,
)
from tutor_backend.model.exam_material import ExamMaterial
from tutor_backend.model.staff import StaffMember
from tutor_backend.model.teacher_permission import TeacherPermission, TeacherPermissionLog
from tutor_backend.permissions.evaluator import find_active_permission
from tutor_backend.permissions.levels import AUDIT_LOG_LIMIT, AccessLogAction, PermissionType
from tutor_backend.utils import utc_now

logger = logging.getLogger(__name__)


def _append_note(notes: Optional[str], line: str) -> str:
    return f"{notes or ''}\n{line}".strip()[:500]


class TeacherPermissionLedger:

    def __init__(self, db: Session):
        self.db = db

    # Lookups

    def get(self, permission_id: str) -> TeacherPermission:
        permission = self.db.get(TeacherPermission, permission_id)
        if permission is None:
            raise NotFoundException(detail=f"Teacher permission with id [{permission_id}] not found")
        return permission

    def find_active(self, teacher_id: str, exam_material_id: str) -> Optional[TeacherPermission]:
        return find_active_permission(self.db, teacher_id, exam_material_id)

    def list(self, params: TeacherPermissionQuery) -> Tuple[List[TeacherPermission], int]:
        query = self.db.query(TeacherPermission)

        if params.teacher_id != None:
            query = query.filter(TeacherPermission.teacher_id == params.teacher_id)
        if params.exam_material_id != None:
            query = query.filter(TeacherPermission.exam_material_id == params.exam_material_id)
        if params.permission_type != None:
            query = query.filter(TeacherPermission.permission_type == params.permission_type.value)
        if params.is_active != None:
            query = query.filter(TeacherPermission.is_active == params.is_active)

        total = query.order_by(None).count()
        items = (
            query.order_by(TeacherPermission.created_at.desc(), TeacherPermission.granted_at.desc())
            .offset(params.skip)
            .limit(params.limit)
            .all()
        )
        return items, total

    def list_for_teacher(self, teacher_id: str, skip: int = 0, limit: Optional[int] = None) -> Tuple[List[TeacherPermission], int]:
        query = self.db.query(TeacherPermission).filter(
            TeacherPermission.teacher_id == teacher_id,
            TeacherPermission.is_active == True,
        )
        total = query.count()
        query = query.order_by(TeacherPermission.created_at.desc(), TeacherPermission.granted_at.desc()).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all(), total

    def list_for_material(self, exam_material_id: str) -> List[TeacherPermission]:
        return (
            self.db.query(TeacherPermission)
            .filter(
                TeacherPermission.exam_material_id == exam_material_id,
                TeacherPermission.is_active == True,
            )
            .order_by(TeacherPermission.created_at.desc(), TeacherPermission.granted_at.desc())
            .all()
        )

    def expired(self, now: Optional[datetime.datetime] = None) -> List[TeacherPermission]:
        """Grants still flagged active whose expiry has passed."""
        now = now or utc_now()
        return (
            self.db.query(TeacherPermission)
            .filter(
                TeacherPermission.is_active == True,
                TeacherPermission.expires_at != None,
                TeacherPermission.expires_at < now,
            )
            .order_by(TeacherPermission.expires_at)
            .all()
        )

    def search(self, term: str) -> List[TeacherPermission]:
        pattern = f"%{term}%"
        return (
            self.db.query(TeacherPermission)
            .filter(
                TeacherPermission.is_active == True,
                or_(
                    TeacherPermission.teacher_name.ilike(pattern),
                    TeacherPermission.granted_by_name.ilike(pattern),
                    TeacherPermission.notes.ilike(pattern),
                ),
            )
            .order_by(TeacherPermission.created_at.desc())
            .all()
        )

    def stats(self, now: Optional[datetime.datetime] = None) -> PermissionStats:
        now = now or utc_now()
        total = self.db.query(func.count(TeacherPermission.id)).scalar() or 0
        active = (
            self.db.query(func.count(TeacherPermission.id))
            .filter(TeacherPermission.is_active == True)
            .scalar() or 0
        )
        expired = (
            self.db.query(func.count(TeacherPermission.id))
            .filter(
                TeacherPermission.is_active == True,
                TeacherPermission.expires_at != None,
                TeacherPermission.expires_at < now,
            )
            .scalar() or 0
        )
        by_type = dict(
            self.db.query(TeacherPermission.permission_type, func.count(TeacherPermission.id))
            .group_by(TeacherPermission.permission_type)
            .all()
        )
        by_teacher = dict(
            self.db.query(TeacherPermission.teacher_id, func.count(TeacherPermission.id))
            .group_by(TeacherPermission.teacher_id)
            .all()
        )
        return PermissionStats(
            total=total,
            active=active,
            expired=expired,
            inactive=total - active,
            by_type=by_type,
            by_teacher=by_teacher,
        )

    # Mutations

    def grant(
        self,
        teacher_id: str,
        exam_material_id: str,
        permission_type: PermissionType | str,
        granted_by: str,
        expires_at: Optional[datetime.datetime] = None,
        notes: Optional[str] = None,
    ) -> TeacherPermission:
        try:
            permission_type = PermissionType(permission_type)
        except ValueError:
            raise BadRequestException(detail=f"Unknown permission type [{permission_type}]")

        teacher = self.db.get(StaffMember, teacher_id)
        if teacher is None:
            raise NotFoundException(detail="Teacher not found")

        if self.db.get(ExamMaterial, exam_material_id) is None:
            raise NotFoundException(detail="Exam material not found")

        granter = self.db.get(StaffMember, granted_by)
        granted_by_name = (granter.name or granter.email) if granter is not None else None

        permission = TeacherPermission(
            teacher_id=teacher_id,
            teacher_name=teacher.display_name,
            exam_material_id=exam_material_id,
            permission_type=permission_type.value,
            granted_by=granted_by if granter is not None else None,
            granted_by_name=granted_by_name or "Admin",
            granted_at=utc_now(),
            expires_at=expires_at,
            notes=notes or "",
            is_active=True,
        )

        self.db.add(permission)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Duplicate grant rejected for teacher {teacher_id} on material {exam_material_id}")
            raise ConflictException(detail="Permission already exists for this teacher and exam material")

        self._append_log(permission.id, AccessLogAction.GRANT, f"Permission {permission_type.value} granted")
        self.db.commit()
        self.db.refresh(permission)

        logger.info(f"Granted {permission_type.value} on material {exam_material_id} to teacher {teacher_id} (grant {permission.id})")
        return permission

    def update(self, permission_id: str, data: TeacherPermissionUpdate) -> TeacherPermission:
        permission = self._get_for_update(permission_id)

        fields = data.model_dump(exclude_unset=True)

        if fields.get("permission_type") is not None:
            permission.permission_type = PermissionType(fields["permission_type"]).value
        if "expires_at" in fields:
            permission.expires_at = fields["expires_at"]
        if fields.get("is_active") is not None:
            permission.is_active = fields["is_active"]
        if "notes" in fields:
            permission.notes = fields["notes"] or ""

        try:
            self.db.flush()
        except IntegrityError:
            # Re-activating a grant while another one is active for the same pair
            self.db.rollback()
            logger.warning(f"Update of grant {permission_id} would duplicate an active grant")
            raise ConflictException(detail="Another active permission exists for this teacher and exam material")

        self._append_log(permission.id, AccessLogAction.MODIFY, "Permission updated")
        self.db.commit()
        self.db.refresh(permission)

        logger.info(f"Updated grant {permission_id}: {sorted(fields.keys())}")
        return permission

    def extend(self, permission_id: str, expires_at: Optional[datetime.datetime], reason: Optional[str] = None) -> TeacherPermission:
        permission = self._get_for_update(permission_id)

        permission.expires_at = expires_at
        if reason:
            permission.notes = _append_note(permission.notes, f"Extended: {reason}")

        target = expires_at.isoformat() if expires_at is not None else "never"
        self._append_log(permission.id, AccessLogAction.MODIFY, f"Permission extended until {target}")
        self.db.commit()
        self.db.refresh(permission)

        logger.info(f"Extended grant {permission_id} until {target}")
        return permission

    def revoke(self, permission_id: str, reason: Optional[str] = None) -> TeacherPermission:
        permission = self._get_for_update(permission_id)

        if not permission.is_active:
            raise ConflictException(detail=f"Teacher permission with id [{permission_id}] is already revoked")

        # Logged before deactivation so the entry belongs to the live grant
        self._append_log(permission.id, AccessLogAction.REVOKE, "Permission revoked")

        if reason:
            permission.notes = _append_note(permission.notes, f"Revoked: {reason}")
        permission.is_active = False

        self.db.commit()
        self.db.refresh(permission)

        logger.info(f"Revoked grant {permission_id}")
        return permission

    def log_access(self, permission_id: str, action: AccessLogAction | str, details: str = "") -> TeacherPermission:
        permission = self._get_for_update(permission_id)
        self._append_log(permission.id, AccessLogAction(action), details)
        self.db.commit()
        self.db.refresh(permission)
        return permission

    # Internals

    def _get_for_update(self, permission_id: str) -> TeacherPermission:
        # Row lock serializes concurrent log appends and edits on the same grant
        permission = (
            self.db.query(TeacherPermission)
            .filter(TeacherPermission.id == permission_id)
            .with_for_update()
            .first()
        )
        if permission is None:
            raise NotFoundException(detail=f"Teacher permission with id [{permission_id}] not found")
        return permission

    def _append_log(self, permission_id: str, action: AccessLogAction, details: str = "") -> None:
        self.db.add(TeacherPermissionLog(
            teacher_permission_id=permission_id,
            action=action.value,
            timestamp=utc_now(),
            details=details or "",
        ))
        self.db.flush()

        keep = (
            select(TeacherPermissionLog.id)
            .where(TeacherPermissionLog.teacher_permission_id == permission_id)
            .order_by(TeacherPermissionLog.id.desc())
            .limit(AUDIT_LOG_LIMIT)
        )
        self.db.query(TeacherPermissionLog).filter(
            TeacherPermissionLog.teacher_permission_id == permission_id,
            TeacherPermissionLog.id.not_in(keep),
        ).delete(synchronize_session=False)

        # Relationship collection may now hold evicted rows
        self.db.expire_all()
