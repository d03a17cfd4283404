from typing import Annotated, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tutor_backend.database import get_db
from tutor_backend.interface.base import ListQuery, Page
from tutor_backend.interface.teacher_permissions import (
    PermissionCheckQuery,
    PermissionCheckResponse,
    PermissionStats,
    TeacherPermissionCreate,
    TeacherPermissionExtend,
    TeacherPermissionGet,
    TeacherPermissionList,
    TeacherPermissionQuery,
    TeacherPermissionUpdate,
)
from tutor_backend.permissions.auth import require_admin
from tutor_backend.permissions.evaluator import has_permission
from tutor_backend.permissions.ledger import TeacherPermissionLedger
from tutor_backend.permissions.principal import Principal

teacher_permission_router = APIRouter()

def _list_items(permissions) -> List[TeacherPermissionList]:
    return [TeacherPermissionList.model_validate(permission, from_attributes=True) for permission in permissions]

@teacher_permission_router.get("", response_model=Page[TeacherPermissionList])
def list_teacher_permissions(permissions: Annotated[Principal, Depends(require_admin)], params: TeacherPermissionQuery = Depends(), db: Session = Depends(get_db)):

    items, total = TeacherPermissionLedger(db).list(params)

    return Page[TeacherPermissionList].build(_list_items(items), total, params)

@teacher_permission_router.get("/check", response_model=PermissionCheckResponse)
def check_teacher_permission(permissions: Annotated[Principal, Depends(require_admin)], params: PermissionCheckQuery = Depends(), db: Session = Depends(get_db)):

    allowed = has_permission(db, params.teacher_id, params.exam_material_id, params.action)

    return PermissionCheckResponse(has_permission=allowed, **params.model_dump())

@teacher_permission_router.get("/stats", response_model=PermissionStats)
def teacher_permission_stats(permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):
    return TeacherPermissionLedger(db).stats()

@teacher_permission_router.get("/expired", response_model=list[TeacherPermissionList])
def list_expired_teacher_permissions(permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):
    return _list_items(TeacherPermissionLedger(db).expired())

@teacher_permission_router.get("/search", response_model=list[TeacherPermissionList])
def search_teacher_permissions(permissions: Annotated[Principal, Depends(require_admin)], q: Annotated[str, Query(min_length=1)], db: Session = Depends(get_db)):
    return _list_items(TeacherPermissionLedger(db).search(q))

@teacher_permission_router.get("/teacher/{teacher_id}", response_model=Page[TeacherPermissionList])
def list_permissions_for_teacher(teacher_id: str, permissions: Annotated[Principal, Depends(require_admin)], params: ListQuery = Depends(), db: Session = Depends(get_db)):

    items, total = TeacherPermissionLedger(db).list_for_teacher(teacher_id, skip=params.skip, limit=params.limit)

    return Page[TeacherPermissionList].build(_list_items(items), total, params)

@teacher_permission_router.get("/exam-material/{exam_material_id}", response_model=list[TeacherPermissionList])
def list_permissions_for_exam_material(exam_material_id: str, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):
    return _list_items(TeacherPermissionLedger(db).list_for_material(exam_material_id))

@teacher_permission_router.get("/{permission_id}", response_model=TeacherPermissionGet)
def get_teacher_permission(permission_id: str, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):

    permission = TeacherPermissionLedger(db).get(permission_id)

    return TeacherPermissionGet.model_validate(permission, from_attributes=True)

@teacher_permission_router.post("", response_model=TeacherPermissionGet, status_code=status.HTTP_201_CREATED)
def grant_teacher_permission(entity: TeacherPermissionCreate, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):

    permission = TeacherPermissionLedger(db).grant(
        teacher_id=entity.teacher_id,
        exam_material_id=entity.exam_material_id,
        permission_type=entity.permission_type,
        granted_by=permissions.get_user_id_or_throw(),
        expires_at=entity.expires_at,
        notes=entity.notes,
    )

    return TeacherPermissionGet.model_validate(permission, from_attributes=True)

@teacher_permission_router.patch("/{permission_id}", response_model=TeacherPermissionGet)
def update_teacher_permission(permission_id: str, entity: TeacherPermissionUpdate, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):

    permission = TeacherPermissionLedger(db).update(permission_id, entity)

    return TeacherPermissionGet.model_validate(permission, from_attributes=True)

@teacher_permission_router.post("/{permission_id}/extend", response_model=TeacherPermissionGet)
def extend_teacher_permission(permission_id: str, entity: TeacherPermissionExtend, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):

    permission = TeacherPermissionLedger(db).extend(permission_id, entity.expires_at, entity.reason)

    return TeacherPermissionGet.model_validate(permission, from_attributes=True)

@teacher_permission_router.delete("/{permission_id}", response_model=TeacherPermissionGet)
def revoke_teacher_permission(permission_id: str, permissions: Annotated[Principal, Depends(require_admin)], reason: Annotated[str | None, Query(max_length=200)] = None, db: Session = Depends(get_db)):

    permission = TeacherPermissionLedger(db).revoke(permission_id, reason)

    return TeacherPermissionGet.model_validate(permission, from_attributes=True)
