import logging
import os
from enum import Enum
from typing import Annotated
from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session

from tutor_backend.api.exceptions import BadRequestException, NotFoundException, forbidden
from tutor_backend.database import get_db
from tutor_backend.interface.base import Page
from tutor_backend.interface.exam_materials import (
    ExamMaterialAdminQuery,
    ExamMaterialCreate,
    ExamMaterialGet,
    ExamMaterialQuery,
    ExamMaterialStats,
    ExamMaterialUpdate,
    StudentExamMaterialList,
)
from tutor_backend.model.exam_material import ExamMaterial
from tutor_backend.model.staff import StaffMember
from tutor_backend.model.student import Student
from tutor_backend.permissions.access import check_student_eligibility, evaluate_student_access, filter_accessible
from tutor_backend.permissions.auth import get_current_student, require_admin
from tutor_backend.permissions.principal import Principal
from tutor_backend.settings import settings
from tutor_backend.utils import as_utc, utc_now

logger = logging.getLogger(__name__)

exam_material_router = APIRouter()

_REQUIRED_MATERIAL_FIELDS = {"title", "subject", "grade", "year", "type", "access_level", "is_active", "is_locked", "tags", "allowed_students", "allowed_grades", "allowed_subjects"}

def get_exam_material_or_throw(db: Session, exam_material_id: str) -> ExamMaterial:
    material = db.get(ExamMaterial, exam_material_id)
    if material is None:
        raise NotFoundException(detail="Exam material not found")
    return material

def material_file_path(material: ExamMaterial) -> str:
    storage_dir = os.path.realpath(settings.EXAM_MATERIALS_STORAGE_DIR)
    path = os.path.realpath(os.path.join(storage_dir, material.file_path))

    if os.path.commonpath([storage_dir, path]) != storage_dir or not os.path.isfile(path):
        logger.error(f"File for exam material {material.id} is missing from storage")
        raise NotFoundException(detail="File not found on server")

    return path

def record_download(db: Session, exam_material_id: str) -> None:
    """Bump the download counters; only called after access has been allowed."""
    db.query(ExamMaterial).filter(ExamMaterial.id == exam_material_id).update(
        {
            ExamMaterial.download_count: ExamMaterial.download_count + 1,
            ExamMaterial.last_downloaded: utc_now(),
        },
        synchronize_session=False,
    )
    db.commit()

def material_file_response(material: ExamMaterial) -> FileResponse:
    return FileResponse(
        material_file_path(material),
        media_type=material.mime_type,
        filename=material.file_name,
    )

def apply_material_filters(query, params: ExamMaterialQuery):

    if params.search:
        pattern = f"%{params.search}%"
        query = query.filter(or_(
            ExamMaterial.title.ilike(pattern),
            ExamMaterial.description.ilike(pattern),
            ExamMaterial.subject.ilike(pattern),
            cast(ExamMaterial.tags, String).ilike(pattern),
        ))
    if params.subject != None:
        query = query.filter(ExamMaterial.subject == params.subject)
    if params.grade != None:
        query = query.filter(ExamMaterial.grade == params.grade)
    if params.type != None:
        query = query.filter(ExamMaterial.type == params.type.value)
    if params.year != None:
        query = query.filter(ExamMaterial.year == params.year)

    return query

def get_accessible_material_or_throw(db: Session, exam_material_id: str, student: Student) -> ExamMaterial:
    check_student_eligibility(student)

    material = get_exam_material_or_throw(db, exam_material_id)

    decision = evaluate_student_access(material, student)
    if not decision.allowed:
        logger.info(f"Student {student.id} denied material {exam_material_id}: {decision.reason.value}")
        raise forbidden("access_denied", "You do not have access to this material")

    return material

# Admin routes are declared first so "/admin" is not captured by "/{exam_material_id}"

@exam_material_router.get("/admin", response_model=Page[ExamMaterialGet])
def admin_list_exam_materials(permissions: Annotated[Principal, Depends(require_admin)], params: ExamMaterialAdminQuery = Depends(), db: Session = Depends(get_db)):

    query = apply_material_filters(db.query(ExamMaterial), params)

    if params.status == "active":
        query = query.filter(ExamMaterial.is_active == True)
    elif params.status == "inactive":
        query = query.filter(ExamMaterial.is_active == False)
    elif params.status == "locked":
        query = query.filter(ExamMaterial.is_locked == True)

    total = query.order_by(None).count()
    materials = query.order_by(ExamMaterial.created_at.desc()).offset(params.skip).limit(params.limit).all()

    return Page[ExamMaterialGet].build(
        [ExamMaterialGet.model_validate(material, from_attributes=True) for material in materials], total, params
    )

@exam_material_router.get("/admin/stats", response_model=ExamMaterialStats)
def admin_exam_material_stats(permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):

    def count_by(column):
        return dict(db.query(column, func.count(ExamMaterial.id)).group_by(column).all())

    total = db.query(func.count(ExamMaterial.id)).scalar() or 0
    active = db.query(func.count(ExamMaterial.id)).filter(ExamMaterial.is_active == True).scalar() or 0
    locked = db.query(func.count(ExamMaterial.id)).filter(ExamMaterial.is_locked == True).scalar() or 0

    return ExamMaterialStats(
        total=total,
        active=active,
        locked=locked,
        inactive=total - active,
        by_subject=count_by(ExamMaterial.subject),
        by_type=count_by(ExamMaterial.type),
        by_grade=count_by(ExamMaterial.grade),
    )

@exam_material_router.get("/admin/{exam_material_id}", response_model=ExamMaterialGet)
def admin_get_exam_material(exam_material_id: str, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):
    return ExamMaterialGet.model_validate(get_exam_material_or_throw(db, exam_material_id), from_attributes=True)

@exam_material_router.post("/admin", response_model=ExamMaterialGet, status_code=status.HTTP_201_CREATED)
def admin_create_exam_material(entity: ExamMaterialCreate, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):

    uploader = db.get(StaffMember, permissions.user_id)

    material = ExamMaterial(
        **entity.model_dump(exclude={"type", "access_level"}),
        type=entity.type.value,
        access_level=entity.access_level.value,
        uploaded_by=uploader.id if uploader is not None else None,
        uploaded_by_name=uploader.display_name if uploader is not None else (permissions.name or "Admin"),
        is_active=True,
        is_locked=False,
        download_count=0,
    )

    db.add(material)
    db.commit()
    db.refresh(material)

    logger.info(f"Exam material {material.id} registered by {permissions.user_id}")
    return ExamMaterialGet.model_validate(material, from_attributes=True)

@exam_material_router.patch("/admin/{exam_material_id}", response_model=ExamMaterialGet)
def admin_update_exam_material(exam_material_id: str, entity: ExamMaterialUpdate, permissions: Annotated[Principal, Depends(require_admin)], db: Session = Depends(get_db)):

    material = get_exam_material_or_throw(db, exam_material_id)
    fields = entity.model_dump(exclude_unset=True)

    start_date = as_utc(fields.get("start_date", material.start_date))
    end_date = as_utc(fields.get("end_date", material.end_date))
    if start_date is not None and end_date is not None and end_date < start_date:
        raise BadRequestException(detail="end_date must not be before start_date")

    for key, value in fields.items():
        if isinstance(value, Enum):
            value = value.value
        if value is None and key in _REQUIRED_MATERIAL_FIELDS:
            continue
        setattr(material, key, value)

    db.commit()
    db.refresh(material)

    logger.info(f"Exam material {exam_material_id} updated by {permissions.user_id}")
    return ExamMaterialGet.model_validate(material, from_attributes=True)

# Student routes

@exam_material_router.get("", response_model=Page[StudentExamMaterialList])
def student_list_exam_materials(student: Annotated[Student, Depends(get_current_student)], params: ExamMaterialQuery = Depends(), db: Session = Depends(get_db)):

    check_student_eligibility(student)

    query = apply_material_filters(
        db.query(ExamMaterial).filter(ExamMaterial.is_active == True, ExamMaterial.is_locked == False),
        params
    )

    candidates = query.order_by(ExamMaterial.created_at.desc()).all()
    accessible = filter_accessible(candidates, student)
    page = accessible[params.skip:params.skip + params.limit]

    return Page[StudentExamMaterialList].build(
        [StudentExamMaterialList.model_validate(material, from_attributes=True) for material in page],
        len(accessible),
        params
    )

@exam_material_router.get("/{exam_material_id}", response_model=StudentExamMaterialList)
def student_get_exam_material(exam_material_id: str, student: Annotated[Student, Depends(get_current_student)], db: Session = Depends(get_db)):

    material = get_accessible_material_or_throw(db, exam_material_id, student)

    return StudentExamMaterialList.model_validate(material, from_attributes=True)

@exam_material_router.get("/{exam_material_id}/download")
def student_download_exam_material(exam_material_id: str, student: Annotated[Student, Depends(get_current_student)], db: Session = Depends(get_db)):

    material = get_accessible_material_or_throw(db, exam_material_id, student)

    response = material_file_response(material)
    record_download(db, material.id)

    return response
