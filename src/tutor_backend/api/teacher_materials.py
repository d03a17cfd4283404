import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tutor_backend.api.exam_materials import get_exam_material_or_throw, material_file_response, record_download
from tutor_backend.database import get_db
from tutor_backend.interface.exam_materials import StudentExamMaterialList
from tutor_backend.permissions.auth import require_staff
from tutor_backend.permissions.evaluator import require_permission
from tutor_backend.permissions.ledger import TeacherPermissionLedger
from tutor_backend.permissions.levels import AccessLogAction
from tutor_backend.permissions.principal import Principal
from tutor_backend.settings import settings

logger = logging.getLogger(__name__)

teacher_material_router = APIRouter()

@teacher_material_router.get("/exam-materials/{exam_material_id}", response_model=StudentExamMaterialList)
def teacher_view_exam_material(exam_material_id: str, permissions: Annotated[Principal, Depends(require_staff)], db: Session = Depends(get_db)):

    material = get_exam_material_or_throw(db, exam_material_id)
    permission = require_permission(db, permissions.get_user_id_or_throw(), material.id, AccessLogAction.VIEW.value)

    if settings.LOG_TEACHER_VIEWS:
        TeacherPermissionLedger(db).log_access(permission.id, AccessLogAction.VIEW, "Material viewed")

    return StudentExamMaterialList.model_validate(material, from_attributes=True)

@teacher_material_router.get("/exam-materials/{exam_material_id}/download")
def teacher_download_exam_material(exam_material_id: str, permissions: Annotated[Principal, Depends(require_staff)], db: Session = Depends(get_db)):

    material = get_exam_material_or_throw(db, exam_material_id)
    permission = require_permission(db, permissions.get_user_id_or_throw(), material.id, AccessLogAction.DOWNLOAD.value)

    response = material_file_response(material)

    TeacherPermissionLedger(db).log_access(permission.id, AccessLogAction.DOWNLOAD, f"Downloaded {material.file_name}")
    record_download(db, material.id)

    logger.info(f"Teacher {permission.teacher_id} downloaded material {exam_material_id}")

    return response
