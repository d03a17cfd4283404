from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from tutor_backend.interface.base import BaseEntityList, ListQuery
from tutor_backend.permissions.levels import AccessTier, MaterialType

class AccessWindow(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode='after')
    def check_window(self):
        if self.start_date is not None and self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class ExamMaterialCreate(AccessWindow):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    subject: str = Field(min_length=1)
    grade: str = Field(min_length=1)
    year: int
    type: MaterialType
    access_level: AccessTier = AccessTier.BASIC
    file_path: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    file_size: int = Field(0, ge=0)
    mime_type: str = "application/pdf"
    tags: List[str] = []
    allowed_students: List[str] = []
    allowed_grades: List[str] = []
    allowed_subjects: List[str] = []

class ExamMaterialUpdate(AccessWindow):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    subject: Optional[str] = None
    grade: Optional[str] = None
    year: Optional[int] = None
    type: Optional[MaterialType] = None
    access_level: Optional[AccessTier] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None
    is_locked: Optional[bool] = None
    lock_reason: Optional[str] = None
    allowed_students: Optional[List[str]] = None
    allowed_grades: Optional[List[str]] = None
    allowed_subjects: Optional[List[str]] = None

class StudentExamMaterialList(BaseEntityList):
    """What a student may see. Allow-lists and the storage locator stay server side."""
    id: str
    title: str
    description: Optional[str] = None
    subject: str
    grade: str
    year: int
    type: MaterialType
    access_level: AccessTier
    file_name: str
    file_size: int
    mime_type: str
    tags: List[str] = []

    model_config = ConfigDict(from_attributes=True)

class ExamMaterialGet(StudentExamMaterialList):
    file_path: str
    is_active: bool
    is_locked: bool
    lock_reason: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_by_name: Optional[str] = None
    download_count: int
    last_downloaded: Optional[datetime] = None
    allowed_students: List[str] = []
    allowed_grades: List[str] = []
    allowed_subjects: List[str] = []
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class ExamMaterialQuery(ListQuery):
    search: Optional[str] = None
    subject: Optional[str] = None
    grade: Optional[str] = None
    type: Optional[MaterialType] = None
    year: Optional[int] = None

class ExamMaterialAdminQuery(ExamMaterialQuery):
    status: Optional[Literal["active", "inactive", "locked"]] = None

class ExamMaterialStats(BaseModel):
    total: int
    active: int
    locked: int
    inactive: int
    by_subject: Dict[str, int]
    by_type: Dict[str, int]
    by_grade: Dict[str, int]
