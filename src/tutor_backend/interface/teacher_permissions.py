from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field

from tutor_backend.interface.base import BaseEntityList, ListQuery
from tutor_backend.permissions.grants import GrantState, grant_state, is_grant_expired
from tutor_backend.permissions.levels import AccessLogAction, PermissionType

class TeacherPermissionCreate(BaseModel):
    teacher_id: str = Field(min_length=1)
    exam_material_id: str = Field(min_length=1)
    permission_type: PermissionType
    expires_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)

class TeacherPermissionUpdate(BaseModel):
    permission_type: Optional[PermissionType] = None
    expires_at: Optional[datetime] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=500)

class TeacherPermissionExtend(BaseModel):
    expires_at: Optional[datetime]
    reason: Optional[str] = Field(None, max_length=200)

class AccessLogEntry(BaseModel):
    action: AccessLogAction
    timestamp: datetime
    details: str = ""

    model_config = ConfigDict(from_attributes=True)

class TeacherPermissionList(BaseEntityList):
    id: str
    teacher_id: str
    teacher_name: str
    exam_material_id: str
    permission_type: PermissionType
    granted_by: Optional[str] = None
    granted_by_name: str
    granted_at: datetime
    expires_at: Optional[datetime] = None
    is_active: bool
    notes: str = ""

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def state(self) -> GrantState:
        return grant_state(self)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return self.state == GrantState.ACTIVE_VALID

    @computed_field
    @property
    def is_expired(self) -> bool:
        return is_grant_expired(self)

class TeacherPermissionGet(TeacherPermissionList):
    access_log: List[AccessLogEntry] = []

class TeacherPermissionQuery(ListQuery):
    teacher_id: Optional[str] = None
    exam_material_id: Optional[str] = None
    permission_type: Optional[PermissionType] = None
    is_active: Optional[bool] = None

class PermissionCheckQuery(BaseModel):
    teacher_id: str
    exam_material_id: str
    action: str = "view"

class PermissionCheckResponse(PermissionCheckQuery):
    has_permission: bool

class PermissionStats(BaseModel):
    total: int
    active: int
    expired: int
    inactive: int
    by_type: Dict[str, int]
    by_teacher: Dict[str, int]
