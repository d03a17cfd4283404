from .base import Base, metadata
from .staff import StaffMember
from .student import Student
from .exam_material import ExamMaterial
from .teacher_permission import TeacherPermission, TeacherPermissionLog

__all__ = [
    'Base',
    'metadata',
    'StaffMember',
    'Student',
    'ExamMaterial',
    'TeacherPermission',
    'TeacherPermissionLog',
]
