from sqlalchemy import Boolean, Column, DateTime, String, func, text
from sqlalchemy.orm import relationship

from .base import Base, new_id


class StaffMember(Base):
    """Teacher or administrator account, resolved by the principal store."""

    __tablename__ = 'staff_member'

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    name = Column(String(255))
    email = Column(String(320), unique=True)
    role = Column(String(32), nullable=False, server_default=text("'teacher'"))
    is_active = Column(Boolean, nullable=False, server_default=text("true"))

    # Relationships
    teacher_permissions = relationship(
        'TeacherPermission', back_populates='teacher', foreign_keys='TeacherPermission.teacher_id'
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Teacher"
