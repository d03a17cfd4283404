from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Column, DateTime,
    ForeignKey, Index, Integer, String, func, text
)
from sqlalchemy.orm import relationship

from .base import Base, JSONList, new_id


class ExamMaterial(Base):
    __tablename__ = 'exam_material'
    __table_args__ = (
        CheckConstraint("type IN ('exam', 'solution', 'practice', 'theory', 'notes')", name='exam_material_type_check'),
        CheckConstraint("access_level IN ('basic', 'premium', 'vip')", name='exam_material_access_level_check'),
        Index('exam_material_listing_idx', 'subject', 'grade', 'year'),
        Index('exam_material_state_idx', 'is_active', 'is_locked'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    title = Column(String(255), nullable=False)
    description = Column(String(4096))
    subject = Column(String(255), nullable=False)
    grade = Column(String(64), nullable=False)
    year = Column(Integer, nullable=False)
    type = Column(String(32), nullable=False)
    access_level = Column(String(32), nullable=False, server_default=text("'basic'"))

    # Storage locator, never exposed to students
    file_path = Column(String(1024), nullable=False)
    file_name = Column(String(512), nullable=False)
    file_size = Column(BigInteger, nullable=False, server_default=text("0"))
    mime_type = Column(String(255), nullable=False, server_default=text("'application/pdf'"))
    tags = Column(JSONList, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, server_default=text("true"))
    is_locked = Column(Boolean, nullable=False, server_default=text("false"))
    lock_reason = Column(String(1024))

    uploaded_by = Column(ForeignKey('staff_member.id', ondelete='SET NULL'))
    uploaded_by_name = Column(String(255))

    download_count = Column(Integer, nullable=False, server_default=text("0"))
    last_downloaded = Column(DateTime(True))

    # Empty list means the dimension is unscoped
    allowed_students = Column(JSONList, nullable=False, default=list)
    allowed_grades = Column(JSONList, nullable=False, default=list)
    allowed_subjects = Column(JSONList, nullable=False, default=list)
    start_date = Column(DateTime(True))
    end_date = Column(DateTime(True))

    # Relationships
    uploader = relationship('StaffMember', foreign_keys=[uploaded_by])
    teacher_permissions = relationship('TeacherPermission', back_populates='exam_material')
