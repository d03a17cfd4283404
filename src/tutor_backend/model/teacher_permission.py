from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Index,
    Integer, String, Boolean, func, text
)
from sqlalchemy.orm import relationship

from .base import Base, new_id


class TeacherPermission(Base):
    __tablename__ = 'teacher_permission'
    __table_args__ = (
        CheckConstraint(
            "permission_type IN ('view', 'download', 'manage', 'full')",
            name='teacher_permission_type_check'
        ),
        # At most one active grant per (teacher, material)
        Index(
            'teacher_permission_active_key', 'teacher_id', 'exam_material_id',
            unique=True,
            postgresql_where=text('is_active'),
            sqlite_where=text('is_active = 1'),
        ),
        Index('teacher_permission_material_idx', 'exam_material_id', 'is_active'),
        Index('teacher_permission_teacher_idx', 'teacher_id', 'is_active'),
        Index('teacher_permission_expires_idx', 'expires_at'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    teacher_id = Column(ForeignKey('staff_member.id', ondelete='CASCADE'), nullable=False)
    teacher_name = Column(String(255), nullable=False)
    exam_material_id = Column(ForeignKey('exam_material.id', ondelete='RESTRICT'), nullable=False)
    permission_type = Column(String(16), nullable=False, server_default=text("'view'"))
    granted_by = Column(ForeignKey('staff_member.id', ondelete='SET NULL'))
    granted_by_name = Column(String(255), nullable=False)
    granted_at = Column(DateTime(True), nullable=False)
    # NULL means the grant never expires
    expires_at = Column(DateTime(True))
    is_active = Column(Boolean, nullable=False, server_default=text("true"))
    notes = Column(String(500), nullable=False, server_default=text("''"))

    # Relationships
    teacher = relationship('StaffMember', back_populates='teacher_permissions', foreign_keys=[teacher_id])
    granter = relationship('StaffMember', foreign_keys=[granted_by])
    exam_material = relationship('ExamMaterial', back_populates='teacher_permissions')
    access_log = relationship(
        'TeacherPermissionLog',
        back_populates='teacher_permission',
        order_by='TeacherPermissionLog.id',
        cascade='all, delete-orphan',
    )


class TeacherPermissionLog(Base):
    """Append-only audit entry; the newest AUDIT_LOG_LIMIT rows per grant are kept."""

    __tablename__ = 'teacher_permission_log'
    __table_args__ = (
        CheckConstraint(
            "action IN ('view', 'download', 'grant', 'revoke', 'modify')",
            name='teacher_permission_log_action_check'
        ),
        Index('teacher_permission_log_grant_idx', 'teacher_permission_id', 'id'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    teacher_permission_id = Column(ForeignKey('teacher_permission.id', ondelete='CASCADE'), nullable=False)
    action = Column(String(16), nullable=False)
    timestamp = Column(DateTime(True), nullable=False)
    details = Column(String(1024), nullable=False, server_default=text("''"))

    teacher_permission = relationship('TeacherPermission', back_populates='access_log')
