"""exam material access

Revision ID: 4f2c7d91ab03
Revises: 
Create Date: 2026-10-19 09:12:44.103812

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4f2c7d91ab03'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('staff_member',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('role', sa.String(length=32), server_default=sa.text("'teacher'"), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_table('student',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('status', sa.String(length=32), server_default=sa.text("'active'"), nullable=False),
        sa.Column('access_level', sa.String(length=32), nullable=True),
        sa.Column('grade', sa.String(length=64), nullable=True),
        sa.Column('subjects', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('has_exam_access', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.CheckConstraint("access_level IS NULL OR access_level IN ('basic', 'premium', 'vip')", name='student_access_level_check'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('exam_material',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=4096), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('grade', sa.String(length=64), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('access_level', sa.String(length=32), server_default=sa.text("'basic'"), nullable=False),
        sa.Column('file_path', sa.String(length=1024), nullable=False),
        sa.Column('file_name', sa.String(length=512), nullable=False),
        sa.Column('file_size', sa.BigInteger(), server_default=sa.text('0'), nullable=False),
        sa.Column('mime_type', sa.String(length=255), server_default=sa.text("'application/pdf'"), nullable=False),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('is_locked', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('lock_reason', sa.String(length=1024), nullable=True),
        sa.Column('uploaded_by', sa.String(length=36), nullable=True),
        sa.Column('uploaded_by_name', sa.String(length=255), nullable=True),
        sa.Column('download_count', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('last_downloaded', sa.DateTime(timezone=True), nullable=True),
        sa.Column('allowed_students', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('allowed_grades', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('allowed_subjects', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("type IN ('exam', 'solution', 'practice', 'theory', 'notes')", name='exam_material_type_check'),
        sa.CheckConstraint("access_level IN ('basic', 'premium', 'vip')", name='exam_material_access_level_check'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['staff_member.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('exam_material_listing_idx', 'exam_material', ['subject', 'grade', 'year'], unique=False)
    op.create_index('exam_material_state_idx', 'exam_material', ['is_active', 'is_locked'], unique=False)

    op.create_table('teacher_permission',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('teacher_id', sa.String(length=36), nullable=False),
        sa.Column('teacher_name', sa.String(length=255), nullable=False),
        sa.Column('exam_material_id', sa.String(length=36), nullable=False),
        sa.Column('permission_type', sa.String(length=16), server_default=sa.text("'view'"), nullable=False),
        sa.Column('granted_by', sa.String(length=36), nullable=True),
        sa.Column('granted_by_name', sa.String(length=255), nullable=False),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('notes', sa.String(length=500), server_default=sa.text("''"), nullable=False),
        sa.CheckConstraint("permission_type IN ('view', 'download', 'manage', 'full')", name='teacher_permission_type_check'),
        sa.ForeignKeyConstraint(['teacher_id'], ['staff_member.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exam_material_id'], ['exam_material.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['granted_by'], ['staff_member.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'teacher_permission_active_key', 'teacher_permission', ['teacher_id', 'exam_material_id'],
        unique=True, postgresql_where=sa.text('is_active')
    )
    op.create_index('teacher_permission_material_idx', 'teacher_permission', ['exam_material_id', 'is_active'], unique=False)
    op.create_index('teacher_permission_teacher_idx', 'teacher_permission', ['teacher_id', 'is_active'], unique=False)
    op.create_index('teacher_permission_expires_idx', 'teacher_permission', ['expires_at'], unique=False)

    op.create_table('teacher_permission_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('teacher_permission_id', sa.String(length=36), nullable=False),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('details', sa.String(length=1024), server_default=sa.text("''"), nullable=False),
        sa.CheckConstraint("action IN ('view', 'download', 'grant', 'revoke', 'modify')", name='teacher_permission_log_action_check'),
        sa.ForeignKeyConstraint(['teacher_permission_id'], ['teacher_permission.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('teacher_permission_log_grant_idx', 'teacher_permission_log', ['teacher_permission_id', 'id'], unique=False)


def downgrade() -> None:
    op.drop_index('teacher_permission_log_grant_idx', table_name='teacher_permission_log')
    op.drop_table('teacher_permission_log')
    op.drop_index('teacher_permission_expires_idx', table_name='teacher_permission')
    op.drop_index('teacher_permission_teacher_idx', table_name='teacher_permission')
    op.drop_index('teacher_permission_material_idx', table_name='teacher_permission')
    op.drop_index('teacher_permission_active_key', table_name='teacher_permission')
    op.drop_table('teacher_permission')
    op.drop_index('exam_material_state_idx', table_name='exam_material')
    op.drop_index('exam_material_listing_idx', table_name='exam_material')
    op.drop_table('exam_material')
    op.drop_table('student')
    op.drop_table('staff_member')
