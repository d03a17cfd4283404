from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, func, text

from .base import Base, JSONList, new_id


class Student(Base):
    __tablename__ = 'student'
    __table_args__ = (
        CheckConstraint(
            "access_level IS NULL OR access_level IN ('basic', 'premium', 'vip')",
            name='student_access_level_check'
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())
    first_name = Column(String(255))
    last_name = Column(String(255))
    email = Column(String(320))
    status = Column(String(32), nullable=False, server_default=text("'active'"))
    access_level = Column(String(32))
    grade = Column(String(64))
    subjects = Column(JSONList, nullable=False, default=list)
    # Gates the exam-material feature as a whole, independent of tier
    has_exam_access = Column(Boolean, nullable=False, server_default=text("false"))
