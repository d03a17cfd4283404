"""
Pytest configuration and fixtures for all tests.

Tests run against an in-memory SQLite database; the FastAPI app shares the
test session through a `get_db` override.
"""

import datetime
from typing import Generator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tutor_backend.database import get_db
from tutor_backend.model import Base, ExamMaterial, StaffMember, Student
from tutor_backend.permissions.principal import Principal
from tutor_backend.settings import settings

TEST_API_TOKEN = "test-token"


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """Create a test database session using SQLite in-memory."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def test_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "API_TOKENS", [TEST_API_TOKEN])
    monkeypatch.setattr(settings, "EXAM_MATERIALS_STORAGE_DIR", str(tmp_path))
    monkeypatch.setattr(settings, "LOG_TEACHER_VIEWS", True)
    return settings


@pytest.fixture
def storage_dir(test_settings):
    return test_settings.EXAM_MATERIALS_STORAGE_DIR


@pytest.fixture
def client(test_db):
    from tutor_backend.server import app

    def _get_test_db():
        yield test_db

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def principal_headers(principal: Principal) -> dict:
    return {
        "X-API-Token": TEST_API_TOKEN,
        "X-Principal": principal.encode().decode(),
    }


def staff_headers(staff: StaffMember) -> dict:
    return principal_headers(Principal(user_id=staff.id, kind="staff", role=staff.role, name=staff.name))


def student_headers(student: Student) -> dict:
    return principal_headers(Principal(user_id=student.id, kind="student", name=student.first_name))


# Factories

@pytest.fixture
def make_staff(test_db):
    def _make_staff(name: str = "Ms. Teacher", role: str = "teacher", **kwargs) -> StaffMember:
        staff = StaffMember(
            id=str(uuid4()),
            name=name,
            email=kwargs.pop("email", f"{uuid4().hex[:8]}@tutor.test"),
            role=role,
            is_active=True,
            **kwargs
        )
        test_db.add(staff)
        test_db.commit()
        return staff
    return _make_staff


@pytest.fixture
def make_student(test_db):
    def _make_student(**kwargs) -> Student:
        values = dict(
            id=str(uuid4()),
            first_name="Sam",
            last_name="Student",
            email=f"{uuid4().hex[:8]}@student.test",
            status="active",
            access_level="basic",
            grade="10",
            subjects=["math"],
            has_exam_access=True,
        )
        values.update(kwargs)
        student = Student(**values)
        test_db.add(student)
        test_db.commit()
        return student
    return _make_student


@pytest.fixture
def make_material(test_db):
    def _make_material(**kwargs) -> ExamMaterial:
        values = dict(
            id=str(uuid4()),
            title="Algebra midterm",
            description="Chapters 1-4",
            subject="math",
            grade="10",
            year=2024,
            type="exam",
            access_level="basic",
            file_path="algebra.pdf",
            file_name="algebra.pdf",
            file_size=11,
            mime_type="application/pdf",
            tags=[],
            is_active=True,
            is_locked=False,
            download_count=0,
            allowed_students=[],
            allowed_grades=[],
            allowed_subjects=[],
        )
        values.update(kwargs)
        material = ExamMaterial(**values)
        test_db.add(material)
        test_db.commit()
        return material
    return _make_material


@pytest.fixture
def admin(make_staff):
    return make_staff(name="Head Admin", role="admin")


@pytest.fixture
def teacher(make_staff):
    return make_staff(name="Ms. Rivera", role="teacher")


@pytest.fixture
def material(make_material):
    return make_material()


def days_from_now(days: int) -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(days=days)
