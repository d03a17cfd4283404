"""
API tests for exam material access by students, teachers and admins.
"""

import os

import pytest
from sqlalchemy.exc import IntegrityError

from tutor_backend.model.exam_material import ExamMaterial
from tutor_backend.permissions.ledger import TeacherPermissionLedger
from tutor_backend.tests.conftest import days_from_now, staff_headers, student_headers

FILE_CONTENT = b"%PDF-1.4 ok"


@pytest.fixture
def stored_material(make_material, storage_dir):
    with open(os.path.join(storage_dir, "algebra.pdf"), "wb") as f:
        f.write(FILE_CONTENT)
    return make_material()


def download_count(test_db, material_id):
    test_db.expire_all()
    return test_db.get(ExamMaterial, material_id).download_count


class TestStudentAccess:

    def test_end_to_end_scoping(self, client, make_student, make_material):
        basic_student = make_student(access_level="basic", grade="10", subjects=["math"])
        vip_student = make_student(access_level="vip", grade="11", subjects=["physics"])

        open_material = make_material(title="Open")
        vip_material = make_material(title="VIP only", access_level="vip")
        grade_material = make_material(title="Grade 11", allowed_grades=["11"])
        subject_material = make_material(title="Physics", allowed_subjects=["physics"])
        personal_material = make_material(title="Personal", allowed_students=[basic_student.id])
        make_material(title="Locked", is_locked=True, lock_reason="Under review")
        make_material(title="Retired", is_active=False)
        make_material(title="Upcoming", start_date=days_from_now(3))
        make_material(title="Past", end_date=days_from_now(-3))

        basic_titles = {item["title"] for item in client.get("/exam-materials", headers=student_headers(basic_student)).json()["items"]}
        vip_titles = {item["title"] for item in client.get("/exam-materials", headers=student_headers(vip_student)).json()["items"]}

        assert basic_titles == {open_material.title, personal_material.title}
        assert vip_titles == {open_material.title, vip_material.title, grade_material.title, subject_material.title}

    def test_listing_counts_only_accessible(self, client, make_student, make_material):
        student = make_student()
        for index in range(3):
            make_material(title=f"Open {index}")
        make_material(title="VIP", access_level="vip")

        page = client.get("/exam-materials", params={"limit": 2}, headers=student_headers(student)).json()

        assert page["total"] == 3
        assert page["pages"] == 2
        assert len(page["items"]) == 2

    def test_listing_filters(self, client, make_student, make_material):
        student = make_student()
        make_material(title="Algebra", subject="math", year=2023)
        make_material(title="Algebra 2024", subject="math", year=2024)

        page = client.get("/exam-materials", params={"year": 2023}, headers=student_headers(student)).json()

        assert [item["title"] for item in page["items"]] == ["Algebra"]

    def test_listing_search(self, client, make_student, make_material):
        student = make_student()
        make_material(title="Quadratic Equations")
        make_material(title="Vectors", description="Intro to QUADRATIC forms")
        make_material(title="Mock exam", tags=["quadratics", "revision"])
        make_material(title="Geometry")
        make_material(title="Quadratics VIP", access_level="vip")

        page = client.get("/exam-materials", params={"search": "quadratic"}, headers=student_headers(student)).json()

        assert {item["title"] for item in page["items"]} == {"Quadratic Equations", "Vectors", "Mock exam"}
        assert page["total"] == 3

    def test_unknown_student_tier_rejected_by_schema(self, test_db, make_student):
        with pytest.raises(IntegrityError):
            make_student(access_level="gold")
        test_db.rollback()

    def test_student_view_hides_server_fields(self, client, make_student, material):
        student = make_student()

        response = client.get(f"/exam-materials/{material.id}", headers=student_headers(student))

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == material.title
        for field in ("file_path", "allowed_students", "allowed_grades", "allowed_subjects", "download_count", "is_locked"):
            assert field not in data

    def test_denied_material_is_forbidden(self, client, make_student, make_material):
        student = make_student(access_level="basic")
        material = make_material(access_level="premium")

        response = client.get(f"/exam-materials/{material.id}", headers=student_headers(student))

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "access_denied"

    def test_unknown_material_not_found(self, client, make_student):
        assert client.get("/exam-materials/missing", headers=student_headers(make_student())).status_code == 404

    def test_exam_access_disabled(self, client, make_student, material):
        student = make_student(has_exam_access=False)

        response = client.get("/exam-materials", headers=student_headers(student))

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "exam_access_disabled"

    def test_suspended_student(self, client, make_student, material):
        student = make_student(status="suspended")

        response = client.get(f"/exam-materials/{material.id}", headers=student_headers(student))

        assert response.json()["detail"]["reason"] == "student_inactive"

    def test_staff_cannot_use_student_routes(self, client, teacher):
        assert client.get("/exam-materials", headers=staff_headers(teacher)).status_code == 403

    def test_download_counts(self, client, test_db, make_student, stored_material):
        student = make_student()

        response = client.get(f"/exam-materials/{stored_material.id}/download", headers=student_headers(student))

        assert response.status_code == 200
        assert response.content == FILE_CONTENT
        assert download_count(test_db, stored_material.id) == 1
        assert test_db.get(ExamMaterial, stored_material.id).last_downloaded is not None

    def test_view_does_not_count(self, client, test_db, make_student, stored_material):
        client.get(f"/exam-materials/{stored_material.id}", headers=student_headers(make_student()))
        assert download_count(test_db, stored_material.id) == 0

    def test_denied_download_does_not_count(self, client, test_db, make_student, storage_dir, make_material):
        with open(os.path.join(storage_dir, "vip.pdf"), "wb") as f:
            f.write(FILE_CONTENT)
        material = make_material(file_path="vip.pdf", file_name="vip.pdf", access_level="vip")

        response = client.get(f"/exam-materials/{material.id}/download", headers=student_headers(make_student()))

        assert response.status_code == 403
        assert download_count(test_db, material.id) == 0

    def test_missing_file(self, client, test_db, make_student, make_material):
        material = make_material(file_path="gone.pdf")

        response = client.get(f"/exam-materials/{material.id}/download", headers=student_headers(make_student()))

        assert response.status_code == 404
        assert download_count(test_db, material.id) == 0

    def test_path_outside_storage_is_not_served(self, client, make_student, make_material):
        material = make_material(file_path="../../etc/passwd")

        response = client.get(f"/exam-materials/{material.id}/download", headers=student_headers(make_student()))

        assert response.status_code == 404


class TestTeacherAccess:

    @pytest.fixture
    def ledger(self, test_db):
        return TeacherPermissionLedger(test_db)

    def test_view_requires_grant(self, client, teacher, material):
        response = client.get(f"/teacher/exam-materials/{material.id}", headers=staff_headers(teacher))

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "permission_denied"

    def test_view_is_logged(self, client, test_db, ledger, admin, teacher, stored_material):
        permission = ledger.grant(teacher.id, stored_material.id, "view", granted_by=admin.id)

        response = client.get(f"/teacher/exam-materials/{stored_material.id}", headers=staff_headers(teacher))

        assert response.status_code == 200
        assert "file_path" not in response.json()
        assert [entry.action for entry in ledger.get(permission.id).access_log] == ["grant", "view"]
        assert download_count(test_db, stored_material.id) == 0

    def test_view_logging_can_be_disabled(self, client, ledger, admin, teacher, material, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "LOG_TEACHER_VIEWS", False)
        permission = ledger.grant(teacher.id, material.id, "view", granted_by=admin.id)

        assert client.get(f"/teacher/exam-materials/{material.id}", headers=staff_headers(teacher)).status_code == 200
        assert [entry.action for entry in ledger.get(permission.id).access_log] == ["grant"]

    def test_view_grant_cannot_download(self, client, test_db, ledger, admin, teacher, stored_material):
        ledger.grant(teacher.id, stored_material.id, "view", granted_by=admin.id)

        response = client.get(f"/teacher/exam-materials/{stored_material.id}/download", headers=staff_headers(teacher))

        assert response.status_code == 403
        assert download_count(test_db, stored_material.id) == 0

    def test_download_grant(self, client, test_db, ledger, admin, teacher, stored_material):
        permission = ledger.grant(teacher.id, stored_material.id, "manage", granted_by=admin.id)

        response = client.get(f"/teacher/exam-materials/{stored_material.id}/download", headers=staff_headers(teacher))

        assert response.status_code == 200
        assert response.content == FILE_CONTENT
        assert download_count(test_db, stored_material.id) == 1
        log = ledger.get(permission.id).access_log
        assert log[-1].action == "download"
        assert log[-1].details == "Downloaded algebra.pdf"

    def test_expired_grant_denied(self, client, ledger, admin, teacher, material):
        ledger.grant(teacher.id, material.id, "full", granted_by=admin.id, expires_at=days_from_now(-1))

        response = client.get(f"/teacher/exam-materials/{material.id}", headers=staff_headers(teacher))

        assert response.status_code == 403

    def test_admin_needs_grant_too(self, client, admin, material):
        assert client.get(f"/teacher/exam-materials/{material.id}", headers=staff_headers(admin)).status_code == 403

    def test_students_rejected(self, client, make_student, material):
        response = client.get(f"/teacher/exam-materials/{material.id}", headers=student_headers(make_student()))
        assert response.json()["detail"]["reason"] == "staff_required"


class TestAdminMaterials:

    def test_create_and_get(self, client, admin):
        body = dict(
            title="Calculus final",
            subject="math",
            grade="12",
            year=2024,
            type="exam",
            access_level="premium",
            file_path="calculus.pdf",
            file_name="calculus.pdf",
            file_size=2048,
            allowed_grades=["12"],
        )

        response = client.post("/exam-materials/admin", json=body, headers=staff_headers(admin))

        assert response.status_code == 201
        created = response.json()
        assert created["uploaded_by"] == admin.id
        assert created["uploaded_by_name"] == "Head Admin"
        assert created["is_active"] is True
        assert created["download_count"] == 0
        assert created["allowed_grades"] == ["12"]

        fetched = client.get(f"/exam-materials/admin/{created['id']}", headers=staff_headers(admin))
        assert fetched.json()["file_path"] == "calculus.pdf"

    def test_invalid_window_rejected(self, client, admin):
        body = dict(
            title="Window", subject="math", grade="12", year=2024, type="exam",
            file_path="w.pdf", file_name="w.pdf",
            start_date="2025-02-01T00:00:00Z", end_date="2025-01-01T00:00:00Z",
        )
        assert client.post("/exam-materials/admin", json=body, headers=staff_headers(admin)).status_code == 422

    def test_lock_hides_from_students(self, client, admin, make_student, material):
        student = make_student()

        response = client.patch(
            f"/exam-materials/admin/{material.id}",
            json={"is_locked": True, "lock_reason": "Leaked"},
            headers=staff_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["is_locked"] is True
        assert client.get("/exam-materials", headers=student_headers(student)).json()["total"] == 0
        assert client.get(f"/exam-materials/{material.id}", headers=student_headers(student)).status_code == 403

    def test_admin_list_status_filter(self, client, admin, make_material):
        make_material(title="Active")
        make_material(title="Locked", is_locked=True)
        make_material(title="Inactive", is_active=False)
        headers = staff_headers(admin)

        locked = client.get("/exam-materials/admin", params={"status": "locked"}, headers=headers).json()
        inactive = client.get("/exam-materials/admin", params={"status": "inactive"}, headers=headers).json()
        everything = client.get("/exam-materials/admin", headers=headers).json()

        assert [item["title"] for item in locked["items"]] == ["Locked"]
        assert [item["title"] for item in inactive["items"]] == ["Inactive"]
        assert everything["total"] == 3

    def test_teacher_cannot_administer(self, client, teacher):
        assert client.get("/exam-materials/admin", headers=staff_headers(teacher)).status_code == 403

    def test_admin_search_includes_locked(self, client, admin, make_material):
        make_material(title="Probability", is_locked=True)
        make_material(title="Statistics", subject="Probability and statistics")
        make_material(title="Geometry")

        page = client.get("/exam-materials/admin", params={"search": "probab"}, headers=staff_headers(admin)).json()

        assert {item["title"] for item in page["items"]} == {"Probability", "Statistics"}

    def test_stats(self, client, admin, make_material):
        make_material(subject="math", type="exam", grade="10")
        make_material(subject="math", type="solution", grade="11", is_locked=True)
        make_material(subject="physics", type="exam", grade="10", is_active=False)

        response = client.get("/exam-materials/admin/stats", headers=staff_headers(admin))

        assert response.status_code == 200
        assert response.json() == {
            "total": 3,
            "active": 2,
            "locked": 1,
            "inactive": 1,
            "by_subject": {"math": 2, "physics": 1},
            "by_type": {"exam": 2, "solution": 1},
            "by_grade": {"10": 2, "11": 1},
        }

    def test_stats_requires_admin(self, client, teacher):
        assert client.get("/exam-materials/admin/stats", headers=staff_headers(teacher)).status_code == 403

    def test_end_date_before_stored_start_rejected(self, client, test_db, admin, make_material):
        material = make_material(start_date=days_from_now(10))

        response = client.patch(
            f"/exam-materials/admin/{material.id}",
            json={"end_date": days_from_now(5).isoformat()},
            headers=staff_headers(admin),
        )

        assert response.status_code == 400
        test_db.expire_all()
        assert test_db.get(ExamMaterial, material.id).end_date is None

    def test_start_date_after_stored_end_rejected(self, client, admin, make_material):
        material = make_material(end_date=days_from_now(5))

        response = client.patch(
            f"/exam-materials/admin/{material.id}",
            json={"start_date": days_from_now(10).isoformat()},
            headers=staff_headers(admin),
        )

        assert response.status_code == 400
