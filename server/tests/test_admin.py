import logging

import pytest
from sqlalchemy import select

from school_portal.models import Assignment, Mark, Question, Student, Submission, Subject, Teacher, User


@pytest.mark.parametrize("headers_fixture", ["teacher_headers", "student_headers"])
def test_admin_routes_reject_other_roles(client, request, headers_fixture):
    headers = request.getfixturevalue(headers_fixture)

    response = client.get("/api/admin/dashboard", headers=headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


def test_admin_routes_require_token(client, school):
    assert client.get("/api/admin/users").status_code == 401


def test_list_users_includes_class_names(client, school, admin_headers):
    users = client.get("/api/admin/users", headers=admin_headers).json()
    by_email = {u["email"]: u for u in users}

    assert len(users) == 6
    assert by_email["student@school.com"]["class_name"] == "Grade 10 A"
    assert by_email["outsider@school.com"]["class_name"] == "Grade 11 B"
    assert by_email["teacher@school.com"]["class_name"] == "Grade 10 A"
    assert by_email["admin@school.com"]["class_name"] is None
    assert all("password" not in u for u in users)


def test_create_student_creates_profile(client, school, admin_headers, db, login):
    response = client.post("/api/admin/users", headers=admin_headers, json={
        "full_name": "New Kid",
        "email": "new@school.com",
        "password": "welcome1",
        "role": "student",
        "class_id": school.class_b,
    })

    assert response.status_code == 201
    user_id = response.json()["user_id"]
    student = db.scalar(select(Student).where(Student.user_id == user_id))
    assert student.class_id == school.class_b
    assert db.get(User, user_id).is_whitelisted is True

    # New account can log in with the chosen password
    assert login("new@school.com", "welcome1")


def test_create_teacher_without_class_has_no_profile(client, school, admin_headers, db):
    response = client.post("/api/admin/users", headers=admin_headers, json={
        "full_name": "Floating Teacher",
        "email": "floating@school.com",
        "password": "pw",
        "role": "teacher",
    })

    assert response.status_code == 201
    assert db.scalar(select(Teacher).where(Teacher.user_id == response.json()["user_id"])) is None


def test_create_user_with_duplicate_email(client, school, admin_headers):
    response = client.post("/api/admin/users", headers=admin_headers, json={
        "full_name": "Copy", "email": "student@school.com", "password": "pw", "role": "student",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already exists"


def test_create_user_with_unknown_class(client, school, admin_headers):
    response = client.post("/api/admin/users", headers=admin_headers, json={
        "full_name": "Lost", "email": "lost@school.com", "password": "pw", "role": "student", "class_id": "missing",
    })
    assert response.status_code == 404


def test_create_user_with_invalid_role(client, school, admin_headers):
    response = client.post("/api/admin/users", headers=admin_headers, json={
        "full_name": "X", "email": "x@school.com", "password": "pw", "role": "principal",
    })
    assert response.status_code == 422


def test_delete_user_removes_profile_and_submissions(client, school, admin_headers, student_headers, db):
    client.post(f"/api/assignments/{school.mcq}/submit", headers=student_headers, json={"answers": {}})

    response = client.delete(f"/api/admin/users/{school.student}", headers=admin_headers)

    assert response.status_code == 200
    db.expire_all()
    assert db.get(User, school.student) is None
    assert db.get(Student, school.student_profile) is None
    assert db.scalars(select(Submission)).all() == []


def test_delete_unknown_user(client, school, admin_headers):
    assert client.delete("/api/admin/users/missing", headers=admin_headers).status_code == 404


def test_admin_cannot_delete_self(client, school, admin_headers):
    response = client.delete(f"/api/admin/users/{school.admin}", headers=admin_headers)
    assert response.status_code == 400


def test_whitelist_toggle_blocks_login(client, school, admin_headers):
    response = client.patch(
        f"/api/admin/users/{school.classmate}/whitelist", headers=admin_headers, json={"is_whitelisted": False}
    )
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"email": "classmate@school.com", "password": "password123"})
    assert login.status_code == 403

    client.patch(f"/api/admin/users/{school.classmate}/whitelist", headers=admin_headers, json={"is_whitelisted": True})
    login = client.post("/api/auth/login", json={"email": "classmate@school.com", "password": "password123"})
    assert login.status_code == 200


def test_classes_crud(client, school, admin_headers):
    created = client.post("/api/admin/classes", headers=admin_headers, json={"name": "Grade 9 C", "level": "09"})
    assert created.status_code == 201

    classes = client.get("/api/admin/classes", headers=admin_headers).json()
    assert [c["name"] for c in classes] == ["Grade 9 C", "Grade 10 A", "Grade 11 B"]

    deleted = client.delete(f"/api/admin/classes/{created.json()['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert len(client.get("/api/admin/classes", headers=admin_headers).json()) == 2


def test_create_class_requires_name_and_level(client, school, admin_headers):
    response = client.post("/api/admin/classes", headers=admin_headers, json={"name": "No level"})
    assert response.status_code == 422


def test_delete_class_cascades_to_subjects_and_detaches_teachers(client, school, admin_headers, db):
    response = client.delete(f"/api/admin/classes/{school.class_b}", headers=admin_headers)
    assert response.status_code == 200

    db.expire_all()
    assert db.get(Subject, school.art) is None
    assert db.get(Assignment, school.art_task) is None
    assert db.get(Teacher, school.idle_teacher_profile).class_id is None
    # Outsider keeps the account but loses the class profile
    assert db.get(User, school.outsider) is not None
    assert db.scalar(select(Student).where(Student.user_id == school.outsider)) is None


def test_subjects_listing_and_creation(client, school, admin_headers):
    created = client.post(
        "/api/admin/subjects", headers=admin_headers, json={"name": "Biology", "class_id": school.class_a}
    )
    assert created.status_code == 201

    subjects = client.get("/api/admin/subjects", headers=admin_headers).json()
    assert [(s["name"], s["class_name"]) for s in subjects] == [
        ("Biology", "Grade 10 A"),
        ("Mathematics", "Grade 10 A"),
        ("Art", "Grade 11 B"),
    ]
    assert subjects[0]["class_level"] == "10"


def test_create_subject_for_unknown_class(client, school, admin_headers):
    response = client.post("/api/admin/subjects", headers=admin_headers, json={"name": "X", "class_id": "missing"})
    assert response.status_code == 404


def test_delete_subject(client, school, admin_headers, teacher_headers):
    assert client.delete(f"/api/admin/subjects/{school.math}", headers=admin_headers).status_code == 200

    me = client.get("/api/auth/me", headers=teacher_headers).json()
    assert me["teacher_info"]["subjects"] == []


def test_assign_and_unassign_teacher_subject(client, school, admin_headers):
    url = f"/api/admin/teachers/{school.idle_teacher_profile}/subjects"

    assert client.post(url, headers=admin_headers, json={"subject_id": school.art}).status_code == 201
    assert client.post(url, headers=admin_headers, json={"subject_id": school.art}).status_code == 400

    teachers = {t["email"]: t for t in client.get("/api/admin/teachers", headers=admin_headers).json()}
    assert teachers["idle@school.com"]["subjects"] == [{"id": school.art, "name": "Art"}]
    assert teachers["teacher@school.com"]["class_name"] == "Grade 10 A"

    assert client.delete(f"{url}/{school.art}", headers=admin_headers).status_code == 200
    assert client.delete(f"{url}/{school.art}", headers=admin_headers).status_code == 404


def test_dashboard_counts(client, school, admin_headers, student_headers):
    client.post(f"/api/assignments/{school.written}/submit", headers=student_headers, json={"answers": {}})
    client.post(f"/api/assignments/{school.mcq}/submit", headers=student_headers, json={"answers": {}})

    stats = client.get("/api/admin/dashboard", headers=admin_headers).json()

    assert stats == {
        "total_users": 6,
        "total_students": 3,
        "total_teachers": 2,
        "total_classes": 2,
        "total_subjects": 2,
        "total_assignments": 3,
        "pending_submissions": 1,
    }


def test_delete_subject_removes_graded_work(client, school, admin_headers, teacher_headers, student_headers, db):
    w1, w2 = school.written_questions
    submitted = client.post(
        f"/api/assignments/{school.written}/submit", headers=student_headers, json={"answers": {w1: "a", w2: "b"}}
    ).json()
    client.put(f"/api/teacher/submissions/{submitted['submission_id']}/grade", headers=teacher_headers, json={
        "total_score": 7,
        "question_marks": [{"question_id": w1, "obtained_marks": 4}, {"question_id": w2, "obtained_marks": 3}],
    })
    client.post(f"/api/assignments/{school.mcq}/submit", headers=student_headers, json={"answers": {}})
    math_assignments = [school.mcq, school.written]

    assert client.delete(f"/api/admin/subjects/{school.math}", headers=admin_headers).status_code == 200

    db.expire_all()
    assert db.scalars(select(Assignment).where(Assignment.id.in_(math_assignments))).all() == []
    assert db.scalars(select(Question).where(Question.assignment_id.in_(math_assignments))).all() == []
    assert db.scalars(select(Submission).where(Submission.assignment_id.in_(math_assignments))).all() == []
    assert db.scalars(select(Mark)).all() == []
    assert db.get(Assignment, school.art_task) is not None


def test_unassign_subject_is_logged(client, school, admin_headers, caplog):
    client.post(
        f"/api/admin/teachers/{school.idle_teacher_profile}/subjects",
        headers=admin_headers,
        json={"subject_id": school.art},
    )

    with caplog.at_level(logging.INFO, logger="school_portal.routes.admin"):
        client.delete(f"/api/admin/teachers/{school.idle_teacher_profile}/subjects/{school.art}", headers=admin_headers)

    assert "Unassigned subject Art from teacher idle@school.com" in caplog.text
