from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_portal.database import build_engine, get_db, init_db
from school_portal.main import app
from school_portal.models import (
    User, UserRole, Student, Teacher, SchoolClass, Subject, Assignment, AssignmentType, Question,
)
from school_portal.models.base import utcnow
from school_portal.services.security import hash_password

PASSWORD = "password123"


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, full_name, email, role, **profile):
    user = User(full_name=full_name, email=email, password=hash_password(PASSWORD), role=role)
    if role == UserRole.STUDENT:
        user.student = Student(**profile)
    elif role == UserRole.TEACHER:
        user.teacher = Teacher(**profile)
    db.add(user)
    return user


@pytest.fixture
def school(db):
    """
    Two classes. Class A has Mathematics (taught by the math teacher) with one
    mcq and one written assignment; class B has Art with no teacher.
    """
    class_a = SchoolClass(name="Grade 10 A", level="10")
    class_b = SchoolClass(name="Grade 11 B", level="11")
    math = Subject(name="Mathematics", school_class=class_a)
    art = Subject(name="Art", school_class=class_b)
    db.add_all([class_a, class_b, math, art])

    admin = make_user(db, "Ada Admin", "admin@school.com", UserRole.ADMIN)
    teacher = make_user(db, "Tom Teacher", "teacher@school.com", UserRole.TEACHER,
                        school_class=class_a, subjects=[math])
    idle_teacher = make_user(db, "Ivy Idle", "idle@school.com", UserRole.TEACHER, school_class=class_b)
    student = make_user(db, "Sam Student", "student@school.com", UserRole.STUDENT, school_class=class_a)
    classmate = make_user(db, "Cleo Classmate", "classmate@school.com", UserRole.STUDENT, school_class=class_a)
    outsider = make_user(db, "Oscar Outsider", "outsider@school.com", UserRole.STUDENT, school_class=class_b)

    deadline = utcnow() + timedelta(days=3)
    mcq = Assignment(title="Algebra quiz", type=AssignmentType.MCQ, deadline=deadline,
                     school_class=class_a, subject=math)
    mcq.questions = [
        Question(question_text="2 + 2", options=["3", "4"], correct_option="4", marks=2, position=0),
        Question(question_text="3 * 3", options=["6", "9"], correct_option="9", marks=3, position=1),
        Question(question_text="10 / 2", options=["5", "2"], correct_option="5", marks=1, position=2),
    ]
    written = Assignment(title="Proof essay", type=AssignmentType.WRITTEN, deadline=deadline,
                         school_class=class_a, subject=math)
    written.questions = [
        Question(question_text="Prove it", marks=5, position=0),
        Question(question_text="Explain it", marks=5, position=1),
    ]
    art_task = Assignment(title="Sketch", type=AssignmentType.WRITTEN, deadline=deadline,
                          school_class=class_b, subject=art)
    db.add_all([mcq, written, art_task])
    db.commit()

    return SimpleNamespace(
        class_a=class_a.id,
        class_b=class_b.id,
        math=math.id,
        art=art.id,
        admin=admin.id,
        teacher=teacher.id,
        teacher_profile=teacher.teacher.id,
        idle_teacher=idle_teacher.id,
        idle_teacher_profile=idle_teacher.teacher.id,
        student=student.id,
        student_profile=student.student.id,
        classmate=classmate.id,
        outsider=outsider.id,
        mcq=mcq.id,
        mcq_questions=[q.id for q in mcq.questions],
        written=written.id,
        written_questions=[q.id for q in written.questions],
        art_task=art_task.id,
    )


@pytest.fixture
def login(client):
    """Log in by email and return Authorization headers."""
    def _login(email, password=PASSWORD):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def admin_headers(school, login):
    return login("admin@school.com")


@pytest.fixture
def teacher_headers(school, login):
    return login("teacher@school.com")


@pytest.fixture
def student_headers(school, login):
    return login("student@school.com")
