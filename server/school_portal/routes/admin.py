import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload

from school_portal.dependencies import db_dependency, require_role, user_dependency
from school_portal.models import (
    User, UserRole, Student, Teacher, SchoolClass, Subject, Assignment, Submission,
)
from school_portal.schemas import (
    AdminDashboard,
    ClassCreate,
    ClassResponse,
    CreatedResponse,
    MessageResponse,
    SubjectCreate,
    SubjectResponse,
    TeacherListItem,
    TeacherSubjectAssign,
    UserCreate,
    UserCreated,
    UserListItem,
    WhitelistUpdate,
)
from school_portal.services.security import hash_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"], dependencies=[Depends(require_role(UserRole.ADMIN))])


def _get_or_404(db, model, object_id: str, label: str):
    obj = db.get(model, object_id)
    if not obj:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return obj


# === USERS ===

@router.get("/users", response_model=List[UserListItem])
def list_users(db: db_dependency):
    """All users, newest first, with the class they belong to"""
    users = db.scalars(
        select(User)
        .options(
            selectinload(User.student).selectinload(Student.school_class),
            selectinload(User.teacher).selectinload(Teacher.school_class),
        )
        .order_by(User.created_at.desc())
    ).all()

    result = []
    for user in users:
        class_name = None
        if user.role == UserRole.STUDENT and user.student:
            class_name = user.student.school_class.name
        elif user.role == UserRole.TEACHER and user.teacher and user.teacher.school_class:
            class_name = user.teacher.school_class.name

        result.append({
            "id": user.id,
            "full_name": user.full_name,
            "email": user.email,
            "role": user.role,
            "is_whitelisted": user.is_whitelisted,
            "created_at": user.created_at,
            "class_name": class_name,
        })
    return result


@router.post("/users", response_model=UserCreated, status_code=201)
def create_user(request: UserCreate, db: db_dependency):
    if db.scalar(select(User).where(User.email == request.email)):
        raise HTTPException(status_code=400, detail="Email already exists")

    school_class = None
    if request.class_id:
        school_class = _get_or_404(db, SchoolClass, request.class_id, "Class")

    user = User(
        full_name=request.full_name,
        email=request.email,
        password=hash_password(request.password),
        role=request.role,
        is_whitelisted=True,
    )

    # Role-specific profile
    if school_class is not None:
        if request.role == UserRole.STUDENT:
            user.student = Student(school_class=school_class)
        elif request.role == UserRole.TEACHER:
            user.teacher = Teacher(school_class=school_class)

    db.add(user)
    db.commit()
    logger.info("Created %s account %s", request.role.value, request.email)

    return {"message": "User created successfully", "user_id": user.id}


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: str, db: db_dependency, current_user: user_dependency):
    user = _get_or_404(db, User, user_id, "User")
    if user.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user.email)

    return {"message": "User deleted successfully"}


@router.patch("/users/{user_id}/whitelist", response_model=MessageResponse)
def set_whitelist(user_id: str, request: WhitelistUpdate, db: db_dependency, current_user: user_dependency):
    """Allow or block login for an account"""
    user = _get_or_404(db, User, user_id, "User")
    if user.id == current_user.id and not request.is_whitelisted:
        raise HTTPException(status_code=400, detail="You cannot block your own account")

    user.is_whitelisted = request.is_whitelisted
    db.commit()
    logger.info("Whitelist for %s set to %s", user.email, request.is_whitelisted)

    state = "whitelisted" if request.is_whitelisted else "blocked"
    return {"message": f"User {state} successfully"}


# === CLASSES ===

@router.get("/classes", response_model=List[ClassResponse])
def list_classes(db: db_dependency):
    return db.scalars(select(SchoolClass).order_by(SchoolClass.level, SchoolClass.name)).all()


@router.post("/classes", response_model=CreatedResponse, status_code=201)
def create_class(request: ClassCreate, db: db_dependency):
    school_class = SchoolClass(name=request.name, level=request.level)
    db.add(school_class)
    db.commit()
    logger.info("Created class %s (level %s)", request.name, request.level)

    return {"message": "Class created successfully", "id": school_class.id}


@router.delete("/classes/{class_id}", response_model=MessageResponse)
def delete_class(class_id: str, db: db_dependency):
    """Delete a class with its subjects, students and assignments"""
    school_class = _get_or_404(db, SchoolClass, class_id, "Class")
    db.delete(school_class)
    db.commit()
    logger.info("Deleted class %s", school_class.name)

    return {"message": "Class deleted successfully"}


# === SUBJECTS ===

@router.get("/subjects", response_model=List[SubjectResponse])
def list_subjects(db: db_dependency):
    rows = db.execute(
        select(Subject, SchoolClass)
        .join(SchoolClass, Subject.class_id == SchoolClass.id)
        .order_by(SchoolClass.level, Subject.name)
    ).all()

    return [
        {
            "id": subject.id,
            "name": subject.name,
            "class_id": subject.class_id,
            "class_name": school_class.name,
            "class_level": school_class.level,
        }
        for subject, school_class in rows
    ]


@router.post("/subjects", response_model=CreatedResponse, status_code=201)
def create_subject(request: SubjectCreate, db: db_dependency):
    _get_or_404(db, SchoolClass, request.class_id, "Class")

    subject = Subject(name=request.name, class_id=request.class_id)
    db.add(subject)
    db.commit()
    logger.info("Created subject %s", request.name)

    return {"message": "Subject created successfully", "id": subject.id}


@router.delete("/subjects/{subject_id}", response_model=MessageResponse)
def delete_subject(subject_id: str, db: db_dependency):
    subject = _get_or_404(db, Subject, subject_id, "Subject")
    db.delete(subject)
    db.commit()
    logger.info("Deleted subject %s", subject.name)

    return {"message": "Subject deleted successfully"}


# === TEACHER SUBJECTS ===

@router.get("/teachers", response_model=List[TeacherListItem])
def list_teachers(db: db_dependency):
    teachers = db.scalars(
        select(Teacher)
        .join(User, Teacher.user_id == User.id)
        .options(selectinload(Teacher.subjects), selectinload(Teacher.school_class))
        .order_by(User.full_name)
    ).all()

    return [
        {
            "id": t.id,
            "user_id": t.user_id,
            "full_name": t.user.full_name,
            "email": t.user.email,
            "class_id": t.class_id,
            "class_name": t.school_class.name if t.school_class else None,
            "subjects": [{"id": s.id, "name": s.name} for s in t.subjects],
        }
        for t in teachers
    ]


@router.post("/teachers/{teacher_id}/subjects", response_model=MessageResponse, status_code=201)
def assign_subject(teacher_id: str, request: TeacherSubjectAssign, db: db_dependency):
    teacher = _get_or_404(db, Teacher, teacher_id, "Teacher")
    subject = _get_or_404(db, Subject, request.subject_id, "Subject")

    if subject in teacher.subjects:
        raise HTTPException(status_code=400, detail="Subject already assigned to this teacher")

    teacher.subjects.append(subject)
    db.commit()
    logger.info("Assigned subject %s to teacher %s", subject.name, teacher.user.email)

    return {"message": "Subject assigned successfully"}


@router.delete("/teachers/{teacher_id}/subjects/{subject_id}", response_model=MessageResponse)
def unassign_subject(teacher_id: str, subject_id: str, db: db_dependency):
    teacher = _get_or_404(db, Teacher, teacher_id, "Teacher")
    subject = next((s for s in teacher.subjects if s.id == subject_id), None)
    if subject is None:
        raise HTTPException(status_code=404, detail="Subject is not assigned to this teacher")

    teacher.subjects.remove(subject)
    db.commit()
    logger.info("Unassigned subject %s from teacher %s", subject.name, teacher.user.email)

    return {"message": "Subject unassigned successfully"}


# === DASHBOARD ===

@router.get("/dashboard", response_model=AdminDashboard)
def dashboard(db: db_dependency):
    def count(model, *criteria):
        return db.scalar(select(func.count()).select_from(model).where(*criteria))

    return {
        "total_users": count(User),
        "total_students": count(Student),
        "total_teachers": count(Teacher),
        "total_classes": count(SchoolClass),
        "total_subjects": count(Subject),
        "total_assignments": count(Assignment),
        "pending_submissions": count(Submission, Submission.is_marked.is_(False)),
    }
