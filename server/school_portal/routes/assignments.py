import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from school_portal.dependencies import db_dependency, require_role, user_dependency, get_current_user
from school_portal.models import (
    User, UserRole, Student, Teacher, SchoolClass, Subject, Assignment, Question, Submission,
    teacher_subjects,
)
from school_portal.models.base import to_naive_utc
from school_portal.schemas import (
    AssignmentCreate,
    AssignmentCreated,
    AssignmentListItem,
    AssignmentStats,
    QuestionView,
    SubmitAssignmentRequest,
    SubmitAssignmentResponse,
)
from school_portal.services.grading import auto_grade, assignment_stats

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Assignments"], dependencies=[Depends(get_current_user)])


def teacher_teaches_subject(db: Session, user: User, subject_id: str) -> bool:
    return db.scalar(
        select(func.count())
        .select_from(teacher_subjects)
        .join(Teacher, Teacher.id == teacher_subjects.c.teacher_id)
        .where(Teacher.user_id == user.id, teacher_subjects.c.subject_id == subject_id)
    ) > 0


def check_assignment_access(db: Session, user: User, assignment: Assignment) -> None:
    """Students see their class's assignments; teachers those of subjects they teach."""
    if user.role == UserRole.STUDENT:
        if not user.student or user.student.class_id != assignment.class_id:
            raise HTTPException(status_code=403, detail="Access denied")
    elif user.role == UserRole.TEACHER:
        if not teacher_teaches_subject(db, user, assignment.subject_id):
            raise HTTPException(status_code=403, detail="Access denied")


def serialize_submission(submission: Submission) -> dict:
    return {
        "id": submission.id,
        "answers": submission.answers or {},
        "total_score": submission.total_score,
        "is_marked": submission.is_marked,
        "submitted_at": submission.submitted_at,
        "marks": [
            {"question_id": m.question_id, "obtained_marks": m.obtained_marks} for m in submission.marks
        ],
    }


@router.post(
    "",
    response_model=AssignmentCreated,
    status_code=201,
    dependencies=[Depends(require_role(UserRole.ADMIN))],
)
def create_assignment(request: AssignmentCreate, db: db_dependency):
    """
    Create an assignment together with its questions.
    Questions keep the order they were sent in.
    """
    school_class = db.get(SchoolClass, request.class_id)
    if not school_class:
        raise HTTPException(status_code=404, detail="Class not found")
    subject = db.get(Subject, request.subject_id)
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    if subject.class_id != school_class.id:
        raise HTTPException(status_code=400, detail="Subject does not belong to this class")

    assignment = Assignment(
        class_id=request.class_id,
        subject_id=request.subject_id,
        title=request.title,
        description=request.description,
        type=request.type,
        deadline=to_naive_utc(request.deadline),
    )
    for position, q in enumerate(request.questions):
        assignment.questions.append(Question(
            question_text=q.question_text,
            options=q.options,
            correct_option=q.correct_option,
            marks=q.marks,
            position=position,
        ))

    db.add(assignment)
    db.commit()
    logger.info(
        "Created %s assignment '%s' with %d questions", request.type.value, request.title, len(request.questions)
    )

    return {"message": "Assignment created successfully", "assignment_id": assignment.id}


@router.get("", response_model=List[AssignmentListItem], dependencies=[Depends(require_role(UserRole.ADMIN))])
def list_assignments(db: db_dependency):
    submission_count = (
        select(func.count(Submission.id))
        .where(Submission.assignment_id == Assignment.id)
        .correlate(Assignment)
        .scalar_subquery()
    )
    rows = db.execute(
        select(Assignment, SchoolClass.name, Subject.name, submission_count)
        .join(SchoolClass, Assignment.class_id == SchoolClass.id)
        .join(Subject, Assignment.subject_id == Subject.id)
        .order_by(Assignment.created_at.desc())
    ).all()

    return [
        {
            "id": a.id,
            "class_id": a.class_id,
            "subject_id": a.subject_id,
            "title": a.title,
            "description": a.description,
            "type": a.type,
            "deadline": a.deadline,
            "created_at": a.created_at,
            "class_name": class_name,
            "subject_name": subject_name,
            "submission_count": count,
        }
        for a, class_name, subject_name, count in rows
    ]


@router.get("/{assignment_id}")
def get_assignment(assignment_id: str, db: db_dependency, current_user: user_dependency):
    """
    Assignment details with questions.
    Correct options are only shown to admins and teachers.
    """
    assignment = db.get(Assignment, assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")

    check_assignment_access(db, current_user, assignment)

    show_answers = current_user.role in (UserRole.ADMIN, UserRole.TEACHER)
    questions = []
    for q in assignment.questions:
        view = QuestionView(
            id=q.id,
            question_text=q.question_text,
            options=q.options,
            marks=q.marks,
            correct_option=q.correct_option,
        ).model_dump()
        if not show_answers:
            view.pop("correct_option")
        questions.append(view)

    result = {
        "id": assignment.id,
        "class_id": assignment.class_id,
        "subject_id": assignment.subject_id,
        "title": assignment.title,
        "description": assignment.description,
        "type": assignment.type.value,
        "deadline": assignment.deadline,
        "created_at": assignment.created_at,
        "class_name": assignment.school_class.name,
        "subject_name": assignment.subject.name,
        "total_marks": assignment.total_marks,
        "questions": questions,
    }

    if current_user.role == UserRole.STUDENT:
        submission = db.scalar(
            select(Submission).where(
                Submission.assignment_id == assignment.id,
                Submission.student_id == current_user.student.id,
            )
        )
        result["submission"] = serialize_submission(submission) if submission else None

    return result


@router.post(
    "/{assignment_id}/submit",
    response_model=SubmitAssignmentResponse,
    dependencies=[Depends(require_role(UserRole.STUDENT))],
)
def submit_assignment(
    assignment_id: str,
    request: SubmitAssignmentRequest,
    db: db_dependency,
    current_user: user_dependency,
):
    """
    Student submits answers. Multiple-choice assignments are scored
    immediately; written ones wait for a teacher.
    """
    student = current_user.student
    if not student:
        raise HTTPException(status_code=404, detail="Student profile not found")

    assignment = db.scalar(
        select(Assignment).where(Assignment.id == assignment_id, Assignment.class_id == student.class_id)
    )
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")

    existing = db.scalar(
        select(Submission.id).where(Submission.student_id == student.id, Submission.assignment_id == assignment.id)
    )
    if existing:
        raise HTTPException(status_code=400, detail="Assignment already submitted")

    submission = Submission(student_id=student.id, assignment_id=assignment.id, answers=request.answers)
    auto_grade(assignment, submission)

    db.add(submission)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Assignment already submitted")

    logger.info(
        "Student %s submitted '%s' (marked=%s, score=%s)",
        current_user.email, assignment.title, submission.is_marked, submission.total_score,
    )

    return {
        "message": "Assignment submitted successfully",
        "submission_id": submission.id,
        "score": submission.total_score if submission.is_marked else None,
    }


@router.get(
    "/{assignment_id}/stats",
    response_model=AssignmentStats,
    dependencies=[Depends(require_role(UserRole.ADMIN, UserRole.TEACHER))],
)
def get_assignment_stats(assignment_id: str, db: db_dependency, current_user: user_dependency):
    """Submission and score statistics for one assignment"""
    assignment = db.get(Assignment, assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")

    check_assignment_access(db, current_user, assignment)

    class_size = db.scalar(
        select(func.count()).select_from(Student).where(Student.class_id == assignment.class_id)
    )
    return assignment_stats(assignment, class_size)
