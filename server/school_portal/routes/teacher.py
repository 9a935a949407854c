import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select

from school_portal.dependencies import db_dependency, require_role, user_dependency
from school_portal.models import (
    User, UserRole, Student, Assignment, AssignmentType, Subject, Submission, teacher_subjects,
)
from school_portal.schemas import GradeSubmissionRequest, MessageResponse
from school_portal.services.grading import GradingError, apply_manual_grade

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Teacher"], dependencies=[Depends(require_role(UserRole.TEACHER))])


def get_teacher_profile(user: User):
    if not user.teacher:
        raise HTTPException(status_code=404, detail="Teacher profile not found")
    return user.teacher


def teacher_submissions_query(teacher_id: str):
    """Submissions for assignments in the teacher's subjects, newest first."""
    return (
        select(Submission, Assignment, Subject, User)
        .join(Assignment, Submission.assignment_id == Assignment.id)
        .join(Subject, Assignment.subject_id == Subject.id)
        .join(teacher_subjects, teacher_subjects.c.subject_id == Subject.id)
        .join(Student, Submission.student_id == Student.id)
        .join(User, Student.user_id == User.id)
        .where(teacher_subjects.c.teacher_id == teacher_id)
        .order_by(Submission.submitted_at.desc())
    )


@router.get("/dashboard")
def dashboard(db: db_dependency, current_user: user_dependency):
    """Class info, subjects, students and written work waiting for a grade"""
    teacher = get_teacher_profile(current_user)

    class_info = None
    students = []
    if teacher.school_class:
        class_info = {"class_name": teacher.school_class.name, "class_level": teacher.school_class.level}
        students = [
            {"id": u.id, "full_name": u.full_name, "email": u.email}
            for u in db.scalars(
                select(User)
                .join(Student, Student.user_id == User.id)
                .where(Student.class_id == teacher.class_id)
                .order_by(User.full_name)
            )
        ]

    subjects = [{"id": s.id, "name": s.name} for s in teacher.subjects]

    rows = db.execute(
        teacher_submissions_query(teacher.id).where(
            Submission.is_marked.is_(False),
            Assignment.type == AssignmentType.WRITTEN,
        )
    ).all()
    pending = [
        {
            "id": sub.id,
            "submitted_at": sub.submitted_at,
            "assignment_title": assignment.title,
            "student_name": user.full_name,
            "subject_name": subject.name,
        }
        for sub, assignment, subject, user in rows
    ]

    return {
        "class_info": class_info,
        "subjects": subjects,
        "students": students,
        "pending_submissions": pending,
        "stats": {
            "total_students": len(students),
            "total_subjects": len(subjects),
            "pending_grading": len(pending),
        },
    }


@router.get("/submissions")
def list_submissions(
    db: db_dependency,
    current_user: user_dependency,
    subject_id: Optional[str] = None,
    assignment_id: Optional[str] = None,
):
    """Submissions in the teacher's subjects, optionally filtered"""
    teacher = get_teacher_profile(current_user)

    query = teacher_submissions_query(teacher.id)
    if subject_id:
        query = query.where(Subject.id == subject_id)
    if assignment_id:
        query = query.where(Assignment.id == assignment_id)

    return [
        {
            "id": sub.id,
            "submitted_at": sub.submitted_at,
            "answers": sub.answers or {},
            "total_score": sub.total_score,
            "is_marked": sub.is_marked,
            "assignment_id": assignment.id,
            "assignment_title": assignment.title,
            "assignment_type": assignment.type.value,
            "student_name": user.full_name,
            "subject_name": subject.name,
        }
        for sub, assignment, subject, user in db.execute(query).all()
    ]


@router.put("/submissions/{submission_id}/grade", response_model=MessageResponse)
def grade_submission(
    submission_id: str,
    request: GradeSubmissionRequest,
    db: db_dependency,
    current_user: user_dependency,
):
    """
    Grade a written submission. The per-question breakdown, when given,
    replaces any earlier one.
    """
    teacher = get_teacher_profile(current_user)

    row = db.execute(
        teacher_submissions_query(teacher.id).where(Submission.id == submission_id)
    ).first()
    if not row:
        raise HTTPException(status_code=404, detail="Submission not found")
    submission = row[0]

    question_marks = None
    if request.question_marks is not None:
        question_marks = [m.model_dump() for m in request.question_marks]

    try:
        apply_manual_grade(submission, request.total_score, question_marks)
    except GradingError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    logger.info(
        "Teacher %s graded submission %s: %d", current_user.email, submission.id, request.total_score
    )

    return {"message": "Submission graded successfully"}
