import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func

from school_portal.dependencies import db_dependency, require_role, user_dependency
from school_portal.models import User, UserRole, Assignment, Subject, Submission
from school_portal.models.base import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Student"], dependencies=[Depends(require_role(UserRole.STUDENT))])


def get_student_profile(user: User):
    if not user.student:
        raise HTTPException(status_code=404, detail="Student profile not found")
    return user.student


def submissions_query(student_id: str):
    return (
        select(Submission, Assignment, Subject)
        .join(Assignment, Submission.assignment_id == Assignment.id)
        .join(Subject, Assignment.subject_id == Subject.id)
        .where(Submission.student_id == student_id)
        .order_by(Submission.submitted_at.desc())
    )


@router.get("/dashboard")
def dashboard(db: db_dependency, current_user: user_dependency):
    student = get_student_profile(current_user)
    school_class = student.school_class

    subjects = [
        {"id": s.id, "name": s.name}
        for s in db.scalars(select(Subject).where(Subject.class_id == student.class_id).order_by(Subject.name))
    ]

    recent = [
        {
            "id": sub.id,
            "submitted_at": sub.submitted_at,
            "total_score": sub.total_score,
            "is_marked": sub.is_marked,
            "assignment_title": assignment.title,
            "subject_name": subject.name,
        }
        for sub, assignment, subject in db.execute(submissions_query(student.id).limit(5)).all()
    ]

    submitted = select(Submission.assignment_id).where(Submission.student_id == student.id)
    pending = [
        {
            "id": assignment.id,
            "title": assignment.title,
            "deadline": assignment.deadline,
            "type": assignment.type.value,
            "subject_name": subject_name,
        }
        for assignment, subject_name in db.execute(
            select(Assignment, Subject.name)
            .join(Subject, Assignment.subject_id == Subject.id)
            .where(
                Assignment.class_id == student.class_id,
                Assignment.id.not_in(submitted),
                Assignment.deadline > utcnow(),
            )
            .order_by(Assignment.deadline.asc())
        ).all()
    ]

    completed = db.scalar(
        select(func.count()).select_from(Submission).where(Submission.student_id == student.id)
    )
    logger.debug("Dashboard for student %s: %d pending, %d completed", current_user.email, len(pending), completed)

    return {
        "student_info": {
            "id": student.id,
            "user_id": student.user_id,
            "class_id": student.class_id,
            "class_name": school_class.name,
            "class_level": school_class.level,
        },
        "subjects": subjects,
        "recent_submissions": recent,
        "pending_assignments": pending,
        "stats": {
            "total_subjects": len(subjects),
            "completed_assignments": completed,
            "pending_assignments": len(pending),
        },
    }


@router.get("/subjects")
def list_subjects(db: db_dependency, current_user: user_dependency):
    student = get_student_profile(current_user)
    return [
        {"id": s.id, "name": s.name}
        for s in db.scalars(select(Subject).where(Subject.class_id == student.class_id).order_by(Subject.name))
    ]


@router.get("/subjects/{subject_id}/assignments")
def list_subject_assignments(subject_id: str, db: db_dependency, current_user: user_dependency):
    """Assignments of one subject with the student's submission status"""
    student = get_student_profile(current_user)

    rows = db.execute(
        select(Assignment, Submission)
        .outerjoin(
            Submission,
            (Submission.assignment_id == Assignment.id) & (Submission.student_id == student.id),
        )
        .where(Assignment.subject_id == subject_id, Assignment.class_id == student.class_id)
        .order_by(Assignment.deadline.asc())
    ).all()

    return [
        {
            "id": a.id,
            "class_id": a.class_id,
            "subject_id": a.subject_id,
            "title": a.title,
            "description": a.description,
            "type": a.type.value,
            "deadline": a.deadline,
            "created_at": a.created_at,
            "is_submitted": sub is not None,
            "total_score": sub.total_score if sub else None,
            "is_marked": sub.is_marked if sub else None,
            "submitted_at": sub.submitted_at if sub else None,
        }
        for a, sub in rows
    ]


@router.get("/submissions")
def list_submissions(db: db_dependency, current_user: user_dependency):
    """Full submission history with per-question marks"""
    student = get_student_profile(current_user)

    return [
        {
            "id": sub.id,
            "assignment_id": assignment.id,
            "answers": sub.answers or {},
            "total_score": sub.total_score,
            "is_marked": sub.is_marked,
            "submitted_at": sub.submitted_at,
            "assignment_title": assignment.title,
            "assignment_type": assignment.type.value,
            "subject_name": subject.name,
            "marks": [
                {"question_id": m.question_id, "obtained_marks": m.obtained_marks} for m in sub.marks
            ],
        }
        for sub, assignment, subject in db.execute(submissions_query(student.id)).all()
    ]
