"""
Grading Service.

Auto-grading of multiple-choice submissions, manual grading of written
submissions and per-assignment statistics.
"""
import logging
from typing import Dict, Any, Iterable, List, Optional

from school_portal.models import Assignment, AssignmentType, Mark, Question, Submission

logger = logging.getLogger(__name__)


class GradingError(ValueError):
    """Raised when a grade can't be applied to a submission."""


def score_mcq(questions: Iterable[Question], answers: Dict[str, Any]) -> int:
    """
    Sum the marks of every question whose submitted answer equals its
    stored correct option. Comparison is exact; missing answers score 0.
    """
    total = 0
    for question in questions:
        student_answer = answers.get(question.id)
        if student_answer is not None and student_answer == question.correct_option:
            total += question.marks
    return total


def auto_grade(assignment: Assignment, submission: Submission) -> None:
    """Score an mcq submission in place and mark it graded. Written ones stay pending."""
    if assignment.type != AssignmentType.MCQ:
        submission.total_score = 0
        submission.is_marked = False
        return

    submission.total_score = score_mcq(assignment.questions, submission.answers or {})
    submission.is_marked = True


def apply_manual_grade(
    submission: Submission,
    total_score: int,
    question_marks: Optional[List[Dict[str, Any]]] = None,
) -> Submission:
    """
    Record a teacher's grade. Any earlier per-question breakdown is
    replaced by ``question_marks``.
    """
    assignment = submission.assignment
    if assignment.type == AssignmentType.MCQ:
        raise GradingError("Multiple-choice submissions are graded automatically")
    if total_score < 0:
        raise GradingError("Score must not be negative")

    question_ids = {q.id for q in assignment.questions}
    new_marks = []
    for entry in question_marks or []:
        if entry["question_id"] not in question_ids:
            raise GradingError(f"Question {entry['question_id']} is not part of this assignment")
        if entry["obtained_marks"] < 0:
            raise GradingError("Marks must not be negative")
        new_marks.append(Mark(question_id=entry["question_id"], obtained_marks=entry["obtained_marks"]))

    if question_marks is not None:
        submission.marks = new_marks
    submission.total_score = total_score
    submission.is_marked = True
    return submission


def assignment_stats(assignment: Assignment, class_size: int) -> Dict[str, Any]:
    """Aggregate scores for one assignment; scores cover graded submissions only."""
    submissions = assignment.submissions
    scores = [s.total_score for s in submissions if s.is_marked]

    if scores:
        avg_score = sum(scores) / len(scores)
        highest = max(scores)
        lowest = min(scores)
    else:
        avg_score = 0
        highest = 0
        lowest = 0

    return {
        "assignment_id": assignment.id,
        "total_marks": assignment.total_marks,
        "class_size": class_size,
        "submission_count": len(submissions),
        "graded_count": len(scores),
        "pending_count": len(submissions) - len(scores),
        "average_score": round(avg_score, 1),
        "highest_score": highest,
        "lowest_score": lowest,
    }
