"""
Models package initialization
Import all models here to ensure they are registered with SQLAlchemy
"""

from school_portal.models.user import User, UserRole, Student, Teacher
from school_portal.models.content import (
    SchoolClass,
    Subject,
    Assignment,
    AssignmentType,
    Question,
    teacher_subjects,
)
from school_portal.models.session import Submission, Mark

__all__ = [
    "User",
    "UserRole",
    "Student",
    "Teacher",
    "SchoolClass",
    "Subject",
    "Assignment",
    "AssignmentType",
    "Question",
    "teacher_subjects",
    "Submission",
    "Mark",
]
