"""
Seed Data Service.

Demo classes, subjects, users and assignments live in a YAML file so they
can be edited without touching code. Seeding only runs on an empty
database.
"""
import os
import logging
from datetime import timedelta
from typing import Optional, Dict, Any

import yaml
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from school_portal.config import settings
from school_portal.models import (
    User, UserRole, Student, Teacher, SchoolClass, Subject, Assignment, AssignmentType, Question,
)
from school_portal.models.base import utcnow
from school_portal.services.security import hash_password

logger = logging.getLogger(__name__)

# Path to bundled seed data
SEED_FILE = os.path.join(os.path.dirname(__file__), "..", "seed", "seed_data.yaml")


def load_seed_file(path: Optional[str] = None) -> Dict[str, Any]:
    """Load seed data from YAML; a missing file yields empty data."""
    file_path = path or settings.seed_file or SEED_FILE

    if not os.path.exists(file_path):
        logger.warning("Seed file not found: %s", file_path)
        return {}

    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def seed_database(db: Session, data: Optional[Dict[str, Any]] = None) -> bool:
    """
    Insert seed data if there are no users yet.

    Classes, subjects and users are referenced by their ``key`` inside the
    YAML file. Returns True when rows were inserted.
    """
    if db.scalar(select(func.count()).select_from(User)):
        logger.info("Users already present, skipping seed")
        return False

    data = load_seed_file() if data is None else data
    if not data:
        return False

    classes: Dict[str, SchoolClass] = {}
    for entry in data.get("classes", []):
        classes[entry["key"]] = SchoolClass(name=entry["name"], level=str(entry["level"]))
        db.add(classes[entry["key"]])

    subjects: Dict[str, Subject] = {}
    for entry in data.get("subjects", []):
        subjects[entry["key"]] = Subject(name=entry["name"], school_class=classes[entry["class"]])
        db.add(subjects[entry["key"]])

    default_password = data.get("default_password", "password123")
    for entry in data.get("users", []):
        role = UserRole(entry["role"])
        user = User(
            full_name=entry["full_name"],
            email=entry["email"],
            password=hash_password(entry.get("password", default_password)),
            role=role,
            is_whitelisted=entry.get("is_whitelisted", True),
        )
        db.add(user)

        school_class = classes.get(entry.get("class"))
        if role == UserRole.STUDENT and school_class is not None:
            user.student = Student(school_class=school_class)
        elif role == UserRole.TEACHER:
            user.teacher = Teacher(
                school_class=school_class,
                subjects=[subjects[key] for key in entry.get("subjects", [])],
            )

    now = utcnow()
    for entry in data.get("assignments", []):
        assignment = Assignment(
            title=entry["title"],
            description=entry.get("description"),
            type=AssignmentType(entry["type"]),
            deadline=now + timedelta(days=entry.get("due_in_days", 7)),
            school_class=classes[entry["class"]],
            subject=subjects[entry["subject"]],
        )
        for position, q in enumerate(entry.get("questions", [])):
            assignment.questions.append(Question(
                question_text=q["question_text"],
                options=q.get("options"),
                correct_option=q.get("correct_option"),
                marks=q.get("marks", 1),
                position=position,
            ))
        db.add(assignment)

    db.commit()
    logger.info(
        "🌱 Seeded %d classes, %d subjects, %d users, %d assignments",
        len(classes), len(subjects), len(data.get("users", [])), len(data.get("assignments", [])),
    )
    return True
