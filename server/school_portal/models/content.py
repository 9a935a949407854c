from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Table, Enum as SQLEnum
from sqlalchemy.orm import relationship
from school_portal.database import Base
from school_portal.models.base import new_id, utcnow
import enum


class AssignmentType(str, enum.Enum):
    MCQ = "mcq"
    WRITTEN = "written"


teacher_subjects = Table(
    "teacher_subjects",
    Base.metadata,
    Column("teacher_id", String(36), ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", String(36), ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


class SchoolClass(Base):
    """A class (form/grade group) students belong to"""
    __tablename__ = "classes"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    level = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    subjects = relationship("Subject", back_populates="school_class", cascade="all, delete-orphan")
    students = relationship("Student", back_populates="school_class", cascade="all, delete-orphan")
    teachers = relationship("Teacher", back_populates="school_class")
    assignments = relationship("Assignment", back_populates="school_class", cascade="all, delete-orphan")


class Subject(Base):
    """A subject taught in one class"""
    __tablename__ = "subjects"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    class_id = Column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    school_class = relationship("SchoolClass", back_populates="subjects")
    teachers = relationship("Teacher", secondary=teacher_subjects, back_populates="subjects")
    assignments = relationship("Assignment", back_populates="subject", cascade="all, delete-orphan")


class Assignment(Base):
    """Assignments created by admins for a class and subject"""
    __tablename__ = "assignments"

    id = Column(String(36), primary_key=True, default=new_id)
    class_id = Column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(String(36), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(SQLEnum(AssignmentType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    deadline = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    school_class = relationship("SchoolClass", back_populates="assignments")
    subject = relationship("Subject", back_populates="assignments")
    questions = relationship(
        "Question", back_populates="assignment", cascade="all, delete-orphan", order_by="Question.position"
    )
    submissions = relationship("Submission", back_populates="assignment", cascade="all, delete-orphan")

    @property
    def total_marks(self) -> int:
        return sum(q.marks for q in self.questions)


class Question(Base):
    """Individual questions belonging to an assignment"""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=new_id)
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)  # For mcq: ["Paris", "London", ...]
    correct_option = Column(Text, nullable=True)  # Must equal one of options for mcq
    marks = Column(Integer, nullable=False, default=1)
    position = Column(Integer, nullable=False, default=0)

    # Relationships
    assignment = relationship("Assignment", back_populates="questions")
    marks_awarded = relationship("Mark", back_populates="question", cascade="all, delete-orphan")
