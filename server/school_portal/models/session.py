from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from school_portal.database import Base
from school_portal.models.base import new_id, utcnow


class Submission(Base):
    """One student's answer set for one assignment"""
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("student_id", "assignment_id", name="uq_submission_student_assignment"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    answers = Column(JSON, default=dict)  # {question_id: answer}
    total_score = Column(Integer, nullable=False, default=0)
    is_marked = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    student = relationship("Student", back_populates="submissions")
    assignment = relationship("Assignment", back_populates="submissions")
    marks = relationship("Mark", back_populates="submission", cascade="all, delete-orphan")


class Mark(Base):
    """Per-question marks awarded by a teacher"""
    __tablename__ = "marks"

    id = Column(String(36), primary_key=True, default=new_id)
    submission_id = Column(String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    obtained_marks = Column(Integer, nullable=False)

    # Relationships
    submission = relationship("Submission", back_populates="marks")
    question = relationship("Question", back_populates="marks_awarded")
