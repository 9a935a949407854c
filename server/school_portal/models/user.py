from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from school_portal.database import Base
from school_portal.models.base import new_id, utcnow
import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # pbkdf2 hash
    role = Column(SQLEnum(UserRole, values_callable=lambda e: [m.value for m in e]), nullable=False)
    is_whitelisted = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    student = relationship("Student", back_populates="user", uselist=False, cascade="all, delete-orphan")
    teacher = relationship("Teacher", back_populates="user", uselist=False, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.full_name} ({self.role})>"


class Student(Base):
    """Student profile, one per student user"""
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    class_id = Column(String(36), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    user = relationship("User", back_populates="student")
    school_class = relationship("SchoolClass", back_populates="students")
    submissions = relationship("Submission", back_populates="student", cascade="all, delete-orphan")


class Teacher(Base):
    """Teacher profile, one per teacher user"""
    __tablename__ = "teachers"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    class_id = Column(String(36), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    user = relationship("User", back_populates="teacher")
    school_class = relationship("SchoolClass", back_populates="teachers")
    subjects = relationship("Subject", secondary="teacher_subjects", back_populates="teachers", order_by="Subject.name")
