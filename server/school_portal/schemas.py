from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from school_portal.models.user import UserRole
from school_portal.models.content import AssignmentType


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# Auth
# =============================================================================

class LoginRequest(BaseModel):
    email: str
    password: str


class UserPublic(BaseModel):
    id: str
    full_name: str
    email: str
    role: UserRole

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    token: str
    user: UserPublic


# =============================================================================
# Admin
# =============================================================================

class UserCreate(BaseModel):
    full_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    role: UserRole
    class_id: Optional[str] = None


class UserCreated(BaseModel):
    message: str
    user_id: str


class UserListItem(UserPublic):
    is_whitelisted: bool
    created_at: datetime
    class_name: Optional[str] = None


class WhitelistUpdate(BaseModel):
    is_whitelisted: bool


class ClassCreate(BaseModel):
    name: str = Field(min_length=1)
    level: str = Field(min_length=1)


class ClassResponse(ClassCreate):
    id: str
    created_at: datetime

    class Config:
        from_attributes = True


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1)
    class_id: str


class SubjectResponse(BaseModel):
    id: str
    name: str
    class_id: str
    class_name: Optional[str] = None
    class_level: Optional[str] = None


class SubjectBrief(BaseModel):
    id: str
    name: str


class TeacherSubjectAssign(BaseModel):
    subject_id: str


class TeacherListItem(BaseModel):
    id: str
    user_id: str
    full_name: str
    email: str
    class_id: Optional[str] = None
    class_name: Optional[str] = None
    subjects: List[SubjectBrief] = []


class CreatedResponse(BaseModel):
    message: str
    id: str


class AdminDashboard(BaseModel):
    total_users: int = 0
    total_students: int = 0
    total_teachers: int = 0
    total_classes: int = 0
    total_subjects: int = 0
    total_assignments: int = 0
    pending_submissions: int = 0


# =============================================================================
# Assignments
# =============================================================================

class QuestionCreate(BaseModel):
    question_text: str = Field(min_length=1)
    options: Optional[List[str]] = None
    correct_option: Optional[str] = None
    marks: int = Field(default=1, ge=0)


class AssignmentCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    class_id: str
    subject_id: str
    type: AssignmentType
    deadline: datetime
    questions: List[QuestionCreate] = []


class AssignmentCreated(BaseModel):
    message: str
    assignment_id: str


class QuestionView(BaseModel):
    """Question as shown to a user; correct_option is stripped for students."""
    id: str
    question_text: str
    options: Optional[List[str]] = None
    marks: int
    correct_option: Optional[str] = None


class AssignmentListItem(BaseModel):
    id: str
    class_id: str
    subject_id: str
    title: str
    description: Optional[str] = None
    type: AssignmentType
    deadline: datetime
    created_at: datetime
    class_name: str
    subject_name: str
    submission_count: int = 0


class SubmitAssignmentRequest(BaseModel):
    answers: Dict[str, Any] = {}


class SubmitAssignmentResponse(BaseModel):
    message: str
    submission_id: str
    score: Optional[int] = None


class AssignmentStats(BaseModel):
    assignment_id: str
    total_marks: int
    class_size: int
    submission_count: int
    graded_count: int
    pending_count: int
    average_score: float
    highest_score: int
    lowest_score: int


# =============================================================================
# Grading
# =============================================================================

class QuestionMark(BaseModel):
    question_id: str
    obtained_marks: int


class GradeSubmissionRequest(BaseModel):
    total_score: int
    question_marks: Optional[List[QuestionMark]] = None

