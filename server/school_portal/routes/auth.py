import logging

from fastapi import APIRouter, HTTPException
from sqlalchemy import select

from school_portal.dependencies import db_dependency, user_dependency
from school_portal.models import User, UserRole
from school_portal.schemas import LoginRequest, LoginResponse, UserPublic
from school_portal.services.security import create_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, db: db_dependency):
    """
    Exchange email and password for a session token.
    Accounts that are not whitelisted can't log in.
    """
    user = db.scalar(select(User).where(User.email == request.email))

    if not user:
        logger.warning("Login failed for unknown email %s", request.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_whitelisted:
        logger.warning("Login refused for non-whitelisted account %s", request.email)
        raise HTTPException(status_code=403, detail="Account not authorized")

    if not verify_password(request.password, user.password):
        logger.warning("Login failed for %s: bad password", request.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(user.id, user.email, user.role.value)
    logger.info("User %s logged in as %s", user.email, user.role.value)

    return {"token": token, "user": UserPublic.model_validate(user)}


@router.get("/me")
def get_me(current_user: user_dependency):
    """Current user with role-specific details"""
    details = UserPublic.model_validate(current_user).model_dump(mode="json")

    if current_user.role == UserRole.STUDENT:
        student = current_user.student
        details["student_info"] = {
            "id": student.id,
            "user_id": student.user_id,
            "class_id": student.class_id,
            "class_name": student.school_class.name,
            "class_level": student.school_class.level,
        } if student else None

    elif current_user.role == UserRole.TEACHER:
        teacher = current_user.teacher
        if teacher:
            school_class = teacher.school_class
            details["teacher_info"] = {
                "id": teacher.id,
                "user_id": teacher.user_id,
                "class_id": teacher.class_id,
                "class_name": school_class.name if school_class else None,
                "class_level": school_class.level if school_class else None,
                "subjects": [
                    {"id": s.id, "name": s.name, "class_id": s.class_id} for s in teacher.subjects
                ],
            }
        else:
            details["teacher_info"] = None

    return details
