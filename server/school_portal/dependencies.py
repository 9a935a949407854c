"""
Authorization dependencies.

``get_current_user`` verifies the bearer token and loads the user;
``require_role`` builds a guard enforcing a role allow-list. Routers attach
the guard at router level so it runs before any handler logic.
"""
import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from school_portal.database import get_db
from school_portal.models import User, UserRole
from school_portal.services.security import InvalidTokenError, decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")

    try:
        payload = decode_access_token(credentials.credentials)
    except InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = db.get(User, payload["sub"])
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    if not user.is_whitelisted:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account not authorized")
    return user


def require_role(*roles: UserRole):
    """Dependency factory rejecting users whose role is not in ``roles``."""
    allowed = {UserRole(r) for r in roles}

    def role_guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.info("Role %s denied (allowed: %s)", user.role.value, sorted(r.value for r in allowed))
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return role_guard


db_dependency = Annotated[Session, Depends(get_db)]
user_dependency = Annotated[User, Depends(get_current_user)]
