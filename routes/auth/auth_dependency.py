# routes/auth/auth_dependency.py

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from db.connection import get_db
from db.models import User
from routes.auth.JWTSecurity import verify_token
from routes.auth.permissions import Permission, role_has_permission
from utils.errors import Unauthorized, Forbidden


logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes a 401 instead of FastAPI's 403
security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to the principal's User row"""
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Authorization header missing")

    email = verify_token(credentials.credentials)

    user = db.query(User).filter(func.lower(User.email) == email.lower()).first()
    if not user:
        logger.warning(f"Token subject no longer exists: {email}")
        raise Unauthorized("User not found")
    return user


# Permission-based access control
def require_permission(permission: Permission):
    """
    Require a specific permission.
    Usage:
      @router.get(..., dependencies=[Depends(require_permission(Permission.task_view))])
      current_user: User = Depends(require_permission(Permission.task_edit))
    """
    def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        if not role_has_permission(current_user.role, permission):
            raise Forbidden(f"Permission '{permission.value}' required")
        return current_user

    return permission_checker
