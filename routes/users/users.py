# routes/users/users.py

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from db.connection import get_db
from db.models import User
from db.Schema.user import UserOut, UserUpdate
from routes.auth.auth_dependency import require_permission
from routes.auth.permissions import Permission
from services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
)


@router.get("", response_model=List[UserOut])
def get_all_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.user_view)),
):
    return user_service.get_all_users(db)


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(require_permission(Permission.user_view))):
    return current_user


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.user_view_details)),
):
    return user_service.get_user_by_id(db, user_id)


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.user_manage)),
):
    """Change a user's role and/or link a CLIENT to its CRM entry"""
    logger.info(f"{current_user.email} updating user {user_id}")
    return user_service.update_user(db, user_id, role=body.role, client_crm_id=body.client_crm_id)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.user_manage)),
):
    user_service.delete_user(db, user_id)
    logger.info(f"User {user_id} deleted by {current_user.email}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
