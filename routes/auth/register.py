# routes/auth/register.py - Self-registration for staff accounts

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from db.connection import get_db
from db.Schema.register import RegisterRequest, RegisterResponse
from services import auth_service

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register_user(body: RegisterRequest, db: Session = Depends(get_db)):
    """
    Create an ADMIN, EMPLOYEE or SUPER_ADMIN account (EMPLOYEE when no role is given).
    CLIENT accounts are provisioned through PUT /users/{id}.
    """
    return auth_service.register(db, body)
