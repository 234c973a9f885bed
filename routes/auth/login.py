# routes/auth/login.py - Password and Google sign-in

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from db.connection import get_db
from db.Schema.login import LoginRequest, GoogleLoginRequest, LoginResponse
from services import auth_service

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """
    Authenticate with email + password and issue an access token.
    Unknown email and wrong password fail with the same message.
    """
    return auth_service.login(db, body.email, body.password)


@router.post("/google-login", response_model=LoginResponse)
def google_login(body: GoogleLoginRequest, db: Session = Depends(get_db)):
    """Sign in with a Google ID token; only pre-provisioned accounts are accepted."""
    return auth_service.login_with_google(db, body.credential)
