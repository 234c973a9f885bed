# services/auth_service.py
"""
Registration, password / Google login and the OTP password-reset flow.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import OTP_EXPIRE_MINUTES
from db.models import OTP, User, UserRole, STAFF_ROLES
from db.Schema.common import ApiResponse
from db.Schema.login import LoginResponse
from db.Schema.register import RegisterRequest, RegisterResponse
from db.Schema.user import UserOut
from routes.auth.JWTSecurity import create_access_token
from services import google_identity, mail
from services.user_service import find_user_by_email, get_user_by_email, normalize_email
from utils.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    InvalidRole,
    UnknownUser,
)
from utils.passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

OTP_LENGTH = 6

# Compared against when the email is unknown so both failure paths cost one bcrypt check
_DUMMY_PASSWORD_HASH = hash_password(secrets.token_urlsafe(16))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _login_response(user: User, message: str) -> LoginResponse:
    return LoginResponse(
        status_code=200,
        token=create_access_token(user.email),
        role=user.role,
        message=message,
        user=UserOut.model_validate(user),
    )


def register(db: Session, request: RegisterRequest) -> RegisterResponse:
    email = normalize_email(request.email)
    if find_user_by_email(db, email):
        raise DuplicateEmail(f"User with email {email} already exists")

    role = UserRole.parse(request.role) if request.role and request.role.strip() else UserRole.EMPLOYEE
    if role not in STAFF_ROLES:
        # CLIENT accounts are provisioned by a SUPER_ADMIN, never self-registered
        raise InvalidRole()

    user = User(
        name=request.name,
        email=email,
        password_hash=hash_password(request.password),
        role=role,
        tasks_completed=0,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail(f"User with email {email} already exists")
    db.refresh(user)

    logger.info(f"Registered {email} as {role.value}")
    return RegisterResponse(
        status_code=201,
        message="User registered successfully",
        user=UserOut.model_validate(user),
    )


def login(db: Session, email: str, password: str) -> LoginResponse:
    user = find_user_by_email(db, email)
    hashed = user.password_hash if user else _DUMMY_PASSWORD_HASH
    if not verify_password(password, hashed) or user is None:
        logger.info(f"Failed login attempt for {normalize_email(email)}")
        raise InvalidCredentials()

    return _login_response(user, "Login successful")


def login_with_google(db: Session, credential: str) -> LoginResponse:
    """
    SSO linking for pre-provisioned accounts: Google sign-in never creates users.
    """
    identity = google_identity.verify_google_credential(credential)

    user = find_user_by_email(db, identity.email)
    if not user:
        raise UnknownUser("User not associated with this email, contact sales")

    needs_update = False
    if user.google_id != identity.subject:
        user.google_id = identity.subject
        needs_update = True
    if identity.picture and user.avatar_url != identity.picture:
        user.avatar_url = identity.picture
        needs_update = True

    if needs_update:
        try:
            db.commit()
            db.refresh(user)
        except IntegrityError as e:
            # Another account already holds this google_id; the login itself still stands
            db.rollback()
            logger.warning(f"Could not link Google account for {user.email}: {e}")

    return _login_response(user, "Google login successful")


def _generate_otp() -> str:
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def _send_otp(email: str, otp: str) -> None:
    try:
        result = mail.send_otp_email(email, otp)
        if result.get("status") != "success":
            logger.error(f"OTP email to {email} not delivered: {result.get('message')}")
    except Exception:
        logger.exception(f"OTP email to {email} failed")


def forgot_password(db: Session, email: str,
                    background_tasks: Optional[BackgroundTasks] = None) -> ApiResponse:
    """Stores a fresh code; the email goes out after the response when a queue is given."""
    user = get_user_by_email(db, normalize_email(email))

    otp = _generate_otp()
    try:
        db.query(OTP).filter(OTP.email == user.email).delete(synchronize_session=False)
        db.add(OTP(
            email=user.email,
            otp=otp,
            expires_at=_utcnow() + timedelta(minutes=OTP_EXPIRE_MINUTES),
        ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    if background_tasks is not None:
        background_tasks.add_task(_send_otp, user.email, otp)
    else:
        _send_otp(user.email, otp)

    return ApiResponse(status_code=200, message="OTP sent to your email. Please check your inbox.")


def _otp_matches(db: Session, email: str, otp: str) -> bool:
    return (
        db.query(OTP.id)
        .filter(OTP.email == normalize_email(email), OTP.otp == otp, OTP.expires_at > _utcnow())
        .first()
        is not None
    )


def verify_otp(db: Session, email: str, otp: str) -> ApiResponse:
    """Checks the code without consuming it; change_password consumes it."""
    if not _otp_matches(db, email, otp):
        raise InvalidOrExpiredOtp()
    return ApiResponse(status_code=200, message="OTP verified successfully")


def change_password(db: Session, email: str, otp: str, new_password: str) -> ApiResponse:
    """
    Consume the OTP and replace the password hash in one transaction.
    The conditional delete decides acceptance, so a code can be spent only once.
    """
    email = normalize_email(email)
    try:
        consumed = (
            db.query(OTP)
            .filter(OTP.email == email, OTP.otp == otp, OTP.expires_at > _utcnow())
            .delete(synchronize_session=False)
        )
        if consumed < 1:
            raise InvalidOrExpiredOtp()

        user = get_user_by_email(db, email)
        user.password_hash = hash_password(new_password)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Password changed for {email}")
    return ApiResponse(status_code=200, message="Password changed successfully")
