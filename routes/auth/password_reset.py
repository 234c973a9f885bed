# routes/auth/password_reset.py - OTP based password reset

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from db.connection import get_db
from db.Schema.common import ApiResponse
from db.Schema.password_reset import ForgotPasswordRequest, VerifyOtpRequest, ChangePasswordRequest
from services import auth_service

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/forgot-password", response_model=ApiResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """The OTP email is sent after the response goes out."""
    return auth_service.forgot_password(db, body.email, background_tasks)


@router.post("/verify-otp", response_model=ApiResponse)
def verify_otp(body: VerifyOtpRequest, db: Session = Depends(get_db)):
    return auth_service.verify_otp(db, body.email, body.otp)


@router.post("/change-password", response_model=ApiResponse)
def change_password(body: ChangePasswordRequest, db: Session = Depends(get_db)):
    """Consumes the OTP; the same code cannot be used twice."""
    return auth_service.change_password(db, body.email, body.otp, body.new_password)
