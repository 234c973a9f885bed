# db/Schema/password_reset.py

from pydantic import EmailStr, constr

from db.Schema.common import CamelModel


class ForgotPasswordRequest(CamelModel):
    email: EmailStr


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: constr(strip_whitespace=True, min_length=1, max_length=12)


class ChangePasswordRequest(CamelModel):
    email: EmailStr
    otp: constr(strip_whitespace=True, min_length=1, max_length=12)
    new_password: constr(min_length=6, max_length=72)
