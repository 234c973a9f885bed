# utils/errors.py
"""
Application error hierarchy. Workflows raise these; main.py renders every
AppError as a {statusCode, message} JSON body.
"""

from typing import Dict, Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors surfaced to API callers"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"statusCode": self.status_code, "message": self.message}


class DuplicateEmail(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Email already registered"


class DuplicateReferenceId(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Reference ID already in use"


class InvalidRole(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid role. Must be ADMIN, EMPLOYEE, or SUPER_ADMIN"


class InvalidCredentials(AppError):
    # Same text for unknown email and wrong password
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password"


class UnknownUser(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class InvalidGoogleCredential(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Google authentication failed. Please try again."


class InvalidOrExpiredOtp(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or expired OTP"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ClientNotLinked(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Client user is not linked to any CRM entry. Please contact administrator."


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(Unauthorized):
    default_message = "Invalid or expired token"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"
