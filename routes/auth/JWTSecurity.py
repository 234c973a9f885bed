# routes/auth/JWTSecurity.py - Stateless access tokens (no refresh, no revocation list)

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from config import JWT_SECRET_KEY, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, logger
from utils.errors import InvalidToken

ACCESS_TOKEN_TYPE = "access"


def create_access_token(subject_email: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Generates a signed access token for `subject_email` with an expiration time.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": subject_email, "exp": expire, "token_type": ACCESS_TOKEN_TYPE}
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> str:
    """
    Verifies an access token and returns its subject email.
    Raises InvalidToken on bad signature, malformed input, expiry or wrong type.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token verification failed: {e}")
        raise InvalidToken()

    if payload.get("token_type") != ACCESS_TOKEN_TYPE:
        logger.warning("Token verification failed: wrong token type")
        raise InvalidToken()

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        logger.warning("Token verification failed: missing subject")
        raise InvalidToken()
    return subject
