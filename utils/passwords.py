# utils/passwords.py
import bcrypt

# bcrypt only looks at the first 72 bytes of a secret
_BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash password with bcrypt"""
    return bcrypt.hashpw(_secret(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against a bcrypt hash; malformed hashes never match"""
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_secret(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False
