# db/Schema/register.py

from typing import Optional

from pydantic import EmailStr, constr

from db.Schema.common import CamelModel
from db.Schema.user import UserOut


class RegisterRequest(CamelModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    email: EmailStr
    password: constr(min_length=6, max_length=72)
    role: Optional[str] = None


class RegisterResponse(CamelModel):
    status_code: int = 201
    message: str
    user: UserOut
