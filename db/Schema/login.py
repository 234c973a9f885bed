# db/Schema/login.py

from pydantic import AliasChoices, EmailStr, Field, constr

from db.models import UserRole
from db.Schema.common import CamelModel
from db.Schema.user import UserOut


class LoginRequest(CamelModel):
    email: EmailStr
    password: constr(min_length=1)


class GoogleLoginRequest(CamelModel):
    # Google Identity Services posts `credential`; older clients send `idToken`
    credential: constr(strip_whitespace=True, min_length=1) = Field(
        validation_alias=AliasChoices("credential", "idToken")
    )


class LoginResponse(CamelModel):
    status_code: int = 200
    token: str
    role: UserRole
    message: str
    user: UserOut
