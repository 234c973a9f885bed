# db/Schema/user.py

from datetime import datetime
from typing import Optional

from db.models import UserRole
from db.Schema.common import CamelModel


class UserOut(CamelModel):
    """Sanitized user projection; never carries the password hash"""
    id: int
    name: str
    email: str
    role: UserRole
    tasks_completed: int = 0
    google_id: Optional[str] = None
    avatar_url: Optional[str] = None
    client_crm_id: Optional[int] = None
    created_at: Optional[datetime] = None


class UserUpdate(CamelModel):
    role: Optional[str] = None
    client_crm_id: Optional[int] = None
