# db/Schema/meeting.py

from datetime import datetime
from typing import Optional

from pydantic import Field, constr

from db.Schema.common import CamelModel


class MeetingBase(CamelModel):
    status: Optional[str] = None
    meeting_link: Optional[str] = None
    notes: Optional[str] = None
    crm_entry_id: Optional[int] = Field(default=None, alias="companyId")
    assigned_to: Optional[str] = None


class MeetingCreate(MeetingBase):
    title: constr(strip_whitespace=True, min_length=1, max_length=255)
    date_time: datetime


class MeetingUpdate(MeetingBase):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    date_time: Optional[datetime] = None
    last_updated_by: Optional[str] = None


class MeetingOut(MeetingBase):
    id: int
    title: str
    date_time: datetime
    created_at: Optional[datetime] = None
    last_updated_by: Optional[str] = None
    last_updated_at: Optional[datetime] = None
