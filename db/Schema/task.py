# db/Schema/task.py

from datetime import date, datetime
from typing import List, Optional

from pydantic import constr

from db.Schema.common import CamelModel


class TaskBase(CamelModel):
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None
    company_id: Optional[int] = None
    task_type: Optional[str] = None
    attachments: Optional[List[str]] = None
    task_link: Optional[str] = None
    is_visible_on_main_board: Optional[bool] = None


class TaskCreate(TaskBase):
    title: constr(strip_whitespace=True, min_length=1, max_length=255)
    assigned_to_list: Optional[List[str]] = None


class TaskUpdate(TaskBase):
    title: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    # None leaves assignees untouched; [] clears them
    assigned_to_list: Optional[List[str]] = None
    last_updated_by: Optional[str] = None


class TaskOut(TaskBase):
    id: int
    title: str
    assigned_to_list: List[str] = []
    created_at: Optional[datetime] = None
    last_updated_by: Optional[str] = None
    last_updated_at: Optional[datetime] = None
