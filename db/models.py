from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, Boolean, Numeric,
    JSON, ForeignKey, func, Enum as SAEnum
)
from sqlalchemy.orm import relationship
from db.connection import Base
import enum

from utils.errors import InvalidRole


class UserRole(str, enum.Enum):
    ADMIN = "ROLE_ADMIN"
    EMPLOYEE = "ROLE_EMPLOYEE"
    SUPER_ADMIN = "ROLE_SUPER_ADMIN"
    CLIENT = "ROLE_CLIENT"

    @classmethod
    def parse(cls, raw: str) -> "UserRole":
        """
        Accepts a bare ("admin") or prefixed ("ROLE_ADMIN") name in any case.
        """
        key = (raw or "").strip().upper()
        role = _ROLE_LOOKUP.get(key)
        if role is None:
            raise InvalidRole(f"Invalid role '{raw}'. Must be one of: {', '.join(r.name for r in cls)}")
        return role


_ROLE_LOOKUP = {}
for _role in UserRole:
    _ROLE_LOOKUP[_role.name] = _role
    _ROLE_LOOKUP[_role.value] = _role

STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.EMPLOYEE, UserRole.SUPER_ADMIN})

# Task statuses that count as finished
TERMINAL_TASK_STATUSES = ("completed", "done", "posted")

# CRM status buckets, matched case-insensitively
CRM_ONBOARDED_STATUSES = ("onboarded", "on progress", "quote sent")
CRM_COMPLETED_STATUSES = ("completed",)
CRM_DROPPED_STATUSES = ("drop", "dropped")


def _role_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id              = Column(Integer, primary_key=True, index=True)
    name            = Column(String(255), nullable=False)
    email           = Column(String(255), nullable=False, unique=True, index=True)
    password_hash   = Column(String(512), nullable=False)
    role            = Column(
                        SAEnum(UserRole, name="user_role", native_enum=False,
                               values_callable=_role_values, length=50),
                        nullable=False,
                        default=UserRole.EMPLOYEE,
                      )
    tasks_completed = Column(Integer, nullable=False, default=0, server_default="0")
    google_id       = Column(String(255), nullable=True, unique=True)
    avatar_url      = Column(String(512), nullable=True)
    client_crm_id   = Column(Integer, ForeignKey("crm_entries.id", ondelete="SET NULL"), nullable=True)
    created_at      = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    client_crm = relationship("CrmEntry", foreign_keys=[client_crm_id])


class CrmEntry(Base):
    __tablename__ = "crm_entries"

    id                = Column(Integer, primary_key=True, index=True)
    company           = Column(String(255), nullable=False)
    contact_name      = Column(String(255), nullable=True)
    email             = Column(String(255), nullable=True)
    phone             = Column(String(50), nullable=True)
    address           = Column(String(500), nullable=True)
    company_image_url = Column(Text, nullable=True)
    status            = Column(String(50), nullable=True, index=True)
    deal_value        = Column(Numeric(15, 2, asdecimal=False), nullable=True)
    assigned_to       = Column(String(255), nullable=True)
    next_follow_up    = Column(Date, nullable=True)
    last_contact      = Column(Date, nullable=True)
    reference_id      = Column(String(50), nullable=True, unique=True)
    notes             = Column(Text, nullable=True)
    tags              = Column(JSON, nullable=True)
    work              = Column(JSON, nullable=True)
    lead_sources      = Column(JSON, nullable=True)
    drive_link        = Column(Text, nullable=True)
    socials           = Column(JSON, nullable=True)
    last_updated_by   = Column(String(255), nullable=True)
    last_updated_at   = Column(DateTime(timezone=True), nullable=True)

    tasks = relationship("Task", back_populates="company")


class Task(Base):
    __tablename__ = "tasks"

    id                       = Column(Integer, primary_key=True, index=True)
    title                    = Column(String(255), nullable=False)
    description              = Column(Text, nullable=True)
    status                   = Column(String(50), nullable=True)
    priority                 = Column(String(50), nullable=True)
    # Legacy single-assignee field, superseded by `assignees`
    assigned_to              = Column(String(255), nullable=True)
    due_date                 = Column(Date, nullable=True)
    company_id               = Column(Integer, ForeignKey("crm_entries.id", ondelete="SET NULL"), nullable=True, index=True)
    task_type                = Column(String(50), nullable=True)
    attachments              = Column(JSON, nullable=True)
    task_link                = Column(Text, nullable=True)
    is_visible_on_main_board = Column(Boolean, nullable=True)
    created_at               = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_updated_by          = Column(String(255), nullable=True)
    last_updated_at          = Column(DateTime(timezone=True), nullable=True)

    company   = relationship("CrmEntry", back_populates="tasks")
    assignees = relationship(
                    "TaskAssignee",
                    back_populates="task",
                    cascade="all, delete-orphan",
                    order_by="TaskAssignee.id",
                )

    @property
    def assigned_to_list(self):
        return [a.assignee_email for a in self.assignees]


class TaskAssignee(Base):
    __tablename__ = "task_assignees"

    id             = Column(Integer, primary_key=True, index=True)
    task_id        = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    assignee_email = Column(String(255), nullable=False, index=True)
    assignee_name  = Column(String(255), nullable=True)
    assigned_at    = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    task = relationship("Task", back_populates="assignees")


class Meeting(Base):
    __tablename__ = "meetings"

    id              = Column(Integer, primary_key=True, index=True)
    title           = Column(String(255), nullable=False)
    date_time       = Column(DateTime, nullable=False)
    status          = Column(String(50), nullable=True)
    meeting_link    = Column(Text, nullable=True)
    notes           = Column(Text, nullable=True)
    crm_entry_id    = Column(Integer, ForeignKey("crm_entries.id", ondelete="SET NULL"), nullable=True)
    assigned_to     = Column(String(255), nullable=True)
    created_at      = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_updated_by = Column(String(255), nullable=True)
    last_updated_at = Column(DateTime(timezone=True), nullable=True)


class OTP(Base):
    __tablename__ = "password_reset_otps"

    id         = Column(Integer, primary_key=True, index=True)
    email      = Column(String(255), nullable=False, index=True)
    otp        = Column(String(6), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
