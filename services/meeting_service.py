# services/meeting_service.py
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from db.models import CrmEntry, Meeting, User
from db.Schema.meeting import MeetingCreate, MeetingUpdate
from services.user_service import normalize_email
from utils.errors import NotFound

logger = logging.getLogger(__name__)

DEFAULT_MEETING_STATUS = "Scheduled"

UPDATABLE_MEETING_FIELDS = (
    "title",
    "date_time",
    "status",
    "meeting_link",
    "notes",
    "crm_entry_id",
    "assigned_to",
)


def _ensure_company(db: Session, crm_entry_id: Optional[int]) -> None:
    if crm_entry_id is not None and not db.get(CrmEntry, crm_entry_id):
        raise NotFound(f"CRM Entry not found with id: {crm_entry_id}")


def get_all_meetings(db: Session) -> List[Meeting]:
    return db.query(Meeting).order_by(Meeting.date_time, Meeting.id).all()


def get_meeting(db: Session, meeting_id: int) -> Meeting:
    meeting = db.get(Meeting, meeting_id)
    if not meeting:
        raise NotFound(f"Meeting not found with id: {meeting_id}")
    return meeting


def get_user_meetings(db: Session, user_email: str) -> List[Meeting]:
    """assignedTo holds either an email or a display handle; match both against the caller."""
    email = normalize_email(user_email)
    local_part = email.split("@")[0]
    assigned = func.lower(func.trim(Meeting.assigned_to))
    return (
        db.query(Meeting)
        .filter(or_(
            assigned == email,
            assigned == local_part,
            assigned.contains(local_part, autoescape=True),
        ))
        .order_by(Meeting.date_time, Meeting.id)
        .all()
    )


def create_meeting(db: Session, payload: MeetingCreate, actor: User) -> Meeting:
    _ensure_company(db, payload.crm_entry_id)

    meeting = Meeting(
        **payload.model_dump(),
        last_updated_by=actor.email,
        last_updated_at=datetime.now(timezone.utc),
    )
    if not (meeting.status or "").strip():
        meeting.status = DEFAULT_MEETING_STATUS

    db.add(meeting)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(meeting)
    logger.info(f"Meeting {meeting.id} scheduled by {actor.email} for {meeting.date_time}")
    return meeting


def update_meeting(db: Session, meeting_id: int, payload: MeetingUpdate, actor: User) -> Meeting:
    meeting = get_meeting(db, meeting_id)
    _ensure_company(db, payload.crm_entry_id)

    for field in UPDATABLE_MEETING_FIELDS:
        value = getattr(payload, field)
        if value is not None:
            setattr(meeting, field, value)
    meeting.last_updated_by = actor.email
    meeting.last_updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(meeting)
    return meeting


def delete_meeting(db: Session, meeting_id: int) -> None:
    meeting = get_meeting(db, meeting_id)
    db.delete(meeting)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Meeting {meeting_id} deleted")
