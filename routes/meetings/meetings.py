# routes/meetings/meetings.py

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from db.connection import get_db
from db.models import User
from db.Schema.meeting import MeetingCreate, MeetingOut, MeetingUpdate
from routes.auth.auth_dependency import require_permission
from routes.auth.permissions import Permission
from services import meeting_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/meetings",
    tags=["meetings"],
)


@router.get("", response_model=List[MeetingOut])
def get_all_meetings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.meeting_view)),
):
    return meeting_service.get_all_meetings(db)


@router.get("/my-meetings", response_model=List[MeetingOut])
def get_my_meetings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.meeting_view)),
):
    meetings = meeting_service.get_user_meetings(db, current_user.email)
    logger.info(f"Found {len(meetings)} meetings for user: {current_user.email}")
    return meetings


@router.get("/{meeting_id}", response_model=MeetingOut)
def get_meeting(
    meeting_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.meeting_view)),
):
    return meeting_service.get_meeting(db, meeting_id)


@router.post("", response_model=MeetingOut, status_code=status.HTTP_201_CREATED)
def create_meeting(
    body: MeetingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.meeting_create)),
):
    return meeting_service.create_meeting(db, body, current_user)


@router.put("/{meeting_id}", response_model=MeetingOut)
def update_meeting(
    meeting_id: int,
    body: MeetingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.meeting_edit)),
):
    return meeting_service.update_meeting(db, meeting_id, body, current_user)


@router.delete("/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_meeting(
    meeting_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.meeting_delete)),
):
    meeting_service.delete_meeting(db, meeting_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
