# routes/crm/crm.py

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from db.connection import get_db
from db.models import User
from db.Schema.crm import CrmBuckets, CrmEntryCreate, CrmEntryOut, CrmEntryUpdate
from routes.auth.auth_dependency import require_permission
from routes.auth.permissions import Permission
from services import crm_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/crm",
    tags=["crm"],
)


@router.get("", response_model=CrmBuckets)
def get_all_entries(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_view)),
):
    """All entries plus the onboarded / completed / dropped views"""
    buckets = crm_service.get_all_entries(db)
    logger.info(f"{current_user.email} fetched {len(buckets['crm_list'])} CRM entries")
    return buckets


@router.get("/onboarded", response_model=List[CrmEntryOut])
def get_onboarded_entries(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_view)),
):
    return crm_service.get_onboarded_entries(db)


@router.get("/done", response_model=List[CrmEntryOut])
def get_completed_entries(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_view)),
):
    return crm_service.get_completed_entries(db)


@router.get("/closed", response_model=List[CrmEntryOut])
def get_dropped_entries(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_view)),
):
    return crm_service.get_dropped_entries(db)


@router.get("/my-crm", response_model=CrmEntryOut)
def get_my_crm(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.client_portal)),
):
    """The CRM entry the calling CLIENT is linked to"""
    return crm_service.get_client_crm_details(db, current_user)


@router.get("/{entry_id}", response_model=CrmEntryOut)
def get_crm_details(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_view)),
):
    return crm_service.get_crm_details(db, entry_id)


@router.post("", response_model=CrmEntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(
    body: CrmEntryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_create)),
):
    return crm_service.create_entry(db, body, current_user)


@router.put("/{entry_id}", response_model=CrmEntryOut)
def update_entry(
    entry_id: int,
    body: CrmEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_edit)),
):
    """Partial update; only fields present and non-null are written"""
    return crm_service.update_entry(db, entry_id, body, current_user)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.crm_delete)),
):
    crm_service.delete_entry(db, entry_id)
    logger.info(f"CRM entry {entry_id} deleted by {current_user.email}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
