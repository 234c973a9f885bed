# services/crm_service.py
import logging
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models import (
    CrmEntry, User,
    CRM_ONBOARDED_STATUSES, CRM_COMPLETED_STATUSES, CRM_DROPPED_STATUSES,
)
from db.Schema.crm import CrmEntryCreate, CrmEntryUpdate
from utils.errors import ClientNotLinked, DuplicateReferenceId, NotFound

logger = logging.getLogger(__name__)

# last_updated_by is always stamped from the principal, never taken from the body
UPDATABLE_CRM_FIELDS = (
    "company",
    "contact_name",
    "email",
    "phone",
    "address",
    "company_image_url",
    "status",
    "deal_value",
    "assigned_to",
    "next_follow_up",
    "last_contact",
    "reference_id",
    "notes",
    "tags",
    "work",
    "lead_sources",
    "drive_link",
    "socials",
)


def _status_key(status) -> str:
    return (status or "").strip().lower()


def _entries_with_status(db: Session, statuses) -> List[CrmEntry]:
    return (
        db.query(CrmEntry)
        .filter(func.lower(func.trim(CrmEntry.status)).in_(statuses))
        .order_by(CrmEntry.id)
        .all()
    )


def get_all_entries(db: Session) -> Dict[str, List[CrmEntry]]:
    """Full list plus onboarded / completed / dropped views, derived from the same read."""
    entries = db.query(CrmEntry).order_by(CrmEntry.id).all()
    return {
        "crm_list": entries,
        "onboarded": [e for e in entries if _status_key(e.status) in CRM_ONBOARDED_STATUSES],
        "completed": [e for e in entries if _status_key(e.status) in CRM_COMPLETED_STATUSES],
        "dropped": [e for e in entries if _status_key(e.status) in CRM_DROPPED_STATUSES],
    }


def get_onboarded_entries(db: Session) -> List[CrmEntry]:
    return _entries_with_status(db, CRM_ONBOARDED_STATUSES)


def get_completed_entries(db: Session) -> List[CrmEntry]:
    return _entries_with_status(db, CRM_COMPLETED_STATUSES)


def get_dropped_entries(db: Session) -> List[CrmEntry]:
    return _entries_with_status(db, CRM_DROPPED_STATUSES)


def get_crm_details(db: Session, entry_id: int) -> CrmEntry:
    entry = db.get(CrmEntry, entry_id)
    if not entry:
        raise NotFound(f"CRM Entry not found with id: {entry_id}")
    return entry


def get_client_crm_details(db: Session, principal: User) -> CrmEntry:
    if principal.client_crm_id is None:
        raise ClientNotLinked(
            f"Client user '{principal.email}' is not linked to any CRM entry. Please contact administrator."
        )
    return get_crm_details(db, principal.client_crm_id)


def _reference_id_taken(db: Session, reference_id: str, exclude_id: int = None) -> bool:
    query = db.query(CrmEntry.id).filter(CrmEntry.reference_id == reference_id)
    if exclude_id is not None:
        query = query.filter(CrmEntry.id != exclude_id)
    return query.first() is not None


def _commit_entry(db: Session, entry: CrmEntry) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateReferenceId(f"Reference ID already exists: {entry.reference_id}")
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)


def create_entry(db: Session, payload: CrmEntryCreate, actor: User) -> CrmEntry:
    if payload.reference_id and _reference_id_taken(db, payload.reference_id):
        raise DuplicateReferenceId(f"Reference ID already exists: {payload.reference_id}")

    entry = CrmEntry(
        **payload.model_dump(),
        last_updated_by=actor.email,
        last_updated_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    _commit_entry(db, entry)
    logger.info(f"CRM entry {entry.id} ({entry.company}) created by {actor.email}")
    return entry


def update_entry(db: Session, entry_id: int, payload: CrmEntryUpdate, actor: User) -> CrmEntry:
    """Only non-null fields overwrite; absent fields keep their stored values."""
    entry = get_crm_details(db, entry_id)

    if (
        payload.reference_id
        and payload.reference_id != entry.reference_id
        and _reference_id_taken(db, payload.reference_id, exclude_id=entry.id)
    ):
        raise DuplicateReferenceId(f"Reference ID already exists: {payload.reference_id}")

    for field in UPDATABLE_CRM_FIELDS:
        value = getattr(payload, field)
        if value is not None:
            setattr(entry, field, value)
    entry.last_updated_by = actor.email
    entry.last_updated_at = datetime.now(timezone.utc)

    _commit_entry(db, entry)
    logger.info(f"CRM entry {entry.id} updated by {actor.email}")
    return entry


def delete_entry(db: Session, entry_id: int) -> None:
    entry = get_crm_details(db, entry_id)
    db.delete(entry)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"CRM entry {entry_id} deleted")
