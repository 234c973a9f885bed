# db/Schema/crm.py

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import constr

from db.Schema.common import CamelModel


class CrmEntryBase(CamelModel):
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    company_image_url: Optional[str] = None
    status: Optional[str] = None
    deal_value: Optional[float] = None
    assigned_to: Optional[str] = None
    next_follow_up: Optional[date] = None
    last_contact: Optional[date] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    work: Optional[List[str]] = None
    lead_sources: Optional[List[str]] = None
    drive_link: Optional[str] = None
    socials: Optional[Dict[str, str]] = None


class CrmEntryCreate(CrmEntryBase):
    company: constr(strip_whitespace=True, min_length=1, max_length=255)


class CrmEntryUpdate(CrmEntryBase):
    """Every field optional; only non-null fields are applied"""
    company: Optional[constr(strip_whitespace=True, min_length=1, max_length=255)] = None
    # Accepted for compatibility with older clients but always overwritten server-side
    last_updated_by: Optional[str] = None


class CrmEntryOut(CrmEntryBase):
    id: int
    company: str
    last_updated_by: Optional[str] = None
    last_updated_at: Optional[datetime] = None


class CrmBuckets(CamelModel):
    crm_list: List[CrmEntryOut]
    onboarded: List[CrmEntryOut]
    completed: List[CrmEntryOut]
    dropped: List[CrmEntryOut]
