# services/user_service.py
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from db.models import User, UserRole, CrmEntry
from utils.errors import NotFound, UnknownUser

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def get_all_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id).all()


def get_user_by_id(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound(f"User not found with id: {user_id}")
    return user


def get_user_by_email(db: Session, email: str) -> User:
    user = find_user_by_email(db, email)
    if not user:
        raise UnknownUser(f"User not found with email: {email}")
    return user


def increment_tasks_completed(db: Session, email: str) -> bool:
    """
    Atomic storage-level increment; concurrent completions cannot lose updates.
    Returns False when no user has that email. Does not commit.
    """
    updated = (
        db.query(User)
        .filter(func.lower(User.email) == normalize_email(email))
        .update({User.tasks_completed: User.tasks_completed + 1}, synchronize_session=False)
    )
    return updated > 0


def update_user(db: Session, user_id: int, role: Optional[str] = None,
                client_crm_id: Optional[int] = None) -> User:
    """
    Role change and CLIENT -> CRM linking. Any of the four roles may be set here,
    which is how CLIENT accounts get provisioned.
    """
    user = get_user_by_id(db, user_id)

    if role is not None:
        user.role = UserRole.parse(role)

    if client_crm_id is not None:
        if not db.get(CrmEntry, client_crm_id):
            raise NotFound(f"CRM Entry not found with id: {client_crm_id}")
        user.client_crm_id = client_crm_id

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info(f"User {user.email} updated: role={user.role.value}, client_crm_id={user.client_crm_id}")
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user_by_id(db, user_id)
    db.delete(user)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"User {user_id} deleted")
