# services/task_service.py
"""
Task assignment engine.

Status is free text collapsed into two buckets: terminal ({completed, done,
posted}, case-insensitive) and active (everything else). Only an
active -> terminal transition has side effects: each current assignee's
tasks_completed counter goes up by one.
"""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from db.models import CrmEntry, Task, TaskAssignee, User, TERMINAL_TASK_STATUSES
from db.Schema.task import TaskCreate, TaskUpdate
from services import mail
from services.user_service import find_user_by_email, increment_tasks_completed, normalize_email
from utils.errors import ClientNotLinked, NotFound

logger = logging.getLogger(__name__)

UNASSIGNED_SENTINEL = "unassigned"

UPDATABLE_TASK_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "assigned_to",
    "due_date",
    "company_id",
    "task_type",
    "attachments",
    "task_link",
    "is_visible_on_main_board",
)


def is_terminal_status(status: Optional[str]) -> bool:
    return (status or "").strip().lower() in TERMINAL_TASK_STATUSES


def _status_key():
    return func.lower(func.trim(Task.status))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =========================
# Assignee sync
# =========================
def normalize_assignee_emails(emails: Optional[Iterable[str]]) -> List[str]:
    """Trimmed, lower-cased, de-duplicated in first-seen order; blanks and 'unassigned' dropped."""
    seen = []
    for raw in emails or []:
        email = normalize_email(raw)
        if not email or email == UNASSIGNED_SENTINEL or email in seen:
            continue
        seen.append(email)
    return seen


def _build_assignee(db: Session, email: str) -> TaskAssignee:
    # Assignees need not be registered users
    user = find_user_by_email(db, email)
    if not user:
        logger.warning(f"User not found for email: {email}, adding with email only")
    return TaskAssignee(assignee_email=email, assignee_name=user.name if user else email)


def sync_assignees(db: Session, task: Task, emails: Optional[Iterable[str]]) -> List[str]:
    """
    Make the task's assignee set equal `emails` by deleting removed rows and
    inserting new ones. Returns the newly added emails (new - old).
    """
    wanted = normalize_assignee_emails(emails)
    current = {normalize_email(a.assignee_email): a for a in task.assignees}

    for email, row in current.items():
        if email not in wanted:
            task.assignees.remove(row)

    added = [email for email in wanted if email not in current]
    for email in added:
        task.assignees.append(_build_assignee(db, email))
    return added


def _notify_assignees(task: Task, emails: List[str], assigned_by: Optional[str]) -> None:
    for email in emails:
        try:
            result = mail.send_task_assignment_email(email, task, assigned_by)
            if result.get("status") != "success":
                logger.warning(f"Task assignment email to {email} for task {task.id} not delivered: {result.get('message')}")
        except Exception:
            logger.exception(f"Failed to send task assignment email to {email} for task {task.id}")


def _queue_notifications(background_tasks: Optional[BackgroundTasks], task: Task,
                         emails: List[str], assigned_by: Optional[str]) -> None:
    """Mail goes out after the response when a queue is given, inline otherwise."""
    if not emails:
        return
    if background_tasks is not None:
        background_tasks.add_task(_notify_assignees, task, list(emails), assigned_by)
    else:
        _notify_assignees(task, emails, assigned_by)


def _completion_recipients(task: Task) -> List[str]:
    if task.assignees:
        return [a.assignee_email for a in task.assignees]
    # Legacy single-assignee tasks only count when the field holds an email
    legacy = (task.assigned_to or "").strip()
    if "@" in legacy:
        return [legacy]
    return []


def _increment_completion_counters(db: Session, task: Task) -> None:
    db.flush()
    for email in _completion_recipients(task):
        try:
            with db.begin_nested():
                if not increment_tasks_completed(db, email):
                    logger.warning(f"Could not increment tasks for user: {email} (no account)")
        except Exception:
            logger.exception(f"Could not increment tasks for user: {email}")


def _ensure_company(db: Session, company_id: Optional[int]) -> None:
    if company_id is not None and not db.get(CrmEntry, company_id):
        raise NotFound(f"CRM Entry not found with id: {company_id}")


# =========================
# Queries
# =========================
def get_all_tasks(db: Session) -> List[Task]:
    return db.query(Task).order_by(Task.id).all()


def get_active_tasks(db: Session) -> List[Task]:
    return (
        db.query(Task)
        .filter(or_(Task.status.is_(None), _status_key().notin_(TERMINAL_TASK_STATUSES)))
        .order_by(Task.id)
        .all()
    )


def get_completed_tasks(db: Session) -> List[Task]:
    return db.query(Task).filter(_status_key().in_(TERMINAL_TASK_STATUSES)).order_by(Task.id).all()


def get_task(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise NotFound(f"Task not found with id: {task_id}")
    return task


def get_tasks_by_company_id(db: Session, company_id: int) -> List[Task]:
    return db.query(Task).filter(Task.company_id == company_id).order_by(Task.id).all()


def get_current_user_tasks(db: Session, user_email: str) -> List[Task]:
    """Tasks where the user is an assignee, or named in the legacy assigned_to field."""
    email = normalize_email(user_email)
    local_part = email.split("@")[0]
    assigned_task_ids = select(TaskAssignee.task_id).where(func.lower(TaskAssignee.assignee_email) == email)
    return (
        db.query(Task)
        .filter(or_(
            Task.id.in_(assigned_task_ids),
            func.lower(Task.assigned_to) == email,
            func.lower(Task.assigned_to).contains(local_part, autoescape=True),
        ))
        .order_by(Task.id)
        .all()
    )


def get_client_tasks(db: Session, principal: User) -> List[Task]:
    if principal.client_crm_id is None:
        raise ClientNotLinked(
            f"Client user '{principal.email}' is not linked to any CRM entry. Please contact administrator."
        )
    return get_tasks_by_company_id(db, principal.client_crm_id)


# =========================
# Mutations
# =========================
def _claim_completion(db: Session, task_id: int, status: str) -> bool:
    """
    Move the row into `status` only if it is still active in storage. The row
    count tells whether this update made the active -> terminal transition,
    so overlapping completions of one task credit assignees once.
    """
    claimed = (
        db.query(Task)
        .filter(
            Task.id == task_id,
            or_(Task.status.is_(None), _status_key().notin_(TERMINAL_TASK_STATUSES)),
        )
        .update({Task.status: status}, synchronize_session=False)
    )
    return claimed > 0


def create_task(db: Session, payload: TaskCreate, actor: User,
                background_tasks: Optional[BackgroundTasks] = None) -> Task:
    _ensure_company(db, payload.company_id)

    data = payload.model_dump(exclude={"assigned_to_list"})
    task = Task(**data, last_updated_by=actor.email, last_updated_at=_utcnow())
    db.add(task)

    added: List[str] = []
    try:
        db.flush()
        if payload.assigned_to_list:
            added = sync_assignees(db, task, payload.assigned_to_list)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(task)

    logger.info(f"Task {task.id} created by {actor.email} with {len(added)} assignee(s)")
    _queue_notifications(background_tasks, task, added, actor.name)
    return task


def update_task(db: Session, task_id: int, payload: TaskUpdate, actor: User,
                background_tasks: Optional[BackgroundTasks] = None) -> Task:
    """
    Partial update: non-null fields overwrite, absent fields stay. Fields,
    assignee rows and completion counters commit together or not at all.
    """
    task = get_task(db, task_id)

    added: List[str] = []
    completed = False
    try:
        if payload.company_id is not None:
            _ensure_company(db, payload.company_id)

        # Decided against the stored row, not the possibly stale loaded one
        if is_terminal_status(payload.status):
            completed = _claim_completion(db, task_id, payload.status)

        for field in UPDATABLE_TASK_FIELDS:
            value = getattr(payload, field)
            if value is not None:
                setattr(task, field, value)
        task.last_updated_by = actor.email
        task.last_updated_at = _utcnow()

        if payload.assigned_to_list is not None:
            added = sync_assignees(db, task, payload.assigned_to_list)

        if completed:
            logger.info(f"Task {task.id} completed; crediting assignees")
            _increment_completion_counters(db, task)

        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(task)

    _queue_notifications(background_tasks, task, added, actor.name)
    return task


def delete_task(db: Session, task_id: int) -> None:
    task = get_task(db, task_id)
    db.delete(task)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Task {task_id} deleted")
