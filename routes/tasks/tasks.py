# routes/tasks/tasks.py

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.orm import Session

from db.connection import get_db
from db.models import User
from db.Schema.task import TaskCreate, TaskOut, TaskUpdate
from routes.auth.auth_dependency import require_permission
from routes.auth.permissions import Permission
from services import task_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)


@router.get("", response_model=List[TaskOut])
def get_all_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_view)),
):
    tasks = task_service.get_all_tasks(db)
    logger.info(f"Fetched {len(tasks)} tasks for {current_user.email}")
    return tasks


@router.get("/active", response_model=List[TaskOut])
def get_active_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_view)),
):
    return task_service.get_active_tasks(db)


@router.get("/completed", response_model=List[TaskOut])
def get_completed_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_view)),
):
    return task_service.get_completed_tasks(db)


@router.get("/my-tasks", response_model=List[TaskOut])
def get_my_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_view)),
):
    logger.info(f"Fetching tasks for current user: {current_user.email}")
    tasks = task_service.get_current_user_tasks(db, current_user.email)
    logger.info(f"Found {len(tasks)} tasks for user: {current_user.email}")
    return tasks


@router.get("/client-tasks", response_model=List[TaskOut])
def get_client_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.client_portal)),
):
    """Tasks of the CRM entry the calling CLIENT is linked to"""
    return task_service.get_client_tasks(db, current_user)


@router.get("/company/{company_id}", response_model=List[TaskOut])
def get_tasks_by_company(
    company_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_view)),
):
    return task_service.get_tasks_by_company_id(db, company_id)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_view)),
):
    return task_service.get_task(db, task_id)


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_create)),
):
    """Create a task; every assignee gets a "task assigned" email after the response."""
    return task_service.create_task(db, body, current_user, background_tasks)


@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    body: TaskUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_edit)),
):
    """
    Partial update. `assignedToList` replaces the assignee set when present
    (only newly added assignees are notified); moving the task into a
    completed status credits each assignee once.
    """
    return task_service.update_task(db, task_id, body, current_user, background_tasks)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.task_delete)),
):
    task_service.delete_task(db, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
