# routes/auth/permissions.py - Role -> permission policy

import enum
from typing import Dict, FrozenSet

from db.models import UserRole


class Permission(str, enum.Enum):
    # CRM
    crm_view = "crm_view"
    crm_create = "crm_create"
    crm_edit = "crm_edit"
    crm_delete = "crm_delete"

    # TASKS
    task_view = "task_view"
    task_create = "task_create"
    task_edit = "task_edit"
    task_delete = "task_delete"

    # MEETINGS
    meeting_view = "meeting_view"
    meeting_create = "meeting_create"
    meeting_edit = "meeting_edit"
    meeting_delete = "meeting_delete"

    # USERS
    user_view = "user_view"
    user_view_details = "user_view_details"
    user_manage = "user_manage"

    # CLIENT PORTAL (read-only, own CRM entry only)
    client_portal = "client_portal"


_STAFF = frozenset({
    Permission.crm_view,
    Permission.crm_edit,
    Permission.task_view,
    Permission.task_create,
    Permission.task_edit,
    Permission.meeting_view,
    Permission.meeting_create,
    Permission.meeting_edit,
    Permission.user_view,
})

_ADMIN = _STAFF | frozenset({
    Permission.crm_create,
    Permission.crm_delete,
    Permission.task_delete,
    Permission.meeting_delete,
    Permission.user_view_details,
})

ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.EMPLOYEE: _STAFF,
    UserRole.ADMIN: _ADMIN,
    UserRole.SUPER_ADMIN: _ADMIN | frozenset({Permission.user_manage}),
    UserRole.CLIENT: frozenset({Permission.client_portal}),
}


def role_has_permission(role: UserRole, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def roles_for(permission: Permission) -> FrozenSet[UserRole]:
    """Role-set an endpoint guarded by `permission` admits."""
    return frozenset(role for role, perms in ROLE_PERMISSIONS.items() if permission in perms)
