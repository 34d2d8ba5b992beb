"""
Permission Engine - static role-to-permission table.

Every route asks this table before touching data. There is no role
hierarchy: each permission lists the roles allowed to use it, explicitly.

Lookup rules:
- unknown permission -> KeyError (caller bug, fails loudly)
- unknown role -> False (roles come from untrusted tokens, fail closed)
"""

from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Union

from fastapi import Depends

from placement_tracker.core.auth import get_current_user
from placement_tracker.core.exceptions import AuthorizationError
from placement_tracker.core.logger import get_logger
from placement_tracker.schemas.schemas import CurrentUser, UserRole

logger = get_logger(__name__)


class Permission(str, Enum):
    # User management
    CREATE_ADMIN = "CREATE_ADMIN"
    CREATE_TEACHER = "CREATE_TEACHER"
    VIEW_ALL_USERS = "VIEW_ALL_USERS"
    UPDATE_USER = "UPDATE_USER"
    DELETE_USER = "DELETE_USER"

    # Student management
    CREATE_STUDENT = "CREATE_STUDENT"
    UPDATE_STUDENT = "UPDATE_STUDENT"
    DELETE_STUDENT = "DELETE_STUDENT"
    VIEW_STUDENTS = "VIEW_STUDENTS"
    VIEW_STUDENT_DETAILS = "VIEW_STUDENT_DETAILS"

    # Company management
    CREATE_COMPANY = "CREATE_COMPANY"
    UPDATE_COMPANY = "UPDATE_COMPANY"
    DELETE_COMPANY = "DELETE_COMPANY"
    VIEW_COMPANIES = "VIEW_COMPANIES"

    # Placement (employment) management
    CREATE_EMPLOYEE = "CREATE_EMPLOYEE"
    VIEW_EMPLOYEES = "VIEW_EMPLOYEES"
    UPDATE_EMPLOYEE = "UPDATE_EMPLOYEE"

    # Analytics
    VIEW_BASIC_ANALYTICS = "VIEW_BASIC_ANALYTICS"
    VIEW_DESCRIPTIVE_ANALYTICS = "VIEW_DESCRIPTIVE_ANALYTICS"
    VIEW_PREDICTIVE_ANALYTICS = "VIEW_PREDICTIVE_ANALYTICS"


_OWNER = UserRole.owner
_ADMIN = UserRole.admin
_TEACHER = UserRole.teacher
_DEV = UserRole.developer

DEFAULT_PERMISSIONS: Dict[Permission, tuple] = {
    Permission.CREATE_ADMIN: (_OWNER, _DEV),
    Permission.CREATE_TEACHER: (_OWNER, _ADMIN, _DEV),
    Permission.VIEW_ALL_USERS: (_OWNER, _ADMIN, _DEV),
    Permission.UPDATE_USER: (_OWNER, _ADMIN, _DEV),
    Permission.DELETE_USER: (_OWNER, _DEV),

    Permission.CREATE_STUDENT: (_OWNER, _ADMIN, _DEV),
    Permission.UPDATE_STUDENT: (_OWNER, _ADMIN, _DEV),
    Permission.DELETE_STUDENT: (_OWNER, _ADMIN, _DEV),
    Permission.VIEW_STUDENTS: (_OWNER, _ADMIN, _TEACHER, _DEV),
    Permission.VIEW_STUDENT_DETAILS: (_OWNER, _ADMIN, _TEACHER, _DEV),

    Permission.CREATE_COMPANY: (_OWNER, _DEV),
    Permission.UPDATE_COMPANY: (_OWNER, _DEV),
    Permission.DELETE_COMPANY: (_OWNER, _DEV),
    Permission.VIEW_COMPANIES: (_OWNER, _DEV),

    Permission.CREATE_EMPLOYEE: (_OWNER, _ADMIN, _DEV),
    Permission.VIEW_EMPLOYEES: (_OWNER, _ADMIN, _TEACHER, _DEV),
    Permission.UPDATE_EMPLOYEE: (_OWNER, _ADMIN, _DEV),

    Permission.VIEW_BASIC_ANALYTICS: (_OWNER, _ADMIN, _TEACHER, _DEV),
    Permission.VIEW_DESCRIPTIVE_ANALYTICS: (_OWNER, _ADMIN, _TEACHER, _DEV),
    Permission.VIEW_PREDICTIVE_ANALYTICS: (_OWNER, _DEV),
}

PermissionKey = Union[Permission, str]


def _to_permission(permission: PermissionKey) -> Permission:
    try:
        return Permission(permission)
    except ValueError:
        raise KeyError(f"Unknown permission: {permission!r}") from None


def _role_name(role) -> Optional[str]:
    if isinstance(role, Enum):
        role = role.value
    return role if isinstance(role, str) else None


class PermissionTable:
    """Immutable permission -> allowed-roles map. Build once, share by reference."""

    def __init__(self, mapping: Mapping[PermissionKey, Iterable]):
        table = {}
        for key, roles in mapping.items():
            permission = _to_permission(key)
            role_set = frozenset(_role_name(r) for r in roles) - {None}
            if not role_set:
                raise ValueError(f"Permission {permission.value} has no roles")
            table[permission] = role_set

        missing = set(Permission) - set(table)
        if missing:
            names = ", ".join(sorted(p.value for p in missing))
            raise ValueError(f"Permission table is missing: {names}")

        self._table = MappingProxyType(table)

    def roles_for(self, permission: PermissionKey) -> FrozenSet[str]:
        return self._table[_to_permission(permission)]

    def has_permission(self, role, permission: PermissionKey) -> bool:
        allowed = self.roles_for(permission)
        name = _role_name(role)
        return name is not None and name in allowed

    def check_permission(self, role, permission: PermissionKey) -> None:
        if not self.has_permission(role, permission):
            raise AuthorizationError()

    def list_permissions(self, role) -> FrozenSet[Permission]:
        name = _role_name(role)
        return frozenset(p for p, roles in self._table.items() if name in roles)

    def as_dict(self) -> Dict[str, list]:
        return {p.value: sorted(roles) for p, roles in self._table.items()}


def build_permission_table(mapping: Optional[Mapping[PermissionKey, Iterable]] = None) -> PermissionTable:
    return PermissionTable(DEFAULT_PERMISSIONS if mapping is None else mapping)


@lru_cache()
def get_permission_table() -> PermissionTable:
    """Process-wide table. Also the FastAPI dependency handlers receive."""
    return build_permission_table()


# Convenience wrappers over the process-wide table

def has_permission(role, permission: PermissionKey) -> bool:
    return get_permission_table().has_permission(role, permission)


def check_permission(role, permission: PermissionKey) -> None:
    get_permission_table().check_permission(role, permission)


def list_permissions(role) -> FrozenSet[Permission]:
    return get_permission_table().list_permissions(role)


def require_permission(*permissions: PermissionKey, any_of: bool = False):
    """
    FastAPI dependency factory - authenticate, then authorize.

    Usage:
        @router.delete("/{id}")
        async def route(user: CurrentUser = Depends(require_permission(Permission.DELETE_STUDENT))):
            ...

    With any_of=True one matching permission is enough.
    """
    required = tuple(_to_permission(p) for p in permissions)
    if not required:
        raise ValueError("require_permission needs at least one permission")

    async def dependency(
        user: CurrentUser = Depends(get_current_user),
        table: PermissionTable = Depends(get_permission_table),
    ) -> CurrentUser:
        checks = [table.has_permission(user.role, p) for p in required]
        allowed = any(checks) if any_of else all(checks)
        if not allowed:
            logger.warning(
                "403 Forbidden: user %s with role %r lacks %s",
                user.user_id, user.role, ", ".join(p.value for p in required)
            )
            raise AuthorizationError()
        return user

    return dependency
