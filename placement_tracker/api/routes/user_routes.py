"""
User Routes (staff accounts)

GET /users - List active users
GET /users/{user_id} - Get one user
POST /users - Create user (admins/owners need CREATE_ADMIN, teachers CREATE_TEACHER)
PUT /users/{user_id} - Update email / name / role / password
DELETE /users/{user_id} - Deactivate user
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from typing import List

from placement_tracker.db.postgres import get_db_session, execute_raw_sql
from placement_tracker.core.auth import hash_password
from placement_tracker.core.exceptions import NotFoundError, ValidationError
from placement_tracker.core.permissions import (
    Permission, PermissionTable, get_permission_table, require_permission
)
from placement_tracker.schemas.schemas import (
    CurrentUser, UserCreate, UserUpdate, UserResponse, UserRole, MessageResponse
)

router = APIRouter(prefix="/users", tags=["Users"])

USER_COLUMNS = """
    u.id, u.email, u.full_name, u.role, u.is_active, u.must_change_password, u.created_at,
    (SELECT full_name FROM users c WHERE c.id = u.created_by) AS created_by_name
"""

# Accounts created by someone else start with a temporary password
MUST_CHANGE_PASSWORD_ROLES = {UserRole.admin, UserRole.teacher}


def _role_permission(role: UserRole) -> Permission:
    return Permission.CREATE_TEACHER if role == UserRole.teacher else Permission.CREATE_ADMIN


@router.get("", response_model=List[UserResponse])
async def list_users(user: CurrentUser = Depends(require_permission(Permission.VIEW_ALL_USERS))):
    """List all active users, newest first."""
    results = execute_raw_sql(f"""
        SELECT {USER_COLUMNS} FROM users u
        WHERE u.is_active = true
        ORDER BY u.created_at DESC
    """)
    return [UserResponse(**r) for r in results]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, user: CurrentUser = Depends(require_permission(Permission.VIEW_ALL_USERS))):
    results = execute_raw_sql(f"""
        SELECT {USER_COLUMNS} FROM users u
        WHERE u.id = :id AND u.is_active = true
    """, {"id": user_id})

    if not results:
        raise NotFoundError("User not found")
    return UserResponse(**results[0])


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    user: CurrentUser = Depends(require_permission(
        Permission.CREATE_ADMIN, Permission.CREATE_TEACHER, any_of=True
    )),
    table: PermissionTable = Depends(get_permission_table)
):
    """
    Create a staff account.

    Creating a teacher needs CREATE_TEACHER; any other role needs CREATE_ADMIN.
    """
    table.check_permission(user.role, _role_permission(data.role))

    with get_db_session() as db:
        result = db.execute(
            text("SELECT id FROM users WHERE email = :email"),
            {"email": data.email}
        )
        if result.fetchone():
            raise ValidationError("Email already exists")

        result = db.execute(
            text("""
                INSERT INTO users (email, password_hash, full_name, role, must_change_password, created_by)
                VALUES (:email, :password_hash, :full_name, :role, :must_change_password, :created_by)
                RETURNING id, email, full_name, role, is_active, must_change_password, created_at
            """),
            {
                "email": data.email,
                "password_hash": hash_password(data.password),
                "full_name": data.full_name,
                "role": data.role.value,
                "must_change_password": data.role in MUST_CHANGE_PASSWORD_ROLES,
                "created_by": user.user_id
            }
        )
        row = result.fetchone()

    return UserResponse(**row._mapping)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    user: CurrentUser = Depends(require_permission(Permission.UPDATE_USER)),
    table: PermissionTable = Depends(get_permission_table)
):
    """
    Update email, full name, role or password. Only provided fields change.

    Assigning a role needs the same permission as creating that role.
    """
    if data.role is not None:
        table.check_permission(user.role, _role_permission(data.role))

    updates = []
    params = {"id": user_id}

    if data.email is not None: updates.append("email = :email"); params["email"] = data.email
    if data.full_name is not None: updates.append("full_name = :full_name"); params["full_name"] = data.full_name
    if data.role is not None: updates.append("role = :role"); params["role"] = data.role.value
    if data.password is not None:
        updates.append("password_hash = :password_hash")
        params["password_hash"] = hash_password(data.password)

    if not updates:
        raise ValidationError("No fields to update")

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                UPDATE users SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id AND is_active = true
                RETURNING id, email, full_name, role, is_active, must_change_password, created_at
            """),
            params
        )
        row = result.fetchone()

    if not row:
        raise NotFoundError("User not found")
    return UserResponse(**row._mapping)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: int, user: CurrentUser = Depends(require_permission(Permission.DELETE_USER))):
    """Deactivate a user. The row stays for created_by references."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                UPDATE users SET is_active = false, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id AND is_active = true
                RETURNING id
            """),
            {"id": user_id}
        )
        if not result.fetchone():
            raise NotFoundError("User not found")

    return MessageResponse(message="User deleted successfully")
