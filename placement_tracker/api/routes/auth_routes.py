"""
Authentication Routes

POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
GET /auth/permissions - Permissions granted to the caller's role
POST /auth/change-password - Set a new password
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from placement_tracker.db.postgres import get_db_session
from placement_tracker.core.auth import hash_password, verify_password, create_access_token, get_current_user
from placement_tracker.core.exceptions import AuthenticationError, NotFoundError
from placement_tracker.core.logger import get_logger
from placement_tracker.core.permissions import PermissionTable, get_permission_table
from placement_tracker.schemas.schemas import (
    CurrentUser, LoginRequest, TokenResponse, UserResponse, ChangePasswordRequest,
    PermissionListResponse, MessageResponse
)

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token (valid 24h).

    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT id, email, password_hash, full_name, role, must_change_password
                FROM users WHERE email = :email AND is_active = true
            """),
            {"email": request.email}
        )
        user = result.fetchone()

    if not user or not verify_password(request.password, user.password_hash):
        logger.warning("Failed login for %s", request.email)
        raise AuthenticationError("Invalid email or password")

    token = create_access_token(data={"sub": str(user.id), "email": user.email, "role": user.role})

    return TokenResponse(
        access_token=token, user_id=user.id, email=user.email, full_name=user.full_name,
        role=user.role, must_change_password=bool(user.must_change_password)
    )


@router.get("/me", response_model=UserResponse)
async def get_me(user: CurrentUser = Depends(get_current_user)):
    """Get current authenticated user's info."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                SELECT id, email, full_name, role, is_active, must_change_password, created_at
                FROM users WHERE id = :id AND is_active = true
            """),
            {"id": user.user_id}
        )
        row = result.fetchone()

    if not row:
        raise NotFoundError("User not found")

    return UserResponse(**row._mapping)


@router.get("/permissions", response_model=PermissionListResponse)
async def get_my_permissions(
    user: CurrentUser = Depends(get_current_user),
    table: PermissionTable = Depends(get_permission_table)
):
    """What the caller's role may do (for hiding UI actions)."""
    permissions = sorted(p.value for p in table.list_permissions(user.role))
    return PermissionListResponse(role=user.role, permissions=permissions)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(request: ChangePasswordRequest, user: CurrentUser = Depends(get_current_user)):
    """Set a new password and clear the must-change flag."""
    with get_db_session() as db:
        result = db.execute(
            text("""
                UPDATE users
                SET password_hash = :password_hash, must_change_password = false, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id AND is_active = true
                RETURNING id
            """),
            {"id": user.user_id, "password_hash": hash_password(request.new_password)}
        )
        if not result.fetchone():
            raise NotFoundError("User not found")

    return MessageResponse(message="Password changed successfully")
