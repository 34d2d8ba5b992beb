"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependency resolving the bearer token to (user_id, role)
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from placement_tracker.core.config import get_settings
from placement_tracker.core.exceptions import AuthenticationError
from placement_tracker.core.logger import get_logger
from placement_tracker.schemas.schemas import CurrentUser

logger = get_logger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

# Bearer token extractor (missing header handled below so it maps to 401)
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.info("Token verification failed: %s", e)
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> CurrentUser:
    """
    FastAPI dependency - Get current authenticated user from the token.

    The token is the source of identity; roles are changed only by an
    explicit user update, which takes effect on the next login.

    Usage:
        @router.get("/protected")
        async def route(user: CurrentUser = Depends(get_current_user)):
            return user
    """
    if credentials is None or not credentials.credentials:
        logger.warning("401 Unauthorized: missing bearer token")
        raise AuthenticationError("Unauthorized")

    payload = decode_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid token")

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        raise AuthenticationError("Invalid token")

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token")

    return CurrentUser(user_id=user_id, email=payload.get("email"), role=role)
