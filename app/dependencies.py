from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .models.user import User
from .models.enums import UserRole
from .auth import AuthService
from .db import init_db
from .exceptions import AuthenticationError, AuthorizationError

# Security setup
security = HTTPBearer(auto_error=False)
optional_security = HTTPBearer(auto_error=False)


async def ensure_db():
    """
    FastAPI dependency: call on routes/routers requiring DB.
    First call triggers init_beanie once; subsequent calls are cheap.
    """
    await init_db()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """Get current user from JWT token"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return await AuthService.get_current_user(credentials.credentials)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[User]:
    """Return current user if valid credentials are provided, otherwise None."""
    if not credentials:
        return None
    try:
        return await AuthService.get_current_user(credentials.credentials)
    except AuthenticationError:
        return None


async def admin_required(current_user: User = Depends(get_current_user)) -> User:
    """Check if current user has admin role"""
    if current_user.role != UserRole.ADMIN:
        raise AuthorizationError("Admin access required")
    return current_user
