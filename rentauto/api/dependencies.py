from typing import Optional
from fastapi import Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from rentauto.core.config import settings
from rentauto.core.database import get_async_session
from rentauto.core.exceptions import AuthenticationError, PermissionDeniedError
from rentauto.auth.jwt_handler import decode_access_token
from rentauto.auth.permissions import PermissionChecker
from rentauto.models.auth.user import User
from rentauto.services.auth.user_service import UserService
import logging

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_async_session)
) -> User:
    """Get current authenticated user"""
    if credentials is None:
        raise AuthenticationError("Access token required")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    # Re-read the user so deactivation and role changes apply immediately
    user_service = UserService(session)
    user = await user_service.get_user(int(payload["sub"]))

    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    request.state.current_user = user
    return user

def get_permission_checker(current_user: User) -> PermissionChecker:
    return PermissionChecker(current_user.role)

def require_permission(resource: str, action: str):
    """
    Dependency to require specific permission for an endpoint

    Examples:
        require_permission("rental", "start")      # rental:start
    """
    async def permission_dependency(
        current_user: User = Depends(get_current_user)
    ) -> User:
        checker = get_permission_checker(current_user)
        checker.require(resource, action)
        return current_user

    return permission_dependency

def require_roles(*roles: str):
    """Restrict an endpoint to an explicit allow-list of roles"""
    async def role_dependency(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role not in roles:
            logger.warning(f"Role {current_user.role} rejected, allowed: {', '.join(roles)}")
            raise PermissionDeniedError("You do not have permission to perform this action")
        return current_user

    return role_dependency

class Pagination:
    """Common page/limit query parameters"""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    ):
        self.page = page
        self.limit = limit
