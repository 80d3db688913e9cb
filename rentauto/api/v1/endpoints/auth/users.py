import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from rentauto.core.database import get_async_session
from rentauto.api.dependencies import Pagination, require_roles
from rentauto.models.shared.enums import UserRole
from rentauto.schemas.auth.user import UserCreate, UserUpdate, UserResponse
from rentauto.schemas.common.pagination import PaginatedResponse
from rentauto.schemas.common.response import ApiResponse
from rentauto.services.auth.user_service import UserService

router = APIRouter()
logger = logging.getLogger(__name__)

require_admin = require_roles(UserRole.ADMIN.value)

@router.post("/register", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def register_user(
    user_create: UserCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_admin)
):
    """Create new user (admin only)"""
    try:
        user_service = UserService(session)
        new_user = await user_service.create_user(user_create, created_by=current_user.id)
        return {"success": True, "message": "User registered successfully", "data": new_user}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create user error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

@router.get("/users", response_model=ApiResponse[PaginatedResponse[UserResponse]])
async def get_users(
    pagination: Pagination = Depends(),
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_admin)
):
    """Get users list with pagination (admin only)"""
    try:
        user_service = UserService(session)
        result = await user_service.get_users(
            page=pagination.page,
            limit=pagination.limit,
            search=search,
            role=role.value if role else None,
            is_active=is_active
        )
        return {"success": True, "data": result}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get users error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get users"
        )

@router.put("/users/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: int,
    user_update: UserUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user = Depends(require_admin)
):
    """Update user role, status or names (admin only)"""
    try:
        user_service = UserService(session)
        user = await user_service.update_user(user_id, user_update, current_user.id)
        return {"success": True, "message": "User updated successfully", "data": user}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update user error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update user"
        )
