import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentauto.core.database import get_async_session
from rentauto.api.dependencies import get_current_user
from rentauto.models.auth.user import User
from rentauto.schemas.auth.user import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    TokenResponse,
    UserResponse,
)
from rentauto.schemas.common.response import ApiResponse
from rentauto.services.auth.auth_service import AuthService
from rentauto.services.auth.user_service import UserService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    login_data: LoginRequest,
    session: AsyncSession = Depends(get_async_session)
):
    """Authenticate user and return an access token"""
    try:
        auth_service = AuthService(session)
        token = await auth_service.login(login_data.email, login_data.password)
        return {"success": True, "message": "Login successful", "data": token}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {str(e)}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Login failed")

@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get current user profile"""
    return {"success": True, "data": current_user}

@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    profile_data: ProfileUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user)
):
    """Update the caller's own name and phone"""
    try:
        user_service = UserService(session)
        user = await user_service.update_profile(current_user, profile_data)
        return {"success": True, "message": "Profile updated successfully", "data": user}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update profile error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )

@router.put("/change-password", response_model=ApiResponse[None])
async def change_password(
    password_data: ChangePasswordRequest,
    session: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user)
):
    """Change password"""
    try:
        user_service = UserService(session)
        await user_service.change_password(
            current_user,
            password_data.current_password,
            password_data.new_password
        )
        return {"success": True, "message": "Password changed successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Change password error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change password"
        )
