import logging
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from rentauto.models.auth.user import User
from rentauto.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from rentauto.core.security import get_password_hash, verify_password
from rentauto.schemas.auth.user import UserCreate, UserUpdate, ProfileUpdate
from rentauto.utils.pagination import paginate

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        result = await self.session.execute(
            select(User).where(
                User.id == user_id,
                User.is_deleted == False
            )
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        result = await self.session.execute(
            select(User).where(
                User.email == email.lower(),
                User.is_deleted == False
            )
        )
        return result.scalar_one_or_none()

    async def get_users(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Dict[str, Any]:
        conditions = [User.is_deleted == False]
        if search:
            conditions.append(
                or_(
                    User.email.ilike(f"%{search}%"),
                    User.first_name.ilike(f"%{search}%"),
                    User.last_name.ilike(f"%{search}%"),
                )
            )
        if role:
            conditions.append(User.role == role)
        if is_active is not None:
            conditions.append(User.is_active == is_active)

        query = select(User).where(*conditions).order_by(User.created_at.desc(), User.id.desc())
        return await paginate(self.session, query, page, limit)

    async def create_user(self, user_data: UserCreate, created_by: Optional[int] = None) -> User:
        """Register a new user account"""
        try:
            if await self.get_user_by_email(user_data.email):
                raise ConflictError("Email is already registered")

            payload = user_data.model_dump(exclude={"password"})
            payload["email"] = payload["email"].lower()
            user = User(
                **payload,
                hashed_password=get_password_hash(user_data.password),
                is_active=True,
                created_by=created_by,
            )
            self.session.add(user)
            await self.session.commit()
            await self.session.refresh(user)

            logger.info(f"User created successfully: {user.email} ({user.role})")
            return user

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error creating user: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create user"
            )

    async def update_user(self, user_id: int, user_data: UserUpdate, updated_by: int) -> User:
        """Administrative update of another account"""
        try:
            user = await self.get_user(user_id)
            if not user:
                raise NotFoundError("User not found")

            update_data = {
                k: v for k, v in user_data.model_dump(exclude_unset=True).items()
                if v is not None or k == "phone"
            }
            if user_id == updated_by and update_data.get("is_active") is False:
                raise BusinessRuleError("You cannot deactivate your own account")

            for field, value in update_data.items():
                setattr(user, field, value)
            user.updated_by = updated_by

            await self.session.commit()
            await self.session.refresh(user)

            logger.info(f"User {user_id} updated by {updated_by}")
            return user

        except HTTPException:
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating user {user_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update user"
            )

    async def update_profile(self, user: User, profile_data: ProfileUpdate) -> User:
        try:
            for field, value in profile_data.model_dump(exclude_unset=True).items():
                setattr(user, field, value)
            user.updated_by = user.id

            await self.session.commit()
            await self.session.refresh(user)
            return user

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating profile for user {user.id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update profile"
            )

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.hashed_password):
            raise BusinessRuleError("Current password is incorrect")
        if current_password == new_password:
            raise BusinessRuleError("New password must be different from the current one")

        try:
            user.hashed_password = get_password_hash(new_password)
            user.updated_by = user.id
            await self.session.commit()
            logger.info(f"Password changed for user {user.id}")

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error changing password for user {user.id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to change password"
            )
