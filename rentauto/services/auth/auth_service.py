import logging
from typing import Any, Dict, Optional
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from rentauto.models.auth.user import User
from rentauto.core.config import settings
from rentauto.core.exceptions import AuthenticationError
from rentauto.core.security import verify_password, create_access_token
from rentauto.services.auth.user_service import UserService
from rentauto.utils.dates import utc_now

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_service = UserService(session)

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = await self.user_service.get_user_by_email(email)

        if not user or not user.is_active:
            logger.warning(f"Failed login for {email}: unknown or inactive account")
            return None

        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login for {email}: wrong password")
            return None

        user.last_login = utc_now()
        await self.session.commit()
        await self.session.refresh(user)
        return user

    def create_token(self, user: User) -> Dict[str, Any]:
        """Create an access token for user"""
        expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = create_access_token(
            data={
                "sub": str(user.id),
                "email": user.email,
                "role": user.role,
            },
            expires_delta=expires,
        )
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": int(expires.total_seconds()),
            "user": user,
        }

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        user = await self.authenticate_user(email, password)
        if not user:
            raise AuthenticationError("Invalid credentials")

        logger.info(f"User {user.email} logged in")
        return self.create_token(user)
