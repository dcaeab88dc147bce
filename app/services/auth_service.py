"""Authentication service for password login and JWT."""

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.redis_client import CacheManager
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from app.schemas.auth import Token
from app.services.user_service import UserService


class AuthService:
    """Authentication service for staff login and token handling."""

    def __init__(self, cache_manager: CacheManager):
        """Initialize auth service with cache manager."""
        self.cache = cache_manager

    async def login(self, db: AsyncSession, email: str, password: str) -> tuple[dict, Token]:
        """
        Authenticate a staff member with email and password.

        Args:
            db: Database session
            email: Login email
            password: Plain text password

        Returns:
            Tuple of (user dict, token pair)

        Raises:
            UnauthorizedException: If the credentials are wrong
            ForbiddenException: If the account is deactivated
        """
        user_service = UserService(self.cache)
        user = await user_service.get_user_by_email(db, email)

        if not user or not verify_password(password, user["hashed_password"]):
            raise UnauthorizedException("Invalid email or password")

        if not user["is_active"]:
            raise ForbiddenException("User account is deactivated")

        await user_service.record_login(db, user["id"])
        user.pop("hashed_password", None)

        return user, self.create_tokens(str(user["id"]))

    def create_tokens(self, user_id: str) -> Token:
        """
        Create access and refresh tokens for a user.

        Args:
            user_id: User identifier

        Returns:
            Token pair (access and refresh)
        """
        access_token = create_access_token(
            data={"sub": user_id},
            expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        )

        refresh_token = create_refresh_token(
            data={"sub": user_id},
            expires_delta=timedelta(days=settings.refresh_token_expire_days),
        )

        return Token(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
        )

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Create new token pair from refresh token.

        Raises:
            UnauthorizedException: If refresh token is invalid or revoked
        """
        payload = decode_refresh_token(refresh_token)

        if payload is None or payload.get("sub") is None:
            raise UnauthorizedException("Invalid refresh token")

        # Check if token is blacklisted
        if self.cache.exists(f"blacklist:{refresh_token}"):
            raise UnauthorizedException("Token has been revoked")

        return self.create_tokens(payload["sub"])

    def revoke_token(self, token: str, ttl: int | None = None) -> None:
        """Revoke a refresh token by adding it to blacklist."""
        self.cache.set(
            f"blacklist:{token}",
            "1",
            ttl=ttl or settings.refresh_token_expire_days * 86400,
        )
