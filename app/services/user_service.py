"""User service for staff accounts."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis_client import CacheManager
from app.core.security import get_password_hash
from app.models.users import users
from app.schemas.users import UserCreate


class UserService:
    """Service for staff user operations."""

    # Cache TTL in seconds (30 minutes for user profiles)
    USER_CACHE_TTL = 1800

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_user_cache_key(user_id: UUID) -> str:
        """Generate cache key for user."""
        return f"user:{user_id}"

    async def create_user(self, db: AsyncSession, user_data: UserCreate) -> dict:
        """Create a new staff user with a hashed password."""
        query = (
            users.insert()
            .values(
                email=user_data.email.lower(),
                hashed_password=get_password_hash(user_data.password),
                first_name=user_data.first_name,
                last_name=user_data.last_name,
                role=user_data.role.value,
                permissions=[permission.value for permission in user_data.permissions],
                phone=user_data.phone,
                license_number=user_data.license_number,
            )
            .returning(users)
        )

        result = await db.execute(query)
        user = result.mappings().first()
        await db.commit()

        if not user:
            raise ValueError("Failed to create user")

        return dict(user)

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get user by ID with caching."""
        # Try cache first
        if self.cache:
            cached_user = self.cache.get_json(self._get_user_cache_key(user_id))
            if cached_user:
                cached_user["id"] = UUID(str(cached_user["id"]))
                return cached_user

        query = select(users).where(users.c.id == user_id)
        result = await db.execute(query)
        user = result.mappings().first()

        if not user:
            return None

        user_dict = dict(user)
        user_dict.pop("hashed_password", None)

        if self.cache:
            self.cache.set_json(
                self._get_user_cache_key(user_id), user_dict, ttl=self.USER_CACHE_TTL
            )

        return user_dict

    async def get_user_by_email(self, db: AsyncSession, email: str) -> dict | None:
        """Get user by email, including the password hash."""
        query = select(users).where(users.c.email == email.lower())
        result = await db.execute(query)
        user = result.mappings().first()

        return dict(user) if user else None

    async def record_login(self, db: AsyncSession, user_id: UUID) -> None:
        """Stamp the last login time."""
        await db.execute(
            update(users).where(users.c.id == user_id).values(last_login_at=datetime.now(UTC))
        )
        await db.commit()

        # Invalidate cache
        if self.cache:
            self.cache.delete(self._get_user_cache_key(user_id))
