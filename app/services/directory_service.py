"""Practitioner and patient lookups for the scheduling core."""

from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreException
from app.core.redis_client import CacheManager
from app.models.patients import patients
from app.models.users import users


class ClinicDirectory:
    """Existence checks against the staff and patient tables."""

    # Cache TTL in seconds (5 minutes, deactivation takes effect within it)
    PRACTITIONER_CACHE_TTL = 300

    def __init__(self, db: AsyncSession, cache_manager: CacheManager | None = None):
        """Initialize directory with database session and optional cache."""
        self.db = db
        self.cache = cache_manager

    @staticmethod
    def _get_practitioner_cache_key(practitioner_id: UUID) -> str:
        """Generate cache key for practitioner existence."""
        return f"practitioner:active:{practitioner_id}"

    async def _exists(self, query) -> bool:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreException(f"Directory lookup failed: {e!s}") from e
        return result.first() is not None

    async def practitioner_exists(self, practitioner_id: UUID) -> bool:
        """Check that the ID belongs to an active dentist."""
        cache_key = self._get_practitioner_cache_key(practitioner_id)
        if self.cache and self.cache.get_json(cache_key):
            return True

        query = select(users.c.id).where(
            and_(
                users.c.id == practitioner_id,
                users.c.role == "dentist",
                users.c.is_active.is_(True),
            )
        )
        exists = await self._exists(query)

        # Only positive answers are cached
        if exists and self.cache:
            self.cache.set_json(cache_key, True, ttl=self.PRACTITIONER_CACHE_TTL)

        return exists

    async def patient_exists(self, patient_id: UUID) -> bool:
        """Check that the patient record exists and is active."""
        query = select(patients.c.id).where(
            and_(patients.c.id == patient_id, patients.c.is_active.is_(True))
        )
        return await self._exists(query)
