"""FastAPI dependencies."""

from collections.abc import Callable, Coroutine
from functools import lru_cache
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.redis_client import CacheManager, get_async_redis_client, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.scheduling.locks import InMemoryPractitionerLocks, RedisPractitionerLocks
from app.scheduling.ports import PractitionerLocks
from app.scheduling.slots import WorkingHours
from app.schemas.users import Permission, StaffRole
from app.services.appointment_store import SqlAppointmentStore
from app.services.directory_service import ClinicDirectory
from app.services.scheduling_service import SchedulingService
from app.services.user_service import UserService

# Security
security = HTTPBearer()


def get_cache_manager() -> CacheManager:
    """Get cache manager backed by the shared Redis client."""
    return CacheManager(get_redis_client())


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    user_id_str = payload.get("sub") if payload else None

    if user_id_str is None or not isinstance(user_id_str, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return UUID(user_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    cache_manager: Annotated[CacheManager, Depends(get_cache_manager)],
) -> dict:
    """
    Get current staff user from database.

    Raises:
        HTTPException: If user not found or inactive
    """
    user = await UserService(cache_manager).get_user_by_id(db, user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user["is_active"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return user


def require_permission(
    permission: Permission,
) -> Callable[..., Coroutine[Any, Any, dict]]:
    """
    Build a dependency that admits users holding ``permission``.

    Admins pass every permission check.
    """

    async def check_permission(
        current_user: Annotated[dict, Depends(get_current_user)],
    ) -> dict:
        granted = current_user.get("permissions") or []
        if current_user.get("role") != StaffRole.ADMIN.value and permission.value not in granted:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission.value}",
            )
        return current_user

    return check_permission


@lru_cache
def get_practitioner_locks() -> PractitionerLocks:
    """Get the process-wide scheduling lock provider."""
    if settings.scheduling_lock_backend == "memory":
        return InMemoryPractitionerLocks()
    return RedisPractitionerLocks(
        get_async_redis_client(),
        timeout=settings.scheduling_lock_timeout_seconds,
        blocking_timeout=settings.scheduling_lock_wait_seconds,
    )


def get_working_hours() -> WorkingHours:
    """Get the clinic working window from settings."""
    return WorkingHours(
        opens_at=settings.clinic_opens_at,
        closes_at=settings.clinic_closes_at,
        timezone=settings.clinic_timezone,
    )


def get_appointment_store(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SqlAppointmentStore:
    """Get appointment store bound to the request session."""
    return SqlAppointmentStore(db)


def get_clinic_directory(
    db: Annotated[AsyncSession, Depends(get_db)],
    cache_manager: Annotated[CacheManager, Depends(get_cache_manager)],
) -> ClinicDirectory:
    """Get practitioner and patient directory."""
    return ClinicDirectory(db, cache_manager)


def get_scheduling_service(
    store: Annotated[SqlAppointmentStore, Depends(get_appointment_store)],
    directory: Annotated[ClinicDirectory, Depends(get_clinic_directory)],
    locks: Annotated[PractitionerLocks, Depends(get_practitioner_locks)],
    working_hours: Annotated[WorkingHours, Depends(get_working_hours)],
) -> SchedulingService:
    """Get scheduling service wired with its collaborators."""
    return SchedulingService(
        store=store,
        directory=directory,
        locks=locks,
        working_hours=working_hours,
        default_slot_minutes=settings.default_slot_minutes,
    )


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
AppointmentStoreDep = Annotated[SqlAppointmentStore, Depends(get_appointment_store)]
SchedulingServiceDep = Annotated[SchedulingService, Depends(get_scheduling_service)]
WorkingHoursDep = Annotated[WorkingHours, Depends(get_working_hours)]

CanCreateAppointments = Annotated[dict, Depends(require_permission(Permission.APPOINTMENTS_CREATE))]
CanReadAppointments = Annotated[dict, Depends(require_permission(Permission.APPOINTMENTS_READ))]
CanUpdateAppointments = Annotated[dict, Depends(require_permission(Permission.APPOINTMENTS_UPDATE))]
CanDeleteAppointments = Annotated[dict, Depends(require_permission(Permission.APPOINTMENTS_DELETE))]
