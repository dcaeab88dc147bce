"""Appointment store backed by PostgreSQL through SQLAlchemy Core."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, SchedulingConflictException, StoreException
from app.models.appointments import NO_OVERLAP_CONSTRAINT, appointments
from app.scheduling.models import ACTIVE_STATUSES, Appointment
from app.schemas.appointments import AppointmentFilters

SORTABLE_COLUMNS = {
    "start_at": appointments.c.start_at,
    "created_at": appointments.c.created_at,
    "status": appointments.c.status,
}


def _to_db(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert enum members to their stored values."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in fields.items()}


class SqlAppointmentStore:
    """Appointment persistence over an async database session."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def _find_collision(
        self,
        practitioner_id: UUID,
        start_at: datetime,
        end_at: datetime,
        exclude_id: UUID,
    ) -> UUID | None:
        candidates = await self.find_active_by_practitioner_and_window(
            practitioner_id, start_at, end_at
        )
        for candidate in candidates:
            if candidate.id != exclude_id:
                return candidate.id
        return None

    async def _write(self, stmt: Any, appointment: Appointment | None = None) -> Any:
        """
        Execute a write statement and commit it.

        Raises:
            SchedulingConflictException: If the overlap constraint rejected the write
            StoreException: On any other database failure
        """
        try:
            result = await self.db.execute(stmt)
            row = result.mappings().first()
            await self.db.commit()
            return row
        except IntegrityError as e:
            await self.db.rollback()
            if appointment is not None and NO_OVERLAP_CONSTRAINT in str(e.orig):
                colliding_id = await self._find_collision(
                    appointment.practitioner_id,
                    appointment.start_at,
                    appointment.end_at,
                    appointment.id,
                )
                raise SchedulingConflictException(colliding_id) from e
            raise StoreException(f"Appointment write rejected: {e.orig!s}") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreException(f"Appointment write failed: {e!s}") from e

    async def _read(self, stmt: Any) -> Any:
        try:
            return await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreException(f"Appointment read failed: {e!s}") from e

    async def find_active_by_practitioner_and_window(
        self,
        practitioner_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> list[Appointment]:
        """Get active appointments of a practitioner overlapping a window."""
        stmt = (
            select(appointments)
            .where(
                and_(
                    appointments.c.practitioner_id == practitioner_id,
                    appointments.c.status.in_([status.value for status in ACTIVE_STATUSES]),
                    appointments.c.start_at < window_end,
                    appointments.c.end_at > window_start,
                )
            )
            .order_by(appointments.c.start_at.asc())
        )
        result = await self._read(stmt)
        return [Appointment.from_mapping(row) for row in result.mappings().all()]

    async def find_by_id(self, appointment_id: UUID) -> Appointment | None:
        """Get appointment by ID."""
        result = await self._read(select(appointments).where(appointments.c.id == appointment_id))
        row = result.mappings().first()
        return Appointment.from_mapping(row) if row else None

    async def insert(self, appointment: Appointment) -> Appointment:
        """Insert a new appointment."""
        values = _to_db(
            {
                "id": appointment.id,
                "patient_id": appointment.patient_id,
                "practitioner_id": appointment.practitioner_id,
                "start_at": appointment.start_at,
                "end_at": appointment.end_at,
                "duration_minutes": appointment.duration_minutes,
                "treatment_type": appointment.treatment_type,
                "notes": appointment.notes,
                "status": appointment.status,
                "created_by": appointment.created_by,
                "updated_by": appointment.updated_by,
            }
        )
        stmt = insert(appointments).values(**values).returning(appointments)
        row = await self._write(stmt, appointment)
        return Appointment.from_mapping(row)

    async def update(self, appointment_id: UUID, fields: dict[str, Any]) -> Appointment:
        """
        Update an existing appointment.

        Raises:
            NotFoundException: If appointment not found
        """
        current = await self.find_by_id(appointment_id)
        if current is None:
            raise NotFoundException("Appointment not found")

        # Validates the end/duration invariant before the write
        target = current.with_changes(**fields)

        update_values = _to_db(fields)
        update_values["updated_at"] = datetime.now(UTC)

        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**update_values)
            .returning(appointments)
        )
        row = await self._write(stmt, target)
        if row is None:
            raise NotFoundException("Appointment not found")
        return Appointment.from_mapping(row)

    async def delete(self, appointment_id: UUID) -> None:
        """
        Permanently delete an appointment.

        Raises:
            NotFoundException: If appointment not found
        """
        stmt = delete(appointments).where(appointments.c.id == appointment_id).returning(
            appointments.c.id
        )
        row = await self._write(stmt)
        if row is None:
            raise NotFoundException("Appointment not found")

    async def list_appointments(
        self,
        filters: AppointmentFilters,
    ) -> tuple[list[Appointment], int]:
        """
        List appointments with filtering and pagination.

        Returns:
            Page of appointments and the total number of matches
        """
        conditions: list = []

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.practitioner_id:
            conditions.append(appointments.c.practitioner_id == filters.practitioner_id)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.from_date:
            conditions.append(appointments.c.start_at >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.start_at < filters.to_date)

        where = and_(*conditions) if conditions else True

        count_stmt = select(func.count()).select_from(appointments).where(where)
        total = (await self._read(count_stmt)).scalar() or 0

        column = SORTABLE_COLUMNS[filters.sort_by]
        order = column.desc() if filters.sort_order == "desc" else column.asc()
        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(where)
            .order_by(order, appointments.c.id)
            .limit(filters.page_size)
            .offset(offset)
        )
        result = await self._read(stmt)
        items = [Appointment.from_mapping(row) for row in result.mappings().all()]
        return items, total
