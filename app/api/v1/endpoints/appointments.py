"""Appointment endpoints."""

import math
from datetime import date, datetime
from typing import Literal
from uuid import UUID

import structlog
from fastapi import APIRouter, Query, status

from app.core.exceptions import SchedulingConflictException
from app.dependencies import (
    AppointmentStoreDep,
    CanCreateAppointments,
    CanDeleteAppointments,
    CanReadAppointments,
    CanUpdateAppointments,
    SchedulingServiceDep,
    WorkingHoursDep,
)
from app.scheduling.models import MAX_SLOT_MINUTES, MIN_SLOT_MINUTES
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentDetailsUpdate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AvailableSlotsResponse,
    SlotResponse,
)
from app.schemas.users import StaffRole

router = APIRouter()
logger = structlog.get_logger()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: CanCreateAppointments,
    service: SchedulingServiceDep,
) -> AppointmentResponse:
    """
    Book a new appointment after checking the practitioner's calendar.

    Returns 409 with the colliding appointment ID when the interval is taken.
    """
    try:
        appointment = await service.propose_appointment(
            practitioner_id=data.practitioner_id,
            patient_id=data.patient_id,
            start_at=data.start_at,
            duration_minutes=data.duration_minutes,
            treatment_type=data.treatment_type,
            notes=data.notes,
            created_by=current_user["id"],
        )
    except SchedulingConflictException as e:
        logger.info(
            "scheduling_conflict",
            practitioner_id=str(data.practitioner_id),
            conflicting_appointment_id=str(e.conflicting_appointment_id),
        )
        raise

    logger.info(
        "appointment_created",
        appointment_id=str(appointment.id),
        practitioner_id=str(appointment.practitioner_id),
        start_at=appointment.start_at.isoformat(),
    )
    return AppointmentResponse.model_validate(appointment)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    current_user: CanReadAppointments,
    store: AppointmentStoreDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    patient_id: UUID | None = Query(None),
    practitioner_id: UUID | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Literal["start_at", "created_at", "status"] = Query("start_at"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
) -> AppointmentListResponse:
    """List appointments with filtering and pagination."""
    filters = AppointmentFilters(
        status=status_filter,
        patient_id=patient_id,
        practitioner_id=practitioner_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    items, total = await store.list_appointments(filters)

    return AppointmentListResponse(
        total=total,
        page=filters.page,
        page_size=filters.page_size,
        pages=math.ceil(total / filters.page_size) if total else 0,
        items=[AppointmentResponse.model_validate(item) for item in items],
    )


@router.get(
    "/today",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Today's appointments",
)
async def today_appointments(
    current_user: CanReadAppointments,
    store: AppointmentStoreDep,
    working_hours: WorkingHoursDep,
) -> list[AppointmentResponse]:
    """
    List appointments starting today in the clinic's time zone.

    Dentists only see their own calendar. Every page of the day is returned.
    """
    day_start, day_end = working_hours.day_bounds(datetime.now(working_hours.tzinfo).date())
    filters = AppointmentFilters(from_date=day_start, to_date=day_end, page_size=100)

    if current_user["role"] == StaffRole.DENTIST.value:
        filters.practitioner_id = current_user["id"]

    items, total = await store.list_appointments(filters)
    while len(items) < total:
        filters.page += 1
        page, _ = await store.list_appointments(filters)
        if not page:
            break
        items.extend(page)

    return [AppointmentResponse.model_validate(item) for item in items]


@router.get(
    "/available-slots",
    response_model=AvailableSlotsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List available slots",
)
async def available_slots(
    current_user: CanReadAppointments,
    service: SchedulingServiceDep,
    practitioner_id: UUID = Query(...),
    day: date = Query(..., alias="date"),
    duration: int | None = Query(None, ge=MIN_SLOT_MINUTES, le=MAX_SLOT_MINUTES),
) -> AvailableSlotsResponse:
    """Compute the free fixed-grid slots of a practitioner on a day."""
    slot_minutes = duration or service.default_slot_minutes
    slots = await service.list_available_slots(practitioner_id, day, slot_minutes)
    tz = service.working_hours.tzinfo

    return AvailableSlotsResponse(
        practitioner_id=practitioner_id,
        date=day,
        duration_minutes=slot_minutes,
        total_slots=len(slots),
        slots=[
            SlotResponse(
                start_at=slot.start,
                end_at=slot.end,
                display_time=slot.start.astimezone(tz).strftime("%H:%M"),
            )
            for slot in slots
        ],
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CanReadAppointments,
    service: SchedulingServiceDep,
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return AppointmentResponse.model_validate(await service.get_appointment(appointment_id))


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment details",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentDetailsUpdate,
    current_user: CanUpdateAppointments,
    service: SchedulingServiceDep,
) -> AppointmentResponse:
    """Update treatment type or notes without touching the calendar."""
    appointment = await service.update_details(
        appointment_id,
        treatment_type=data.treatment_type,
        notes=data.notes,
        updated_by=current_user["id"],
    )
    return AppointmentResponse.model_validate(appointment)


@router.patch(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    current_user: CanUpdateAppointments,
    service: SchedulingServiceDep,
) -> AppointmentResponse:
    """Move an appointment to a new start time and/or duration."""
    appointment = await service.reschedule_appointment(
        appointment_id,
        start_at=data.start_at,
        duration_minutes=data.duration_minutes,
        updated_by=current_user["id"],
    )
    logger.info(
        "appointment_rescheduled",
        appointment_id=str(appointment.id),
        start_at=appointment.start_at.isoformat(),
        duration_minutes=appointment.duration_minutes,
    )
    return AppointmentResponse.model_validate(appointment)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_user: CanUpdateAppointments,
    service: SchedulingServiceDep,
) -> AppointmentResponse:
    """Update appointment status (e.g., confirm, cancel, complete)."""
    appointment = await service.transition_status(
        appointment_id,
        data.status,
        updated_by=current_user["id"],
        notes=data.notes,
    )
    logger.info(
        "appointment_status_changed",
        appointment_id=str(appointment.id),
        status=appointment.status.value,
    )
    return AppointmentResponse.model_validate(appointment)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    current_user: CanDeleteAppointments,
    service: SchedulingServiceDep,
) -> None:
    """Delete an appointment that is still only scheduled."""
    await service.delete_appointment(appointment_id)
    logger.info("appointment_deleted", appointment_id=str(appointment_id))
