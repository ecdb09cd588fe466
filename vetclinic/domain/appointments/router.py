"""Appointment router - FastAPI endpoints for booking and the visit lifecycle"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, Role, require_admin, require_roles, require_staff
from ...database import get_db
from ...services.no_show_sweeper import sweep_no_shows
from ...shared.errors import NotFound
from .schemas import AppointmentCreate, AppointmentResponse, StatusUpdateRequest, SweepResponse
from .service import AppointmentService
from .state_machine import TransitionContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    caller: Caller = Depends(require_roles(Role.CLIENT, Role.VETERINARIAN, Role.ADMIN)),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment. Clients can only book for their own pets."""
    if caller.role == Role.CLIENT:
        pet = service.repo.get_pet(service.db, data.pet_id)
        if not pet or pet.owner_id != caller.profile_id:
            # Don't reveal other owners' pets
            raise NotFound("Pet", data.pet_id)
    return service.create_appointment(data, booked_by=caller.subject)


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    status: Optional[str] = Query(None),
    date_filter: Optional[date] = Query(None, alias="date"),
    veterinarian_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    caller: Caller = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    day = datetime.combine(date_filter, datetime.min.time()) if date_filter else None
    return service.list_appointments(status=status, day=day, veterinarian_id=veterinarian_id, search=search)


# Registered before /{appointment_id} routes so the literal path wins
@router.post("/no-shows/sweep", response_model=SweepResponse)
async def sweep_missed_appointments(
    caller: Caller = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Manually trigger the no-show sweep"""
    logger.info(f"🔄 Manual no-show sweep triggered by {caller.subject}")
    result = sweep_no_shows(db)
    return SweepResponse(
        message=f"Marked {result.updated} appointment(s) as no-show",
        updated=result.updated,
        appointment_ids=result.appointment_ids,
        cutoff=result.cutoff,
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    caller: Caller = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.get_appointment(appointment_id)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    data: StatusUpdateRequest,
    caller: Caller = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Move an appointment to a new status along an allowed edge"""
    context = TransitionContext(
        actor_id=caller.subject,
        cancellation_reason=data.cancellation_reason,
        actual_end=data.actual_end,
    )
    return service.transition(appointment_id, data.status, context)


@router.post("/{appointment_id}/check-in", response_model=AppointmentResponse)
async def check_in_appointment(
    appointment_id: int,
    caller: Caller = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Front desk check-in; the appointment is no longer eligible for the no-show sweep"""
    return service.check_in(appointment_id)
