"""Triage router"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import Caller, require_staff
from ...database import get_db
from .schemas import TriageCreate, TriageResponse, TriageResult, WaitingRoomEntry
from .service import TriageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/triage", tags=["Triage"])


def get_triage_service(db: Session = Depends(get_db)) -> TriageService:
    """Dependency injection for TriageService"""
    return TriageService(db)


@router.post("", response_model=TriageResult, status_code=201)
async def record_triage(
    data: TriageCreate,
    caller: Caller = Depends(require_staff),
    service: TriageService = Depends(get_triage_service),
):
    """Record intake vitals and start the consultation"""
    record, appointment = service.record_vitals(data, recorded_by=caller.subject)
    return TriageResult(
        message="Triage recorded",
        appointment_status=appointment.status,
        triage=TriageResponse.model_validate(record),
    )


@router.get("/queue", response_model=list[WaitingRoomEntry])
async def get_waiting_room(
    caller: Caller = Depends(require_staff),
    service: TriageService = Depends(get_triage_service),
):
    """Checked-in patients waiting for triage, oldest arrival first"""
    return [
        WaitingRoomEntry(
            appointment_id=a.id,
            appointment_number=a.appointment_number,
            pet_id=a.pet_id,
            pet_name=a.pet.name,
            owner_name=a.pet.owner.full_name if a.pet.owner else None,
            reason_for_visit=a.reason_for_visit,
            is_emergency=a.is_emergency,
            checked_in_at=a.checked_in_at,
        )
        for a in service.waiting_room()
    ]
