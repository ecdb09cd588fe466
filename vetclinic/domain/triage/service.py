"""Triage service - Intake vitals and the hand-off to consultation"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Appointment, TriageRecord
from ...shared.errors import ClinicError, UpstreamStorageError, ValidationError
from ..appointments.service import AppointmentService
from ..appointments.state_machine import AppointmentStatus, TransitionContext
from .schemas import TriageCreate

logger = logging.getLogger(__name__)


class TriageService:
    """Records vitals and starts the consultation in one transaction"""

    def __init__(self, db: Session):
        self.db = db
        self.appointments = AppointmentService(db)

    def record_vitals(self, data: TriageCreate, recorded_by: Optional[str] = None) -> tuple[TriageRecord, Appointment]:
        """
        Persist a triage record, refresh the pet's weight and move the
        appointment to in_progress.

        A refused transition rolls back the record and the weight change.
        """
        if not data.appointment_id or not data.pet_id:
            raise ValidationError("Appointment and pet are required")

        appointment = self.appointments.get_appointment(data.appointment_id)
        if appointment.pet_id != data.pet_id:
            raise ValidationError(
                f"Pet {data.pet_id} does not belong to appointment {data.appointment_id}",
                appointment_pet_id=appointment.pet_id,
            )

        try:
            record = TriageRecord(
                appointment_id=appointment.id,
                pet_id=appointment.pet_id,
                weight=data.weight,
                temperature=data.temperature,
                heart_rate=data.heart_rate,
                respiratory_rate=data.respiratory_rate,
                mucous_membrane=data.mucous_membrane,
                triage_level=data.triage_level,
                chief_complaint=data.chief_complaint,
                notes=data.notes,
                recorded_by=recorded_by,
            )
            self.db.add(record)

            if data.weight is not None:
                appointment.pet.weight = data.weight

            self.db.flush()
            self.appointments.transition(
                appointment.id,
                AppointmentStatus.IN_PROGRESS.value,
                TransitionContext(actor_id=recorded_by),
                commit=False,
            )
            self.db.commit()
            self.db.refresh(record)
            self.db.refresh(appointment)
        except ClinicError:
            self.db.rollback()
            logger.warning(f"⚠️ Triage for appointment {data.appointment_id} rolled back")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record triage for appointment {data.appointment_id}: {e}")
            raise UpstreamStorageError() from e

        logger.info(
            f"✅ Triage recorded for appointment {appointment.id} "
            f"(pet {appointment.pet_id}, level {data.triage_level or 'n/a'})"
        )
        return record, appointment

    def waiting_room(self) -> list[Appointment]:
        return self.appointments.waiting_room()
