"""Appointment service - Booking and lifecycle transitions"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Appointment
from ...services.notification_service import NotificationService
from ...shared.errors import ClinicError, Conflict, InvalidTransition, NotFound, UpstreamStorageError, ValidationError
from ...shared.validators import generate_reference, utcnow
from .repository import AppointmentRepository
from .schemas import AppointmentCreate
from .state_machine import (
    CLIENT_VISIBLE_STATUSES,
    AppointmentStatus,
    TransitionContext,
    side_fields,
    validate_transition,
)

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service layer for the appointment lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.notifications = NotificationService(db)

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFound("Appointment", appointment_id)
        return appointment

    def list_appointments(
        self,
        status: Optional[str] = None,
        day: Optional[datetime] = None,
        veterinarian_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> list[Appointment]:
        appointments = self.repo.search(self.db, status, day, veterinarian_id, search)
        logger.debug(f"Fetched {len(appointments)} appointments")
        return appointments

    def create_appointment(self, data: AppointmentCreate, booked_by: Optional[str] = None) -> Appointment:
        """Book a new appointment; always starts as pending"""
        if data.scheduled_end <= data.scheduled_start:
            raise ValidationError("scheduled_end must be after scheduled_start")

        pet = self.repo.get_pet(self.db, data.pet_id)
        if not pet:
            raise NotFound("Pet", data.pet_id)

        if data.veterinarian_id:
            vet = self.repo.get_veterinarian(self.db, data.veterinarian_id)
            if not vet:
                raise NotFound("Veterinarian", data.veterinarian_id)
        else:
            vet = self.repo.get_default_veterinarian(self.db)
            if not vet:
                raise ValidationError("No veterinarian available. Please contact the clinic to schedule.")

        try:
            appointment = self.repo.create(
                self.db,
                appointment_number=generate_reference("APT"),
                pet_id=pet.id,
                veterinarian_id=vet.id,
                booked_by=booked_by,
                appointment_type=data.appointment_type,
                status=AppointmentStatus.PENDING.value,
                scheduled_start=data.scheduled_start,
                scheduled_end=data.scheduled_end,
                reason_for_visit=data.reason_for_visit or "General appointment",
                special_instructions=data.special_instructions,
                is_emergency=data.is_emergency,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create appointment for pet {data.pet_id}: {e}")
            raise UpstreamStorageError() from e

        logger.info(f"✅ Appointment {appointment.appointment_number} booked for pet {pet.id} with vet {vet.id}")
        return appointment

    def transition(
        self,
        appointment_id: int,
        target_status: str,
        context: Optional[TransitionContext] = None,
        commit: bool = True,
    ) -> Appointment:
        """
        Move an appointment along one allowed edge.

        The write is conditional on the status we read, so a concurrent
        check-in or sweep makes this fail with Conflict instead of being
        overwritten. With commit=False the caller owns the transaction.
        """
        context = context or TransitionContext()
        appointment = self.get_appointment(appointment_id)
        current = appointment.status

        target = validate_transition(
            current, target_status, context, appointment.checked_in_at, appointment.actual_start
        )
        now = context.now or utcnow()
        values = side_fields(target, context, now, appointment.checked_in_at)

        try:
            swapped = self.repo.compare_and_set(
                self.db,
                appointment.id,
                expected_status=current,
                values=values,
                require_not_checked_in=target == AppointmentStatus.NO_SHOW,
            )
            if not swapped:
                self.db.rollback()
                logger.warning(
                    f"⚠️ Appointment {appointment_id} changed concurrently; {current} → {target.value} rejected"
                )
                raise Conflict(
                    f"Appointment {appointment_id} was modified by another request; reload and retry",
                    expected_status=current,
                )

            self.db.expire(appointment)
            if target in CLIENT_VISIBLE_STATUSES:
                self.notifications.appointment_status_changed(appointment, target.value)

            if commit:
                self.db.commit()
                self.db.refresh(appointment)
        except ClinicError:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to transition appointment {appointment_id}: {e}")
            raise UpstreamStorageError() from e

        logger.info(f"✅ Appointment {appointment_id} transitioned: {current} → {target.value}")
        return appointment

    def check_in(self, appointment_id: int, now: Optional[datetime] = None) -> Appointment:
        """
        Front desk arrival.

        Stamps checked_in_at; a pending appointment becomes confirmed, a
        confirmed one keeps its status. Either way it is no longer eligible
        for the no-show sweep.
        """
        appointment = self.get_appointment(appointment_id)
        current = appointment.status

        if current not in (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value):
            raise InvalidTransition(current, "checked_in", reason=f"Cannot check in a {current} appointment")
        if appointment.checked_in_at is not None:
            raise InvalidTransition(current, "checked_in", reason="Appointment is already checked in")

        now = now or utcnow()
        values = {
            "status": AppointmentStatus.CONFIRMED.value,
            "checked_in_at": now,
            "updated_at": now,
        }

        try:
            swapped = self.repo.compare_and_set(
                self.db, appointment.id, expected_status=current, values=values, require_not_checked_in=True
            )
            if not swapped:
                self.db.rollback()
                raise Conflict(
                    f"Appointment {appointment_id} was modified by another request; reload and retry",
                    expected_status=current,
                )

            self.db.expire(appointment)
            if current == AppointmentStatus.PENDING.value:
                self.notifications.appointment_status_changed(appointment, AppointmentStatus.CONFIRMED.value)

            self.db.commit()
            self.db.refresh(appointment)
        except ClinicError:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to check in appointment {appointment_id}: {e}")
            raise UpstreamStorageError() from e

        logger.info(f"✅ Appointment {appointment_id} checked in ({current} → confirmed)")
        return appointment

    def waiting_room(self) -> list[Appointment]:
        return self.repo.waiting_room(self.db)
