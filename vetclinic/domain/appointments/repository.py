"""Appointment repository - Database operations for appointments"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Pet, Veterinarian


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.pet), joinedload(Appointment.veterinarian))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_pet(db: Session, pet_id: int) -> Optional[Pet]:
        return db.query(Pet).filter(Pet.id == pet_id).first()

    @staticmethod
    def get_veterinarian(db: Session, veterinarian_id: int) -> Optional[Veterinarian]:
        return db.query(Veterinarian).filter(Veterinarian.id == veterinarian_id).first()

    @staticmethod
    def get_default_veterinarian(db: Session) -> Optional[Veterinarian]:
        """Prefer a full-time veterinarian, fall back to anyone on the roster"""
        vet = (
            db.query(Veterinarian)
            .filter(Veterinarian.employment_status == "full_time")
            .order_by(Veterinarian.id)
            .first()
        )
        if vet:
            return vet
        return (
            db.query(Veterinarian)
            .filter(Veterinarian.employment_status != "terminated")
            .order_by(Veterinarian.id)
            .first()
        )

    @staticmethod
    def create(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def search(
        db: Session,
        status: Optional[str] = None,
        day: Optional[datetime] = None,
        veterinarian_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> list[Appointment]:
        query = db.query(Appointment).options(
            joinedload(Appointment.pet).joinedload(Pet.owner),
            joinedload(Appointment.veterinarian),
        )

        if status and status != "all":
            query = query.filter(Appointment.status == status)

        if day:
            start_of_day = day.replace(hour=0, minute=0, second=0, microsecond=0)
            end_of_day = start_of_day + timedelta(days=1)
            query = query.filter(
                Appointment.scheduled_start >= start_of_day,
                Appointment.scheduled_start < end_of_day,
            )

        if veterinarian_id:
            query = query.filter(Appointment.veterinarian_id == veterinarian_id)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Appointment.appointment_number.ilike(pattern),
                    Appointment.reason_for_visit.ilike(pattern),
                )
            )

        return query.order_by(Appointment.scheduled_start.desc()).all()

    @staticmethod
    def compare_and_set(
        db: Session,
        appointment_id: int,
        expected_status: str,
        values: dict,
        require_not_checked_in: bool = False,
    ) -> bool:
        """
        Conditional update keyed on the status we read.

        Returns False when another writer changed the row first. Does not
        commit.
        """
        query = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.status == expected_status,
        )
        if require_not_checked_in:
            query = query.filter(Appointment.checked_in_at.is_(None))

        updated = query.update(values, synchronize_session=False)
        return updated == 1

    @staticmethod
    def waiting_room(db: Session) -> list[Appointment]:
        """Checked-in, confirmed appointments still waiting for triage"""
        query = (
            db.query(Appointment)
            .options(joinedload(Appointment.pet).joinedload(Pet.owner))
            .filter(
                Appointment.status == "confirmed",
                Appointment.checked_in_at.isnot(None),
                ~Appointment.triage_records.any(),
            )
        )
        return query.order_by(Appointment.checked_in_at.asc()).all()
