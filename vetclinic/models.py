"""
Clinic roster, appointment lifecycle and notification log models
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Client(Base):
    """Pet owner profile (read-only for this service)"""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, index=True, nullable=True)  # Identity provider subject
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    pets = relationship("Pet", back_populates="owner")
    invoices = relationship("Invoice", back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Veterinarian(Base):
    __tablename__ = "veterinarians"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), unique=True, index=True, nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    specializations = Column(String(255), nullable=True)
    employment_status = Column(
        String(50), default="full_time", nullable=False
    )  # full_time, part_time, contract, terminated

    created_at = Column(DateTime, server_default=func.now())

    appointments = relationship("Appointment", back_populates="veterinarian")


class Pet(Base):
    __tablename__ = "pets"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    species = Column(String(50), nullable=True)
    breed = Column(String(100), nullable=True)
    # Latest measured weight (kg); overwritten at every triage
    weight = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("Client", back_populates="pets")
    appointments = relationship("Appointment", back_populates="pet")


class Appointment(Base):
    """A scheduled clinical visit and its lifecycle status"""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    appointment_number = Column(String(50), unique=True, nullable=False, index=True)

    pet_id = Column(Integer, ForeignKey("pets.id"), nullable=False, index=True)
    veterinarian_id = Column(Integer, ForeignKey("veterinarians.id"), nullable=False, index=True)
    booked_by = Column(String(255), nullable=True)

    # wellness, emergency, follow_up, surgery, vaccination, dental, consultation
    appointment_type = Column(String(50), default="consultation", nullable=False)

    # Status workflow: pending → confirmed → in_progress → completed
    # cancelled / no_show reachable from pending or confirmed only
    status = Column(String(50), default="pending", nullable=False, index=True)

    scheduled_start = Column(DateTime, nullable=False, index=True)
    scheduled_end = Column(DateTime, nullable=False)
    actual_start = Column(DateTime, nullable=True)
    actual_end = Column(DateTime, nullable=True)

    reason_for_visit = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    is_emergency = Column(Boolean, default=False, nullable=False)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(255), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Front desk arrival; a checked-in appointment is never swept to no_show
    checked_in_at = Column(DateTime, nullable=True)
    checked_out_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    pet = relationship("Pet", back_populates="appointments")
    veterinarian = relationship("Veterinarian", back_populates="appointments")
    triage_records = relationship("TriageRecord", back_populates="appointment")


class TriageRecord(Base):
    """Intake vitals captured before consultation"""

    __tablename__ = "triage_records"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False, index=True)
    pet_id = Column(Integer, ForeignKey("pets.id"), nullable=False)

    weight = Column(Float, nullable=True)
    temperature = Column(Float, nullable=True)
    heart_rate = Column(Integer, nullable=True)
    respiratory_rate = Column(Integer, nullable=True)
    mucous_membrane = Column(String(50), nullable=True)
    triage_level = Column(String(50), nullable=True)
    chief_complaint = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="triage_records")


class NotificationLog(Base):
    """Outbound notification record; delivery is handled by the dispatcher"""

    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, nullable=False, index=True)
    # appointment_reminder, test_results, payment_due,
    # appointment_confirmed, appointment_cancelled, general
    notification_type = Column(String(50), nullable=False)
    subject = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    related_entity_type = Column(String(50), nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    delivery_status = Column(String(20), default="pending", nullable=False)  # pending, delivered, failed

    sent_at = Column(DateTime, server_default=func.now())
