"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import to_naive_utc

APPOINTMENT_TYPES = {
    "wellness",
    "emergency",
    "follow_up",
    "surgery",
    "vaccination",
    "dental",
    "consultation",
}


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment"""

    pet_id: int
    veterinarian_id: Optional[int] = None
    scheduled_start: datetime
    scheduled_end: datetime
    appointment_type: str = "consultation"
    reason_for_visit: Optional[str] = None
    special_instructions: Optional[str] = None
    is_emergency: bool = False

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def normalize_timestamps(cls, v):
        # Stored and swept as naive UTC
        return to_naive_utc(v)

    @field_validator("appointment_type")
    @classmethod
    def validate_type(cls, v):
        if v not in APPOINTMENT_TYPES:
            raise ValueError(f"appointment_type must be one of: {', '.join(sorted(APPOINTMENT_TYPES))}")
        return v


class StatusUpdateRequest(BaseModel):
    status: str
    cancellation_reason: Optional[str] = None
    actual_end: Optional[datetime] = None

    @field_validator("actual_end")
    @classmethod
    def normalize_actual_end(cls, v):
        return to_naive_utc(v)


class PetSummary(BaseModel):
    id: int
    name: str
    species: Optional[str] = None
    breed: Optional[str] = None
    owner_id: Optional[int] = None

    class Config:
        from_attributes = True


class VeterinarianSummary(BaseModel):
    id: int
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: int
    appointment_number: str
    pet_id: int
    veterinarian_id: int
    booked_by: Optional[str]
    appointment_type: str
    status: str
    scheduled_start: datetime
    scheduled_end: datetime
    actual_start: Optional[datetime]
    actual_end: Optional[datetime]
    reason_for_visit: Optional[str]
    special_instructions: Optional[str]
    is_emergency: bool
    cancellation_reason: Optional[str]
    cancelled_at: Optional[datetime]
    checked_in_at: Optional[datetime]
    checked_out_at: Optional[datetime]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pet: Optional[PetSummary] = None
    veterinarian: Optional[VeterinarianSummary] = None

    class Config:
        from_attributes = True


class SweepResponse(BaseModel):
    message: str
    updated: int
    appointment_ids: list[int] = Field(default_factory=list)
    cutoff: datetime
