"""Triage schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

TRIAGE_LEVELS = {"critical", "urgent", "semi_urgent", "non_urgent"}


class TriageCreate(BaseModel):
    """Vitals captured at intake. Both ids are checked by the service."""

    appointment_id: Optional[int] = None
    pet_id: Optional[int] = None
    weight: Optional[float] = None
    temperature: Optional[float] = None
    heart_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    mucous_membrane: Optional[str] = None
    triage_level: Optional[str] = None
    chief_complaint: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("weight", "temperature")
    @classmethod
    def validate_positive_measure(cls, v):
        if v is not None and v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("heart_rate", "respiratory_rate")
    @classmethod
    def validate_rate(cls, v):
        if v is not None and v < 0:
            raise ValueError("cannot be negative")
        return v

    @field_validator("triage_level")
    @classmethod
    def validate_level(cls, v):
        if v is not None and v not in TRIAGE_LEVELS:
            raise ValueError(f"triage_level must be one of: {', '.join(sorted(TRIAGE_LEVELS))}")
        return v


class TriageResponse(BaseModel):
    id: int
    appointment_id: int
    pet_id: int
    weight: Optional[float]
    temperature: Optional[float]
    heart_rate: Optional[int]
    respiratory_rate: Optional[int]
    mucous_membrane: Optional[str]
    triage_level: Optional[str]
    chief_complaint: Optional[str]
    notes: Optional[str]
    recorded_by: Optional[str]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TriageResult(BaseModel):
    message: str
    appointment_status: str
    triage: TriageResponse


class WaitingRoomEntry(BaseModel):
    appointment_id: int
    appointment_number: str
    pet_id: int
    pet_name: str
    owner_name: Optional[str] = None
    reason_for_visit: Optional[str] = None
    is_emergency: bool
    checked_in_at: datetime
