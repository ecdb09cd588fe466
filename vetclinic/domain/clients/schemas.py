"""Client roster schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ClientRosterEntry(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    pet_count: int = 0
    appointment_count: int = 0
    # True when the counts could not be computed and are shown as 0
    counts_degraded: bool = False
