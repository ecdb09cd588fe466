"""Client repository - Read-only roster queries"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Appointment, Client, Pet


class ClientRepository:
    """Repository for client roster queries"""

    @staticmethod
    def get_clients(db: Session, search: Optional[str] = None, include_inactive: bool = False) -> list[Client]:
        query = db.query(Client)
        if not include_inactive:
            query = query.filter(Client.is_active.is_(True))
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Client.first_name.ilike(pattern),
                    Client.last_name.ilike(pattern),
                    Client.email.ilike(pattern),
                    Client.phone.ilike(pattern),
                )
            )
        return query.order_by(Client.last_name.asc(), Client.first_name.asc()).all()

    @staticmethod
    def count_active_pets(db: Session, client_id: int) -> int:
        return (
            db.query(func.count(Pet.id))
            .filter(Pet.owner_id == client_id, Pet.is_active.is_(True))
            .scalar()
            or 0
        )

    @staticmethod
    def count_appointments(db: Session, client_id: int) -> int:
        return (
            db.query(func.count(Appointment.id))
            .join(Pet, Appointment.pet_id == Pet.id)
            .filter(Pet.owner_id == client_id)
            .scalar()
            or 0
        )
