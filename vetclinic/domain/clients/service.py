"""Client service - Roster with per-client activity counts"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Client
from ...shared.errors import UpstreamStorageError
from ...shared.results import collect
from .repository import ClientRepository
from .schemas import ClientRosterEntry

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for the client roster"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def _counts(self, client: Client) -> tuple[int, int]:
        return (
            self.repo.count_active_pets(self.db, client.id),
            self.repo.count_appointments(self.db, client.id),
        )

    def get_roster(self, search: Optional[str] = None, include_inactive: bool = False) -> list[ClientRosterEntry]:
        """
        Every client with pet and appointment counts.

        A client whose counts cannot be read still appears, with zero counts
        and counts_degraded set; one bad sub-query never fails the roster.
        """
        try:
            clients = self.repo.get_clients(self.db, search, include_inactive)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to load client roster: {e}")
            raise UpstreamStorageError() from e

        counts = collect(clients, self._counts, on_storage_error=self.db.rollback, key=lambda c: c.id)

        roster = []
        for client, outcome in zip(clients, counts.items):
            pet_count, appointment_count = outcome.value_or((0, 0))
            roster.append(
                ClientRosterEntry(
                    id=client.id,
                    first_name=client.first_name,
                    last_name=client.last_name,
                    email=client.email,
                    phone=client.phone,
                    is_active=client.is_active,
                    created_at=client.created_at,
                    pet_count=pet_count,
                    appointment_count=appointment_count,
                    counts_degraded=not outcome.ok,
                )
            )

        if counts.has_failures:
            logger.warning(f"⚠️ Client roster degraded for {len(counts.failed)} client(s): {[i.key for i in counts.failed]}")
        return roster
