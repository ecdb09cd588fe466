"""Client router - FastAPI endpoints for the client roster"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, require_staff
from ...database import get_db
from .schemas import ClientRosterEntry
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


@router.get("", response_model=list[ClientRosterEntry])
async def get_clients(
    search: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    caller: Caller = Depends(require_staff),
    service: ClientService = Depends(get_client_service),
):
    """Client roster with pet and appointment counts"""
    return service.get_roster(search=search, include_inactive=include_inactive)
