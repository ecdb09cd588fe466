"""
Scheduler-triggered endpoints

For external schedulers (Vercel cron, Cloud Scheduler, plain crontab + curl)
that cannot run the ARQ worker. Authenticated with CRON_SECRET, passed as
?secret= or the X-Cron-Secret header.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import verify_cron_secret
from ..database import get_db
from ..domain.appointments.schemas import SweepResponse
from ..services.no_show_sweeper import sweep_no_shows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])


@router.api_route("/mark-no-show", methods=["GET", "POST"], response_model=SweepResponse)
async def mark_no_show(
    _: None = Depends(verify_cron_secret),
    db: Session = Depends(get_db),
):
    logger.info("⏰ Cron no-show sweep triggered")
    result = sweep_no_shows(db)
    return SweepResponse(
        message=f"Marked {result.updated} appointment(s) as no-show",
        updated=result.updated,
        appointment_ids=result.appointment_ids,
        cutoff=result.cutoff,
    )
