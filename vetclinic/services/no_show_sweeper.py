"""
Automated no-show marking for appointments

Marks pending/confirmed appointments whose start time passed more than the
grace period ago, and which were never checked in, as no_show.
Shared by the on-demand endpoint, the cron HTTP trigger and the ARQ cron job.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import NO_SHOW_GRACE_MINUTES
from ..domain.appointments.state_machine import SWEEPABLE_STATUSES, AppointmentStatus
from ..models import Appointment
from ..shared.errors import UpstreamStorageError
from ..shared.validators import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    cutoff: datetime
    appointment_ids: list[int] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return len(self.appointment_ids)


def no_show_predicate(cutoff: datetime):
    """The one eligibility rule; applied at update time, never only at read time"""
    return and_(
        Appointment.status.in_([s.value for s in SWEEPABLE_STATUSES]),
        Appointment.scheduled_start <= cutoff,
        Appointment.checked_in_at.is_(None),
    )


def sweep_no_shows(
    db: Session,
    now: Optional[datetime] = None,
    grace_period: Optional[timedelta] = None,
) -> SweepResult:
    """
    Mark overdue, never-checked-in appointments as no_show.

    Safe to run repeatedly or concurrently: the status filter is part of the
    UPDATE itself, so a row that was checked in or already swept by another
    run is left alone. Nothing to update is a normal, zero-count result.

    Raises:
        UpstreamStorageError: if the database rejects the update
    """
    now = now or utcnow()
    grace_period = grace_period if grace_period is not None else timedelta(minutes=NO_SHOW_GRACE_MINUTES)
    cutoff = now - grace_period
    values = {"status": AppointmentStatus.NO_SHOW.value, "updated_at": now}

    try:
        if db.get_bind().dialect.update_returning:
            rows = db.execute(
                update(Appointment)
                .where(no_show_predicate(cutoff))
                .values(**values)
                .returning(Appointment.id)
                .execution_options(synchronize_session=False)
            ).all()
            updated_ids = sorted(row[0] for row in rows)
        else:
            candidate_ids = [
                row[0] for row in db.query(Appointment.id).filter(no_show_predicate(cutoff)).all()
            ]
            updated_ids = []
            if candidate_ids:
                db.query(Appointment).filter(
                    Appointment.id.in_(candidate_ids), no_show_predicate(cutoff)
                ).update(values, synchronize_session=False)
                # Only rows this run actually stamped
                updated_ids = sorted(
                    row[0]
                    for row in db.query(Appointment.id).filter(
                        Appointment.id.in_(candidate_ids),
                        Appointment.status == AppointmentStatus.NO_SHOW.value,
                        Appointment.updated_at == now,
                    )
                )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ No-show sweep failed: {e}")
        raise UpstreamStorageError() from e

    result = SweepResult(cutoff=cutoff, appointment_ids=updated_ids)
    if result.updated:
        logger.info(f"✅ Marked {result.updated} appointment(s) as no-show: {updated_ids}")
    else:
        logger.debug(f"ℹ️ No missed appointments before {cutoff.isoformat()}")
    return result
