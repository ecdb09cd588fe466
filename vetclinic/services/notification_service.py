"""
Notification log writer

Records client-facing notifications in notification_logs with
delivery_status "pending". The external dispatcher picks pending rows up and
handles delivery; nothing here sends email or SMS.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Appointment, NotificationLog

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = {
    "appointment_reminder",
    "test_results",
    "payment_due",
    "appointment_confirmed",
    "appointment_cancelled",
    "general",
}


class NotificationService:
    """Writes notification log rows inside the caller's transaction"""

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        recipient_id: int,
        notification_type: str,
        content: str,
        subject: Optional[str] = None,
        related_entity_type: Optional[str] = None,
        related_entity_id: Optional[int] = None,
    ) -> NotificationLog:
        if notification_type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {notification_type}")

        log = NotificationLog(
            recipient_id=recipient_id,
            notification_type=notification_type,
            subject=subject,
            content=content,
            related_entity_type=related_entity_type,
            related_entity_id=related_entity_id,
            delivery_status="pending",
        )
        self.db.add(log)
        logger.info(f"📨 Queued {notification_type} notification for recipient {recipient_id}")
        return log

    def appointment_status_changed(self, appointment: Appointment, status: str) -> Optional[NotificationLog]:
        """Notify the pet owner about a client-visible status change"""
        pet = appointment.pet
        if not pet or not pet.owner_id:
            logger.debug(f"⚠️ No owner to notify for appointment {appointment.id}")
            return None

        when = appointment.scheduled_start.strftime("%b %d, %Y %I:%M %p")
        if status == "confirmed":
            return self.record(
                recipient_id=pet.owner_id,
                notification_type="appointment_confirmed",
                subject="Appointment confirmed",
                content=f"{pet.name}'s appointment {appointment.appointment_number} on {when} is confirmed.",
                related_entity_type="appointment",
                related_entity_id=appointment.id,
            )
        if status == "cancelled":
            return self.record(
                recipient_id=pet.owner_id,
                notification_type="appointment_cancelled",
                subject="Appointment cancelled",
                content=(
                    f"{pet.name}'s appointment {appointment.appointment_number} on {when} was cancelled: "
                    f"{appointment.cancellation_reason}"
                ),
                related_entity_type="appointment",
                related_entity_id=appointment.id,
            )
        return None
