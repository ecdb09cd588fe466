"""
Appointment status state machine

Appointment statuses: pending → confirmed → in_progress → completed
cancelled and no_show are reachable from pending/confirmed only.
completed, cancelled and no_show are terminal.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ...shared.errors import InvalidTransition, ValidationError


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.IN_PROGRESS: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Statuses the no-show sweep may pre-empt
SWEEPABLE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

# Statuses the owner is told about
CLIENT_VISIBLE_STATUSES = frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED})


@dataclass
class TransitionContext:
    """Extra inputs a transition may need"""

    actor_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    actual_end: Optional[datetime] = None
    now: Optional[datetime] = None


def can_transition(current: str, target: str) -> bool:
    try:
        return AppointmentStatus(target) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]
    except ValueError:
        return False


def validate_transition(
    current: str,
    target: str,
    context: TransitionContext,
    checked_in_at: Optional[datetime] = None,
    actual_start: Optional[datetime] = None,
) -> AppointmentStatus:
    """
    Check a requested edge and its preconditions.

    Returns the parsed target status; raises InvalidTransition or
    ValidationError otherwise.
    """
    try:
        target_status = AppointmentStatus(target)
    except ValueError as e:
        valid = ", ".join(s.value for s in AppointmentStatus)
        raise ValidationError(f"Invalid status '{target}'. Must be one of: {valid}") from e

    if not can_transition(current, target_status.value):
        raise InvalidTransition(current, target_status.value)

    if target_status == AppointmentStatus.CANCELLED:
        if not (context.cancellation_reason or "").strip():
            raise ValidationError("cancellation_reason is required when cancelling an appointment")

    if target_status == AppointmentStatus.NO_SHOW and checked_in_at is not None:
        raise InvalidTransition(
            current,
            target_status.value,
            reason="A checked-in appointment cannot be marked as no-show",
        )

    if target_status == AppointmentStatus.COMPLETED and context.actual_end and actual_start:
        if context.actual_end < actual_start:
            raise ValidationError("actual_end cannot be earlier than actual_start")

    return target_status


def side_fields(
    target: AppointmentStatus,
    context: TransitionContext,
    now: datetime,
    checked_in_at: Optional[datetime] = None,
) -> dict:
    """Columns written alongside the status for a given target"""
    fields: dict = {"status": target.value, "updated_at": now}

    if target == AppointmentStatus.IN_PROGRESS:
        fields["actual_start"] = now
        if checked_in_at is None:
            fields["checked_in_at"] = now
    elif target == AppointmentStatus.COMPLETED:
        fields["actual_end"] = context.actual_end or now
        fields["checked_out_at"] = now
    elif target == AppointmentStatus.CANCELLED:
        fields["cancellation_reason"] = context.cancellation_reason.strip()
        fields["cancelled_at"] = now
        fields["cancelled_by"] = context.actor_id

    return fields
