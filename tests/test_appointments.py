from datetime import timedelta, timezone

import pytest

from vetclinic.auth import Role
from vetclinic.domain.appointments.repository import AppointmentRepository
from vetclinic.domain.appointments.schemas import AppointmentCreate
from vetclinic.domain.appointments.service import AppointmentService
from vetclinic.domain.appointments.state_machine import TransitionContext
from vetclinic.models import Appointment, NotificationLog
from vetclinic.services.no_show_sweeper import sweep_no_shows
from vetclinic.shared.errors import Conflict, InvalidTransition, NotFound, ValidationError
from vetclinic.shared.validators import utcnow


def test_create_appointment_defaults_to_full_time_vet(db, make_pet, make_vet):
    make_vet(first_name="Part", employment_status="part_time")
    full_time = make_vet(first_name="Full", employment_status="full_time")
    pet = make_pet()
    start = utcnow() + timedelta(days=1)

    appointment = AppointmentService(db).create_appointment(
        AppointmentCreate(pet_id=pet.id, scheduled_start=start, scheduled_end=start + timedelta(minutes=30)),
        booked_by="client-1",
    )

    assert appointment.status == "pending"
    assert appointment.veterinarian_id == full_time.id
    assert appointment.appointment_number.startswith("APT-")


def test_create_appointment_validation(db, make_pet, make_vet):
    pet = make_pet()
    start = utcnow() + timedelta(days=1)
    service = AppointmentService(db)

    with pytest.raises(ValidationError):
        service.create_appointment(AppointmentCreate(pet_id=pet.id, scheduled_start=start, scheduled_end=start))

    with pytest.raises(ValidationError):
        # no veterinarians on the roster
        service.create_appointment(
            AppointmentCreate(pet_id=pet.id, scheduled_start=start, scheduled_end=start + timedelta(hours=1))
        )

    make_vet()
    with pytest.raises(NotFound):
        service.create_appointment(
            AppointmentCreate(pet_id=9999, scheduled_start=start, scheduled_end=start + timedelta(hours=1))
        )


def test_confirm_writes_owner_notification(db, make_appointment):
    appointment = make_appointment(status="pending")

    updated = AppointmentService(db).transition(appointment.id, "confirmed")

    assert updated.status == "confirmed"
    logs = db.query(NotificationLog).all()
    assert len(logs) == 1
    assert logs[0].notification_type == "appointment_confirmed"
    assert logs[0].recipient_id == appointment.pet.owner_id
    assert logs[0].delivery_status == "pending"


def test_cancel_requires_reason_and_stamps_fields(db, make_appointment):
    appointment = make_appointment(status="confirmed")
    service = AppointmentService(db)

    with pytest.raises(ValidationError):
        service.transition(appointment.id, "cancelled", TransitionContext(actor_id="vet-1"))

    updated = service.transition(
        appointment.id, "cancelled", TransitionContext(actor_id="vet-1", cancellation_reason="Owner travelling")
    )
    assert updated.status == "cancelled"
    assert updated.cancellation_reason == "Owner travelling"
    assert updated.cancelled_by == "vet-1"
    assert updated.cancelled_at is not None
    assert db.query(NotificationLog).filter_by(notification_type="appointment_cancelled").count() == 1


def test_full_visit_lifecycle(db, make_appointment):
    appointment = make_appointment(status="pending")
    service = AppointmentService(db)

    service.transition(appointment.id, "confirmed")
    started = service.transition(appointment.id, "in_progress")
    assert started.actual_start is not None
    assert started.checked_in_at is not None

    finished = service.transition(appointment.id, "completed")
    assert finished.status == "completed"
    assert finished.actual_end is not None
    assert finished.checked_out_at is not None

    with pytest.raises(InvalidTransition):
        service.transition(appointment.id, "cancelled", TransitionContext(cancellation_reason="too late"))


def test_transition_unknown_appointment(db):
    with pytest.raises(NotFound):
        AppointmentService(db).transition(12345, "confirmed")


def test_no_show_refused_after_check_in(db, make_appointment):
    appointment = make_appointment(status="confirmed", checked_in_at=utcnow())

    with pytest.raises(InvalidTransition):
        AppointmentService(db).transition(appointment.id, "no_show")

    db.expire_all()
    assert db.get(Appointment, appointment.id).status == "confirmed"


def test_concurrent_change_reports_conflict(db, make_appointment, monkeypatch):
    appointment = make_appointment(status="pending")
    original = AppointmentRepository.compare_and_set

    def racing(session, appointment_id, expected_status, values, require_not_checked_in=False):
        # Another writer gets there first
        session.query(Appointment).filter(Appointment.id == appointment_id).update(
            {"status": "cancelled"}, synchronize_session=False
        )
        return original(session, appointment_id, expected_status, values, require_not_checked_in)

    monkeypatch.setattr(AppointmentRepository, "compare_and_set", staticmethod(racing))

    with pytest.raises(Conflict):
        AppointmentService(db).transition(appointment.id, "confirmed")

    assert db.query(NotificationLog).count() == 0


def test_check_in(db, make_appointment):
    service = AppointmentService(db)

    pending = make_appointment(status="pending")
    arrived = service.check_in(pending.id)
    assert arrived.status == "confirmed"
    assert arrived.checked_in_at is not None

    with pytest.raises(InvalidTransition):
        service.check_in(pending.id)

    confirmed = make_appointment(status="confirmed")
    assert service.check_in(confirmed.id).status == "confirmed"

    done = make_appointment(status="completed")
    with pytest.raises(InvalidTransition):
        service.check_in(done.id)


def test_list_appointments_filters(db, make_appointment, make_vet):
    vet = make_vet()
    today = utcnow().replace(hour=10, minute=0, second=0, microsecond=0)
    first = make_appointment(vet=vet, status="pending", start=today, reason_for_visit="Vaccination")
    make_appointment(status="confirmed", start=today + timedelta(days=2), reason_for_visit="Dental")

    service = AppointmentService(db)
    assert [a.id for a in service.list_appointments(status="pending")] == [first.id]
    assert len(service.list_appointments(status="all")) == 2
    assert [a.id for a in service.list_appointments(day=today)] == [first.id]
    assert [a.id for a in service.list_appointments(veterinarian_id=vet.id)] == [first.id]
    assert [a.id for a in service.list_appointments(search="vaccin")] == [first.id]


# ----------------------------------------------------------------------------
# HTTP
# ----------------------------------------------------------------------------


def test_patch_status_endpoint(client, vet_headers, make_appointment):
    appointment = make_appointment(status="pending")

    response = client.patch(f"/appointments/{appointment.id}/status", json={"status": "confirmed"}, headers=vet_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    response = client.patch(f"/appointments/{appointment.id}/status", json={"status": "completed"}, headers=vet_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"

    response = client.patch(f"/appointments/{appointment.id}/status", json={"status": "cancelled"}, headers=vet_headers)
    assert response.status_code == 400

    response = client.patch("/appointments/999/status", json={"status": "confirmed"}, headers=vet_headers)
    assert response.status_code == 404


def test_client_can_book_only_own_pet(client, make_headers, make_pet, make_vet):
    make_vet()
    own_pet = make_pet()
    other_pet = make_pet()
    headers = make_headers(Role.CLIENT, "owner-sub", profile_id=own_pet.owner_id)
    start = utcnow() + timedelta(days=1)
    payload = {
        "scheduled_start": start.isoformat(),
        "scheduled_end": (start + timedelta(minutes=30)).isoformat(),
        "reason_for_visit": "Limping",
    }

    response = client.post("/appointments", json={**payload, "pet_id": own_pet.id}, headers=headers)
    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    assert response.json()["booked_by"] == "owner-sub"

    response = client.post("/appointments", json={**payload, "pet_id": other_pet.id}, headers=headers)
    assert response.status_code == 404


def test_client_cannot_change_status(client, make_headers, make_appointment):
    appointment = make_appointment()
    headers = make_headers(Role.CLIENT, profile_id=appointment.pet.owner_id)

    response = client.patch(f"/appointments/{appointment.id}/status", json={"status": "confirmed"}, headers=headers)
    assert response.status_code == 403


def test_check_in_endpoint(client, vet_headers, make_appointment):
    appointment = make_appointment(status="pending")

    response = client.post(f"/appointments/{appointment.id}/check-in", headers=vet_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "confirmed"
    assert body["checked_in_at"] is not None


def test_offset_booking_is_stored_as_utc(db, make_pet, make_vet):
    make_vet()
    pet = make_pet()
    start_utc = (utcnow() + timedelta(hours=1)).replace(microsecond=0)
    eastern = timezone(timedelta(hours=-5))
    start = start_utc.replace(tzinfo=timezone.utc).astimezone(eastern)

    appointment = AppointmentService(db).create_appointment(
        AppointmentCreate(pet_id=pet.id, scheduled_start=start, scheduled_end=start + timedelta(minutes=30))
    )

    assert appointment.scheduled_start == start_utc
    assert appointment.scheduled_end == start_utc + timedelta(minutes=30)

    result = sweep_no_shows(db, grace_period=timedelta(minutes=15))
    assert appointment.id not in result.appointment_ids
    db.refresh(appointment)
    assert appointment.status == "pending"


def test_mixed_offset_booking_endpoint(client, vet_headers, make_pet, make_vet):
    make_vet()
    pet = make_pet()
    start = (utcnow() + timedelta(days=1)).replace(microsecond=0)
    payload = {
        "pet_id": pet.id,
        "scheduled_start": start.isoformat() + "Z",
        "scheduled_end": (start + timedelta(minutes=30)).isoformat(),
    }

    response = client.post("/appointments", json=payload, headers=vet_headers)
    assert response.status_code == 201
    assert response.json()["scheduled_start"].startswith(start.isoformat())

    # same instant written with an offset, so the end is not after the start
    payload["scheduled_end"] = start.replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=2))).isoformat()
    response = client.post("/appointments", json=payload, headers=vet_headers)
    assert response.status_code == 400


def test_completed_end_before_start_is_rejected(db, make_appointment):
    appointment = make_appointment(status="confirmed")
    service = AppointmentService(db)
    started = service.transition(appointment.id, "in_progress")

    with pytest.raises(ValidationError):
        service.transition(
            appointment.id,
            "completed",
            TransitionContext(actual_end=started.actual_start - timedelta(minutes=5)),
        )

    db.refresh(appointment)
    assert appointment.status == "in_progress"
    assert appointment.actual_end is None
