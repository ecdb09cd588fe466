from datetime import timedelta

import pytest

import vetclinic.auth
from vetclinic.models import Appointment
from vetclinic.services import no_show_sweeper
from vetclinic.services.no_show_sweeper import sweep_no_shows
from vetclinic.shared.validators import utcnow

GRACE = timedelta(minutes=15)


def statuses(db, *appointments):
    db.expire_all()
    return [db.get(Appointment, a.id).status for a in appointments]


def test_sweep_marks_only_overdue_unchecked_appointments(db, make_appointment):
    now = utcnow()
    overdue = make_appointment(status="pending", start=now - timedelta(minutes=20))
    within_grace = make_appointment(status="pending", start=now - timedelta(minutes=10))
    checked_in = make_appointment(status="confirmed", start=now - timedelta(minutes=20), checked_in_at=now)
    overdue_confirmed = make_appointment(status="confirmed", start=now - timedelta(hours=3))
    done = make_appointment(status="completed", start=now - timedelta(hours=3))

    result = sweep_no_shows(db, now=now, grace_period=GRACE)

    assert result.updated == 2
    assert sorted(result.appointment_ids) == sorted([overdue.id, overdue_confirmed.id])
    assert result.cutoff == now - GRACE
    assert statuses(db, overdue, within_grace, checked_in, overdue_confirmed, done) == [
        "no_show",
        "pending",
        "confirmed",
        "no_show",
        "completed",
    ]


def test_sweep_is_idempotent(db, make_appointment):
    now = utcnow()
    make_appointment(status="pending", start=now - timedelta(hours=1))

    first = sweep_no_shows(db, now=now, grace_period=GRACE)
    second = sweep_no_shows(db, now=now + timedelta(minutes=1), grace_period=GRACE)

    assert first.updated == 1
    assert second.updated == 0
    assert second.appointment_ids == []


def test_sweep_with_nothing_to_do(db):
    result = sweep_no_shows(db, grace_period=GRACE)
    assert result.updated == 0


def test_sweep_fallback_path_without_returning(db, make_appointment, monkeypatch):
    now = utcnow()
    overdue = make_appointment(status="confirmed", start=now - timedelta(minutes=30))
    checked_in = make_appointment(status="pending", start=now - timedelta(minutes=30), checked_in_at=now)
    monkeypatch.setattr(db.get_bind().dialect, "update_returning", False)

    result = sweep_no_shows(db, now=now, grace_period=GRACE)

    assert result.appointment_ids == [overdue.id]
    assert statuses(db, overdue, checked_in) == ["no_show", "pending"]


def test_sweep_endpoint_requires_admin(client, admin_headers, vet_headers, make_appointment):
    make_appointment(status="pending", start=utcnow() - timedelta(hours=2))

    assert client.post("/appointments/no-shows/sweep", headers=vet_headers).status_code == 403

    response = client.post("/appointments/no-shows/sweep", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["updated"] == 1


@pytest.fixture
def cron_secret(monkeypatch):
    monkeypatch.setattr(vetclinic.auth, "CRON_SECRET", "s3cret")
    return "s3cret"


def test_cron_endpoint_checks_secret(client, cron_secret, make_appointment):
    appointment = make_appointment(status="confirmed", start=utcnow() - timedelta(hours=1))

    assert client.get("/cron/mark-no-show").status_code == 401
    assert client.get("/cron/mark-no-show", params={"secret": "wrong"}).status_code == 401

    response = client.get("/cron/mark-no-show", params={"secret": cron_secret})
    assert response.status_code == 200
    assert response.json()["appointment_ids"] == [appointment.id]

    response = client.post("/cron/mark-no-show", headers={"X-Cron-Secret": cron_secret})
    assert response.status_code == 200
    assert response.json()["updated"] == 0


def test_cron_endpoint_disabled_without_secret(client, monkeypatch):
    monkeypatch.setattr(vetclinic.auth, "CRON_SECRET", None)
    assert client.get("/cron/mark-no-show", params={"secret": "anything"}).status_code == 401


def test_default_grace_period_comes_from_config(db, make_appointment, monkeypatch):
    monkeypatch.setattr(no_show_sweeper, "NO_SHOW_GRACE_MINUTES", 60)
    now = utcnow()
    make_appointment(status="pending", start=now - timedelta(minutes=30))

    assert sweep_no_shows(db, now=now).updated == 0
    assert sweep_no_shows(db, now=now + timedelta(minutes=31)).updated == 1
