from sqlalchemy.exc import OperationalError

from vetclinic.auth import Role
from vetclinic.domain.clients.repository import ClientRepository
from vetclinic.domain.clients.service import ClientService


def test_roster_counts(db, make_client, make_pet, make_appointment):
    owner = make_client(last_name="Alpha")
    rex = make_pet(owner=owner)
    make_pet(owner=owner, name="Old Timer", is_active=False)
    make_appointment(pet=rex)
    make_appointment(pet=rex)
    lonely = make_client(last_name="Beta")

    roster = {entry.id: entry for entry in ClientService(db).get_roster()}

    assert roster[owner.id].pet_count == 1
    assert roster[owner.id].appointment_count == 2
    assert roster[lonely.id].pet_count == 0
    assert not roster[owner.id].counts_degraded


def test_roster_degrades_per_client(db, make_client, make_pet, monkeypatch):
    healthy = make_client(last_name="Alpha")
    make_pet(owner=healthy)
    broken = make_client(last_name="Beta")
    make_pet(owner=broken)
    original = ClientRepository.count_appointments

    def flaky(session, client_id):
        if client_id == broken.id:
            raise OperationalError("SELECT count(*)", {}, Exception("connection reset"))
        return original(session, client_id)

    monkeypatch.setattr(ClientRepository, "count_appointments", staticmethod(flaky))

    roster = {entry.id: entry for entry in ClientService(db).get_roster()}

    assert len(roster) == 2
    assert roster[healthy.id].pet_count == 1
    assert not roster[healthy.id].counts_degraded
    assert roster[broken.id].counts_degraded
    assert roster[broken.id].pet_count == 0
    assert roster[broken.id].appointment_count == 0


def test_roster_endpoint(client, vet_headers, make_headers, make_client):
    make_client(first_name="Jordan", last_name="Searchable")
    make_client(first_name="Alex", last_name="Other")

    response = client.get("/clients", params={"search": "search"}, headers=vet_headers)
    assert response.status_code == 200
    assert [entry["last_name"] for entry in response.json()] == ["Searchable"]

    assert client.get("/clients", headers=make_headers(Role.CLIENT)).status_code == 403
