import os
from datetime import timedelta
from itertools import count

# Configure before the package reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vetclinic.auth import Role, create_access_token
from vetclinic.database import Base, get_db
from vetclinic.main import app
from vetclinic.models import Appointment, Client, Pet, Veterinarian
from vetclinic.models_invoice import Product, Service
from vetclinic.shared.validators import utcnow

_sequence = count(1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan would create tables on the real engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(role: Role, subject: str = None, profile_id: int = None) -> dict:
    token = create_access_token(subject or f"{role.value}-user", role, profile_id=profile_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return auth_headers(Role.ADMIN, "admin-1")


@pytest.fixture
def vet_headers():
    return auth_headers(Role.VETERINARIAN, "vet-1")


# ----------------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------------


@pytest.fixture
def make_client(db):
    def factory(**overrides):
        n = next(_sequence)
        data = {
            "first_name": "Jordan",
            "last_name": f"River{n}",
            "email": f"owner{n}@example.com",
            "phone": "0400000000",
        }
        data.update(overrides)
        owner = Client(**data)
        db.add(owner)
        db.commit()
        db.refresh(owner)
        return owner

    return factory


@pytest.fixture
def make_vet(db):
    def factory(**overrides):
        data = {"first_name": "Casey", "last_name": "Vet", "employment_status": "full_time"}
        data.update(overrides)
        vet = Veterinarian(**data)
        db.add(vet)
        db.commit()
        db.refresh(vet)
        return vet

    return factory


@pytest.fixture
def make_pet(db, make_client):
    def factory(owner=None, **overrides):
        owner = owner or make_client()
        data = {"owner_id": owner.id, "name": "Rex", "species": "dog", "breed": "Kelpie", "weight": 20.0}
        data.update(overrides)
        pet = Pet(**data)
        db.add(pet)
        db.commit()
        db.refresh(pet)
        return pet

    return factory


@pytest.fixture
def make_appointment(db, make_pet, make_vet):
    def factory(pet=None, vet=None, status="pending", start=None, **overrides):
        pet = pet or make_pet()
        vet = vet or make_vet()
        start = start or utcnow() + timedelta(hours=2)
        data = {
            "appointment_number": f"APT-TEST-{next(_sequence):06d}",
            "pet_id": pet.id,
            "veterinarian_id": vet.id,
            "status": status,
            "scheduled_start": start,
            "scheduled_end": start + timedelta(minutes=30),
            "reason_for_visit": "Annual checkup",
        }
        data.update(overrides)
        appointment = Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return factory


@pytest.fixture
def make_product(db):
    def factory(stock=10, price=5.0, **overrides):
        n = next(_sequence)
        data = {"sku": f"SKU-{n}", "name": f"Product {n}", "price": price, "stock_quantity": stock}
        data.update(overrides)
        product = Product(**data)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return factory


@pytest.fixture
def make_service(db):
    def factory(price=50.0, **overrides):
        data = {"name": "Consultation", "price": price}
        data.update(overrides)
        service = Service(**data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    return factory


@pytest.fixture
def make_headers():
    return auth_headers
