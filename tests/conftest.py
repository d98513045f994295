"""
Shared fixtures: an in-memory database per test and an authenticated client.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "divecenter-test-suite-secret-key-0123456789abcdef"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="divecenter-uploads-")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import divecenter.models  # noqa: F401
from divecenter.core.database import Base, get_db
from divecenter.main import app

API = "/api/v1"


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
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def signup(client, dive_center_name="Blue Reef Divers", email="owner@example.com"):
    response = client.post(f"{API}/auth/signup", json={
        "dive_center_name": dive_center_name,
        "full_name": "Reef Owner",
        "email": email,
        "password": "secret123",
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    token = signup(client)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def set_charges(client, auth_headers):
    """Configure service charge, tax and calculation mode for the dive center"""
    def _set(service_charge=0, tax=0, mode="exclusive"):
        response = client.put(f"{API}/dive-center", json={"settings": {
            "service_charge_percentage": service_charge,
            "tax_percentage": tax,
            "tax_calculation_mode": mode,
        }}, headers=auth_headers)
        assert response.status_code == 200, response.text
        return response.json()
    return _set


@pytest.fixture
def customer(client, auth_headers):
    response = client.post(f"{API}/customers", json={
        "full_name": "Ada Diver",
        "email": "ada@example.com",
        "phone": "+20 100 000 0000",
    }, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def booking(client, auth_headers, customer):
    response = client.post(f"{API}/bookings", json={
        "customer_id": customer["id"],
        "booking_date": "2026-03-10",
        "number_of_divers": 1,
        "status": "Confirmed",
    }, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def make_item(client, auth_headers):
    """Create center equipment items under a shared 'BCD' equipment type"""
    state = {}

    def _make(**overrides):
        if "equipment_id" not in state:
            response = client.post(f"{API}/equipment", json={"name": "BCD", "category": "Buoyancy"},
                                   headers=auth_headers)
            assert response.status_code == 201, response.text
            state["equipment_id"] = response.json()["id"]

        payload = {"equipment_id": state["equipment_id"], "size": "M"}
        payload.update(overrides)
        response = client.post(f"{API}/equipment-items", json=payload, headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def basket(client, auth_headers, customer, booking):
    response = client.post(f"{API}/equipment-baskets", json={
        "customer_id": customer["id"],
        "booking_id": booking["id"],
        "checkout_date": "2026-03-10",
        "expected_return_date": "2026-03-12",
    }, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()
