"""
Tests for signup/login, role checks, tenant isolation and dive center settings.
"""
from conftest import API, signup
from divecenter.core.security import create_access_token


class TestAuth:
    def test_signup_creates_admin_and_token(self, client):
        data = signup(client)

        assert data["token_type"] == "bearer"
        assert data["user"]["role"] == "Admin"
        assert data["user"]["email"] == "owner@example.com"

        me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["full_name"] == "Reef Owner"

    def test_duplicate_signup_rejected(self, client):
        signup(client)
        response = client.post(f"{API}/auth/signup", json={
            "dive_center_name": "Another Center",
            "full_name": "Someone Else",
            "email": "owner@example.com",
            "password": "secret123",
        })
        assert response.status_code == 400

    def test_login(self, client):
        signup(client)

        bad = client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "wrong"})
        assert bad.status_code == 401

        good = client.post(f"{API}/auth/login", json={"email": "owner@example.com", "password": "secret123"})
        assert good.status_code == 200
        assert good.json()["access_token"]

    def test_requests_without_token_are_rejected(self, client):
        assert client.get(f"{API}/customers").status_code == 401

    def test_invalid_token_rejected(self, client):
        response = client.get(f"{API}/customers", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_token_for_another_dive_center_rejected(self, client, auth_headers):
        forged = create_access_token({"sub": "owner@example.com", "dive_center_id": 999})
        response = client.get(f"{API}/customers", headers={"Authorization": f"Bearer {forged}"})
        assert response.status_code == 401

    def test_non_admin_cannot_change_settings(self, client, auth_headers):
        created = client.post(f"{API}/auth/users", json={
            "full_name": "Ivy Instructor",
            "email": "ivy@example.com",
            "password": "secret123",
            "role": "Instructor",
        }, headers=auth_headers)
        assert created.status_code == 201

        login = client.post(f"{API}/auth/login", json={"email": "ivy@example.com", "password": "secret123"})
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

        assert client.get(f"{API}/dive-center", headers=headers).status_code == 200
        response = client.put(f"{API}/dive-center", json={"name": "Taken Over"}, headers=headers)
        assert response.status_code == 403

    def test_disabled_user_cannot_log_in(self, client, auth_headers):
        created = client.post(f"{API}/auth/users", json={
            "full_name": "Dan Master",
            "email": "dan@example.com",
            "password": "secret123",
            "role": "DiveMaster",
        }, headers=auth_headers).json()
        client.put(f"{API}/auth/users/{created['id']}", json={"active": False}, headers=auth_headers)

        response = client.post(f"{API}/auth/login", json={"email": "dan@example.com", "password": "secret123"})
        assert response.status_code == 403


class TestTenantIsolation:
    def test_other_dive_center_cannot_read_customer(self, client, auth_headers, customer):
        other = signup(client, dive_center_name="Coral Point", email="coral@example.com")
        other_headers = {"Authorization": f"Bearer {other['access_token']}"}

        response = client.get(f"{API}/customers/{customer['id']}", headers=other_headers)
        assert response.status_code == 404

        listing = client.get(f"{API}/customers", headers=other_headers).json()
        assert listing["total"] == 0


class TestDiveCenterSettings:
    def test_defaults(self, client, auth_headers):
        data = client.get(f"{API}/dive-center", headers=auth_headers).json()

        assert data["name"] == "Blue Reef Divers"
        assert data["currency"] == "USD"
        assert data["tax_calculation_mode"] == "exclusive"

    def test_settings_are_merged(self, client, auth_headers):
        client.put(f"{API}/dive-center", json={"settings": {"tax_percentage": 14}}, headers=auth_headers)
        response = client.put(f"{API}/dive-center", json={"settings": {"tax_calculation_mode": "inclusive"}},
                              headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["tax_calculation_mode"] == "inclusive"
        assert data["settings"]["tax_percentage"] == 14

    def test_invalid_mode_rejected(self, client, auth_headers):
        response = client.put(f"{API}/dive-center", json={"settings": {"tax_calculation_mode": "both"}},
                              headers=auth_headers)
        assert response.status_code == 422

    def test_percentage_out_of_range_rejected(self, client, auth_headers):
        response = client.put(f"{API}/dive-center", json={"settings": {"service_charge_percentage": 150}},
                              headers=auth_headers)
        assert response.status_code == 422


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
