"""
Tests for payments, refunds and configured payment methods.
"""
import pytest

from conftest import API


@pytest.fixture
def invoice(client, auth_headers, customer, set_charges):
    set_charges(service_charge=10, tax=5)
    response = client.post(f"{API}/invoices", json={
        "customer_id": customer["id"],
        "items": [{"description": "Two-tank boat dive", "quantity": 2, "unit_price": "50.00"}],
    }, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


def pay(client, auth_headers, invoice, amount, **extra):
    payload = {"invoice_id": invoice["id"], "amount": amount}
    payload.update(extra)
    return client.post(f"{API}/payments", json=payload, headers=auth_headers)


def fetch(client, auth_headers, invoice):
    return client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).json()


class TestPaymentStatus:
    def test_partial_payment(self, client, auth_headers, invoice):
        response = pay(client, auth_headers, invoice, "50.00", payment_type="Advance")
        assert response.status_code == 201
        assert response.json()["method_type"] == "Cash"
        assert response.json()["method_details"] is None

        detail = fetch(client, auth_headers, invoice)
        assert detail["status"] == "Partially Paid"
        assert float(detail["total_paid"]) == 50.0
        assert float(detail["remaining_balance"]) == 65.5

    def test_full_payment(self, client, auth_headers, invoice):
        pay(client, auth_headers, invoice, "50.00")
        pay(client, auth_headers, invoice, "65.50")

        detail = fetch(client, auth_headers, invoice)
        assert detail["status"] == "Paid"
        assert float(detail["remaining_balance"]) == 0.0
        assert float(detail["breakdown"]["total_paid"]) == 115.5

    def test_overpayment_rejected(self, client, auth_headers, invoice):
        pay(client, auth_headers, invoice, "50.00")
        response = pay(client, auth_headers, invoice, "100.00")
        assert response.status_code == 400
        assert "remaining balance" in response.json()["detail"]

    def test_zero_amount_rejected(self, client, auth_headers, invoice):
        assert pay(client, auth_headers, invoice, "0").status_code == 422

    def test_unknown_invoice(self, client, auth_headers):
        response = client.post(f"{API}/payments", json={"invoice_id": 9999, "amount": "10.00"},
                               headers=auth_headers)
        assert response.status_code == 400


class TestRefunds:
    def test_refund_stored_negative(self, client, auth_headers, invoice):
        pay(client, auth_headers, invoice, "115.50")
        response = pay(client, auth_headers, invoice, "15.50", payment_type="Refund")
        assert response.status_code == 201
        assert float(response.json()["amount"]) == -15.5

        detail = fetch(client, auth_headers, invoice)
        assert detail["status"] == "Partially Paid"
        assert float(detail["total_paid"]) == 100.0

    def test_refund_cannot_exceed_paid(self, client, auth_headers, invoice):
        pay(client, auth_headers, invoice, "50.00")
        response = pay(client, auth_headers, invoice, "60.00", payment_type="Refund")
        assert response.status_code == 400

    def test_full_refund(self, client, auth_headers, invoice):
        pay(client, auth_headers, invoice, "115.50")
        pay(client, auth_headers, invoice, "115.50", payment_type="Refund")

        detail = fetch(client, auth_headers, invoice)
        assert detail["status"] == "Refunded"
        assert float(detail["total_paid"]) == 0.0

    def test_refund_unlocks_invoice(self, client, auth_headers, invoice):
        pay(client, auth_headers, invoice, "115.50")
        pay(client, auth_headers, invoice, "10.00", payment_type="Refund")

        response = client.put(f"{API}/invoices/{invoice['id']}", json={"discount": "5.00"}, headers=auth_headers)
        assert response.status_code == 200


class TestPaymentChanges:
    def test_delete_recomputes_status(self, client, auth_headers, invoice):
        payment = pay(client, auth_headers, invoice, "115.50").json()
        assert fetch(client, auth_headers, invoice)["status"] == "Paid"

        response = client.delete(f"{API}/payments/{payment['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert fetch(client, auth_headers, invoice)["status"] == "Draft"

    def test_update_amount(self, client, auth_headers, invoice):
        payment = pay(client, auth_headers, invoice, "50.00").json()

        response = client.put(f"{API}/payments/{payment['id']}", json={"amount": "60.00"}, headers=auth_headers)
        assert response.status_code == 200
        assert float(fetch(client, auth_headers, invoice)["total_paid"]) == 60.0

        too_much = client.put(f"{API}/payments/{payment['id']}", json={"amount": "200.00"},
                              headers=auth_headers)
        assert too_much.status_code == 400

    def test_update_to_full_amount_marks_paid(self, client, auth_headers, invoice):
        payment = pay(client, auth_headers, invoice, "50.00").json()
        client.put(f"{API}/payments/{payment['id']}", json={"amount": "115.50"}, headers=auth_headers)
        assert fetch(client, auth_headers, invoice)["status"] == "Paid"

    def test_list_by_invoice(self, client, auth_headers, invoice, customer):
        other = client.post(f"{API}/invoices", json={
            "customer_id": customer["id"], "items": [{"description": "Nitrox fill", "unit_price": "12.00"}],
        }, headers=auth_headers).json()
        pay(client, auth_headers, invoice, "20.00")
        pay(client, auth_headers, other, "12.00")

        listing = client.get(f"{API}/payments", params={"invoice_id": invoice["id"]}, headers=auth_headers).json()
        assert listing["total"] == 1
        assert listing["data"][0]["invoice_id"] == invoice["id"]


class TestMethodDetails:
    def test_bank_transfer_details(self, client, auth_headers, invoice):
        response = pay(client, auth_headers, invoice, "20.00", method_details={
            "method_type": "Bank Transfer", "bank_name": "CIB", "account_number": "123",
        })
        assert response.status_code == 201
        payment = response.json()
        assert payment["method_type"] == "Bank Transfer"
        assert payment["method_details"] == {"bank_name": "CIB", "account_number": "123"}

    def test_invalid_card_digits(self, client, auth_headers, invoice):
        response = pay(client, auth_headers, invoice, "20.00", method_details={
            "method_type": "Credit Card", "last_four": "12ab",
        })
        assert response.status_code == 422

    def test_unknown_method_type(self, client, auth_headers, invoice):
        response = pay(client, auth_headers, invoice, "20.00", method_details={"method_type": "Cheque"})
        assert response.status_code == 422

    def test_wallet_requires_provider(self, client, auth_headers, invoice):
        response = pay(client, auth_headers, invoice, "20.00", method_details={"method_type": "Wallet"})
        assert response.status_code == 422


class TestPaymentMethods:
    def _create_method(self, client, auth_headers, **overrides):
        payload = {"method_type": "Cash", "name": "Front desk cash"}
        payload.update(overrides)
        response = client.post(f"{API}/payment-methods", json=payload, headers=auth_headers)
        assert response.status_code == 201
        return response.json()

    def test_method_type_must_match(self, client, auth_headers, invoice):
        method = self._create_method(client, auth_headers)
        response = pay(client, auth_headers, invoice, "20.00", payment_method_id=method["id"], method_details={
            "method_type": "Bank Transfer", "bank_name": "CIB",
        })
        assert response.status_code == 400

    def test_matching_method_accepted(self, client, auth_headers, invoice):
        method = self._create_method(client, auth_headers)
        response = pay(client, auth_headers, invoice, "20.00", payment_method_id=method["id"])
        assert response.status_code == 201
        assert response.json()["payment_method_id"] == method["id"]

    def test_inactive_method_rejected(self, client, auth_headers, invoice):
        method = self._create_method(client, auth_headers)
        client.put(f"{API}/payment-methods/{method['id']}", json={"is_active": False}, headers=auth_headers)

        response = pay(client, auth_headers, invoice, "20.00", payment_method_id=method["id"])
        assert response.status_code == 400

    def test_active_only_listing(self, client, auth_headers):
        self._create_method(client, auth_headers)
        self._create_method(client, auth_headers, name="Old terminal", method_type="Credit Card", is_active=False)

        everything = client.get(f"{API}/payment-methods", headers=auth_headers).json()
        active = client.get(f"{API}/payment-methods", params={"active_only": True}, headers=auth_headers).json()
        assert len(everything) == 2
        assert [m["name"] for m in active] == ["Front desk cash"]

    def test_method_with_payments_cannot_be_deleted(self, client, auth_headers, invoice):
        method = self._create_method(client, auth_headers)
        pay(client, auth_headers, invoice, "20.00", payment_method_id=method["id"])

        response = client.delete(f"{API}/payment-methods/{method['id']}", headers=auth_headers)
        assert response.status_code == 400

    def test_unused_method_deleted(self, client, auth_headers):
        method = self._create_method(client, auth_headers)
        response = client.delete(f"{API}/payment-methods/{method['id']}", headers=auth_headers)
        assert response.status_code == 200
