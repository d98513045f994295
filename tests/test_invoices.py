"""
Tests for invoices: totals, locking, booking-driven generation and damage charges.
"""
from datetime import date

from conftest import API

DIVE_ITEM = {"description": "Two-tank boat dive", "quantity": 2, "unit_price": "50.00"}


def create_invoice(client, auth_headers, customer, items=(DIVE_ITEM,), **extra):
    payload = {"customer_id": customer["id"], "items": list(items)}
    payload.update(extra)
    response = client.post(f"{API}/invoices", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


def pay(client, auth_headers, invoice, amount, **extra):
    payload = {"invoice_id": invoice["id"], "amount": amount}
    payload.update(extra)
    return client.post(f"{API}/payments", json=payload, headers=auth_headers)


class TestInvoiceTotals:
    def test_exclusive_totals(self, client, auth_headers, customer, set_charges):
        set_charges(service_charge=10, tax=5)
        invoice = create_invoice(client, auth_headers, customer)

        assert invoice["invoice_no"] == f"INV-{date.today().year}-001"
        assert invoice["status"] == "Draft"
        assert invoice["currency"] == "USD"
        assert float(invoice["subtotal"]) == 100.0
        assert float(invoice["service_charge"]) == 10.0
        assert float(invoice["tax"]) == 5.5
        assert float(invoice["total"]) == 115.5
        assert float(invoice["remaining_balance"]) == 115.5

    def test_inclusive_totals(self, client, auth_headers, customer, set_charges):
        set_charges(service_charge=10, tax=5, mode="inclusive")
        invoice = create_invoice(client, auth_headers, customer, items=[
            {"description": "Open Water course", "unit_price": "115.50"},
        ])

        assert float(invoice["total"]) == 115.5
        assert float(invoice["service_charge"]) == 10.0
        assert float(invoice["tax"]) == 5.5
        assert invoice["breakdown"]["mode"] == "inclusive"
        assert float(invoice["breakdown"]["grand_total"]) == 115.5
        assert invoice["is_consistent"] is True

    def test_item_and_invoice_discounts(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer, items=[
            {"description": "Fun dive", "quantity": 2, "unit_price": "50.00"},
            {"description": "Nitrox fill", "quantity": 1, "unit_price": "30.00", "discount": "5.00"},
        ], discount="10.00")

        assert float(invoice["subtotal"]) == 125.0
        assert float(invoice["total"]) == 115.0

        breakdown = invoice["breakdown"]
        assert float(breakdown["subtotal_before_discounts"]) == 130.0
        assert float(breakdown["total_item_discounts"]) == 5.0
        assert float(breakdown["discount_sum"]) == 15.0
        assert float(breakdown["subtotal_after_discount"]) == 115.0

    def test_detail_is_consistent(self, client, auth_headers, customer, set_charges):
        set_charges(service_charge=10, tax=5)
        invoice = create_invoice(client, auth_headers, customer)

        detail = client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).json()
        assert detail["is_consistent"] is True
        assert float(detail["breakdown"]["grand_total"]) == float(detail["total"])
        assert len(detail["items"]) == 1

    def test_settings_change_applies_on_recalculate(self, client, auth_headers, customer, set_charges):
        invoice = create_invoice(client, auth_headers, customer)
        assert float(invoice["total"]) == 100.0

        set_charges(tax=10)
        response = client.post(f"{API}/invoices/{invoice['id']}/recalculate", headers=auth_headers)
        assert response.status_code == 200
        assert float(response.json()["total"]) == 110.0

    def test_discount_update(self, client, auth_headers, customer, set_charges):
        set_charges(service_charge=10, tax=5)
        invoice = create_invoice(client, auth_headers, customer, items=[
            {"description": "Private guide", "unit_price": "120.00"},
        ])

        response = client.put(f"{API}/invoices/{invoice['id']}", json={"discount": "20.00"}, headers=auth_headers)
        assert response.status_code == 200
        assert float(response.json()["total"]) == 115.5

    def test_tax_override_until_recalculated(self, client, auth_headers, customer, set_charges):
        set_charges(service_charge=10, tax=5)
        invoice = create_invoice(client, auth_headers, customer)

        overridden = client.put(f"{API}/invoices/{invoice['id']}", json={"tax": "7.00"}, headers=auth_headers).json()
        assert float(overridden["tax"]) == 7.0
        assert float(overridden["total"]) == 117.0
        assert overridden["is_consistent"] is True

        noted = client.put(f"{API}/invoices/{invoice['id']}", json={"notes": "Deposit on arrival"},
                           headers=auth_headers).json()
        assert float(noted["tax"]) == 7.0
        assert float(noted["total"]) == 117.0

        reset = client.put(f"{API}/invoices/{invoice['id']}", json={"recalculate": True}, headers=auth_headers).json()
        assert float(reset["total"]) == 115.5

    def test_add_and_delete_items(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer)

        added = client.post(f"{API}/invoices/{invoice['id']}/items", json={
            "description": "Torch rental", "unit_price": "8.00",
        }, headers=auth_headers)
        assert added.status_code == 201
        assert float(added.json()["total"]) == 8.0

        detail = client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).json()
        assert float(detail["total"]) == 108.0

        response = client.delete(f"{API}/invoices/{invoice['id']}/items/{added.json()['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert float(response.json()["total"]) == 100.0

    def test_last_item_cannot_be_deleted(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer)

        response = client.delete(f"{API}/invoices/{invoice['id']}/items/{invoice['items'][0]['id']}",
                                 headers=auth_headers)
        assert response.status_code == 400
        assert "last item" in response.json()["detail"]

        detail = client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).json()
        assert len(detail["items"]) == 1
        assert float(detail["total"]) == 100.0

    def test_items_only_deleted_from_draft(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer, items=[
            DIVE_ITEM, {"description": "Torch rental", "unit_price": "8.00"},
        ])
        assert pay(client, auth_headers, invoice, "50.00").status_code == 201

        response = client.delete(f"{API}/invoices/{invoice['id']}/items/{invoice['items'][1]['id']}",
                                 headers=auth_headers)
        assert response.status_code == 400
        assert "Draft" in response.json()["detail"]

        detail = client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).json()
        assert detail["status"] == "Partially Paid"
        assert len(detail["items"]) == 2
        assert float(detail["total"]) == 108.0

    def test_item_from_another_invoice_rejected(self, client, auth_headers, customer):
        first = create_invoice(client, auth_headers, customer)
        second = create_invoice(client, auth_headers, customer)

        item_id = first["items"][0]["id"]
        response = client.delete(f"{API}/invoices/{second['id']}/items/{item_id}", headers=auth_headers)
        assert response.status_code == 400


class TestInvoiceValidation:
    def test_needs_booking_or_customer(self, client, auth_headers):
        response = client.post(f"{API}/invoices", json={"items": [DIVE_ITEM]}, headers=auth_headers)
        assert response.status_code == 422

    def test_unknown_booking(self, client, auth_headers):
        response = client.post(f"{API}/invoices", json={"booking_id": 9999}, headers=auth_headers)
        assert response.status_code == 400

    def test_customer_taken_from_booking(self, client, auth_headers, booking):
        invoice = client.post(f"{API}/invoices", json={"booking_id": booking["id"], "items": [DIVE_ITEM]},
                              headers=auth_headers).json()
        assert invoice["customer_id"] == booking["customer_id"]

    def test_status_filter(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer)
        create_invoice(client, auth_headers, customer)
        pay(client, auth_headers, invoice, "100.00")

        drafts = client.get(f"{API}/invoices", params={"status": "Draft"}, headers=auth_headers).json()
        assert drafts["total"] == 1

        paid = client.get(f"{API}/invoices", params={"status": "Paid"}, headers=auth_headers).json()
        assert [i["id"] for i in paid["data"]] == [invoice["id"]]


class TestPaidInvoiceLock:
    def test_paid_invoice_rejects_changes(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer)
        assert pay(client, auth_headers, invoice, "100.00").status_code == 201

        add = client.post(f"{API}/invoices/{invoice['id']}/items", json={
            "description": "Late extra", "unit_price": "5.00",
        }, headers=auth_headers)
        assert add.status_code == 400

        delete = client.delete(f"{API}/invoices/{invoice['id']}/items/{invoice['items'][0]['id']}",
                               headers=auth_headers)
        assert delete.status_code == 400

        discount = client.put(f"{API}/invoices/{invoice['id']}", json={"discount": "5.00"}, headers=auth_headers)
        assert discount.status_code == 400

        tax = client.put(f"{API}/invoices/{invoice['id']}", json={"tax": "20.00"}, headers=auth_headers)
        assert tax.status_code == 400

        service_charge = client.put(f"{API}/invoices/{invoice['id']}", json={"service_charge": "10.00"},
                                    headers=auth_headers)
        assert service_charge.status_code == 400

        recalculate = client.post(f"{API}/invoices/{invoice['id']}/recalculate", headers=auth_headers)
        assert recalculate.status_code == 400

        notes = client.put(f"{API}/invoices/{invoice['id']}", json={"notes": "Thanks!"}, headers=auth_headers)
        assert notes.status_code == 200
        assert notes.json()["notes"] == "Thanks!"
        assert float(notes.json()["total"]) == 100.0
        assert notes.json()["status"] == "Paid"

        detail = client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).json()
        assert len(detail["items"]) == 1
        assert float(detail["tax"]) == 0.0
        assert float(detail["total"]) == 100.0
        assert detail["status"] == "Paid"

    def test_settings_change_does_not_reprice_paid_invoice(self, client, auth_headers, customer, set_charges):
        invoice = create_invoice(client, auth_headers, customer)
        assert pay(client, auth_headers, invoice, "100.00").status_code == 201

        set_charges(service_charge=10)
        notes = client.put(f"{API}/invoices/{invoice['id']}", json={"notes": "Paid at the dock"},
                           headers=auth_headers)
        assert notes.status_code == 200
        assert float(notes.json()["total"]) == 100.0
        assert float(notes.json()["remaining_balance"]) == 0.0
        assert notes.json()["status"] == "Paid"

    def test_invoice_with_payments_cannot_be_deleted(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer)
        pay(client, auth_headers, invoice, "10.00")

        response = client.delete(f"{API}/invoices/{invoice['id']}", headers=auth_headers)
        assert response.status_code == 400

    def test_invoice_without_payments_can_be_deleted(self, client, auth_headers, customer):
        invoice = create_invoice(client, auth_headers, customer)
        assert client.delete(f"{API}/invoices/{invoice['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).status_code == 404


class TestBookingInvoices:
    def _setup_booking(self, client, auth_headers, booking, basket, make_item):
        site = client.post(f"{API}/dive-sites", json={"name": "Blue Hole"}, headers=auth_headers).json()
        client.post(f"{API}/booking-dives", json={
            "booking_id": booking["id"], "dive_site_id": site["id"], "dive_date": "2026-03-10", "price": "80.00",
        }, headers=auth_headers)
        cancelled = client.post(f"{API}/booking-dives", json={
            "booking_id": booking["id"], "dive_site_id": site["id"], "price": "80.00",
        }, headers=auth_headers).json()
        client.put(f"{API}/booking-dives/{cancelled['id']}", json={"status": "Cancelled"}, headers=auth_headers)

        response = client.post(f"{API}/equipment-baskets/{basket['id']}/equipment/bulk", json={"items": [
            {"equipment_source": "Center", "equipment_item_id": make_item()["id"], "price": "20.00"},
            {"equipment_source": "Customer Own", "customer_equipment_type": "Fins"},
        ]}, headers=auth_headers)
        return response.json()

    def test_generate_from_booking(self, client, auth_headers, booking, basket, make_item):
        self._setup_booking(client, auth_headers, booking, basket, make_item)

        response = client.post(f"{API}/invoices/from-booking", json={"booking_id": booking["id"]},
                               headers=auth_headers)
        assert response.status_code == 201

        invoice = response.json()
        assert sorted(i["description"] for i in invoice["items"]) == [
            "Dive - Blue Hole (2026-03-10)",
            "Equipment Rental - BCD - M",
        ]
        assert float(invoice["total"]) == 100.0
        assert invoice["customer_id"] == booking["customer_id"]
        assert invoice["booking_id"] == booking["id"]

        again = client.post(f"{API}/invoices/from-booking", json={"booking_id": booking["id"]},
                            headers=auth_headers)
        assert again.status_code == 400

    def test_damage_charge(self, client, auth_headers, booking, basket, make_item):
        rows = self._setup_booking(client, auth_headers, booking, basket, make_item)
        center_row = rows[0]
        client.post(f"{API}/equipment-baskets/{basket['id']}/return", json={"damage": {
            str(center_row["id"]): {
                "damage_reported": True,
                "damage_description": "Torn strap",
                "charge_customer": True,
                "damage_charge_amount": "45.00",
            },
        }}, headers=auth_headers)

        invoice = client.post(f"{API}/invoices/from-booking", json={"booking_id": booking["id"]},
                              headers=auth_headers).json()

        response = client.post(f"{API}/invoices/{invoice['id']}/damage-charges",
                               json={"booking_equipment_id": center_row["id"]}, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["description"] == "Damage Charge - BCD - M: Torn strap"

        detail = client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers).json()
        assert float(detail["total"]) == 145.0

        twice = client.post(f"{API}/invoices/{invoice['id']}/damage-charges",
                            json={"booking_equipment_id": center_row["id"]}, headers=auth_headers)
        assert twice.status_code == 400

    def test_damage_must_be_chargeable(self, client, auth_headers, booking, basket, make_item):
        rows = self._setup_booking(client, auth_headers, booking, basket, make_item)
        client.post(f"{API}/equipment-baskets/{basket['id']}/return", json={"damage": {
            str(rows[0]["id"]): {"damage_reported": True, "damage_cost": "30.00"},
        }}, headers=auth_headers)

        invoice = client.post(f"{API}/invoices/from-booking", json={"booking_id": booking["id"]},
                              headers=auth_headers).json()
        response = client.post(f"{API}/invoices/{invoice['id']}/damage-charges",
                               json={"booking_equipment_id": rows[0]["id"]}, headers=auth_headers)
        assert response.status_code == 400

    def test_damage_from_another_booking_rejected(self, client, auth_headers, customer, booking, basket,
                                                  make_item):
        rows = self._setup_booking(client, auth_headers, booking, basket, make_item)
        client.post(f"{API}/equipment-baskets/{basket['id']}/return", json={"damage": {
            str(rows[0]["id"]): {"damage_reported": True, "charge_customer": True, "damage_cost": "30.00"},
        }}, headers=auth_headers)

        unrelated = create_invoice(client, auth_headers, customer)
        response = client.post(f"{API}/invoices/{unrelated['id']}/damage-charges",
                               json={"booking_equipment_id": rows[0]["id"]}, headers=auth_headers)
        assert response.status_code == 400
