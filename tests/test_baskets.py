"""
Tests for equipment baskets and the rental assignment lifecycle.
"""
from datetime import date

from conftest import API


def add_center_row(client, auth_headers, basket, item, **overrides):
    payload = {"basket_id": basket["id"], "equipment_source": "Center",
               "equipment_item_id": item["id"], "price": "20.00"}
    payload.update(overrides)
    response = client.post(f"{API}/booking-equipment", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


def item_status(client, auth_headers, item):
    return client.get(f"{API}/equipment-items/{item['id']}", headers=auth_headers).json()["status"]


def new_basket(client, auth_headers, customer, booking=None):
    payload = {"customer_id": customer["id"], "checkout_date": "2026-04-01", "expected_return_date": "2026-04-03"}
    if booking:
        payload["booking_id"] = booking["id"]
    response = client.post(f"{API}/equipment-baskets", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestBaskets:
    def test_numbering(self, client, auth_headers, basket):
        year = date.today().year
        assert basket["basket_no"] == f"BASK-{year}-001"
        assert basket["status"] == "Active"

        response = client.get(f"{API}/equipment-baskets/next-number", headers=auth_headers)
        assert response.json()["next_number"] == f"BASK-{year}-002"

    def test_expected_return_before_checkout_rejected(self, client, auth_headers, customer):
        response = client.post(f"{API}/equipment-baskets", json={
            "customer_id": customer["id"], "checkout_date": "2026-04-05", "expected_return_date": "2026-04-01",
        }, headers=auth_headers)
        assert response.status_code == 400

    def test_basket_with_equipment_cannot_be_deleted(self, client, auth_headers, basket, make_item):
        add_center_row(client, auth_headers, basket, make_item())
        response = client.delete(f"{API}/equipment-baskets/{basket['id']}", headers=auth_headers)
        assert response.status_code == 400


class TestCheckout:
    def test_row_inherits_basket_dates_and_rents_item(self, client, auth_headers, basket, make_item):
        item = make_item()
        row = add_center_row(client, auth_headers, basket, item)

        assert row["assignment_status"] == "Checked Out"
        assert row["checkout_date"] == "2026-03-10"
        assert row["return_date"] == "2026-03-12"
        assert row["booking_id"] == basket["booking_id"]
        assert row["display_name"] == "BCD - M"
        assert item_status(client, auth_headers, item) == "Rented"

    def test_availability(self, client, auth_headers, basket, make_item):
        item = make_item()
        row = add_center_row(client, auth_headers, basket, item)

        busy = client.get(f"{API}/booking-equipment/availability", params={
            "equipment_item_id": item["id"], "checkout_date": "2026-03-11",
        }, headers=auth_headers).json()
        assert busy["available"] is False
        assert busy["conflicts"] == [row["id"]]

        free = client.get(f"{API}/booking-equipment/availability", params={
            "equipment_item_id": item["id"], "checkout_date": "2026-03-20", "return_date": "2026-03-22",
        }, headers=auth_headers).json()
        assert free["available"] is True

    def test_availability_unknown_item(self, client, auth_headers):
        response = client.get(f"{API}/booking-equipment/availability", params={
            "equipment_item_id": 9999, "checkout_date": "2026-03-11",
        }, headers=auth_headers)
        assert response.status_code == 404

    def test_overlapping_assignment_rejected(self, client, auth_headers, basket, booking, make_item):
        item = make_item()
        add_center_row(client, auth_headers, basket, item)

        response = client.post(f"{API}/booking-equipment", json={
            "booking_id": booking["id"], "equipment_item_id": item["id"],
            "checkout_date": "2026-03-11", "return_date": "2026-03-13",
        }, headers=auth_headers)
        assert response.status_code == 400

    def test_item_in_maintenance_rejected(self, client, auth_headers, basket, make_item):
        item = make_item(status="Maintenance")
        response = client.post(f"{API}/booking-equipment", json={
            "basket_id": basket["id"], "equipment_item_id": item["id"],
        }, headers=auth_headers)
        assert response.status_code == 400

    def test_return_date_before_checkout_rejected(self, client, auth_headers, booking, make_item):
        response = client.post(f"{API}/booking-equipment", json={
            "booking_id": booking["id"], "equipment_item_id": make_item()["id"],
            "checkout_date": "2026-03-10", "return_date": "2026-03-05",
        }, headers=auth_headers)
        assert response.status_code == 400

    def test_request_shape_validation(self, client, auth_headers, basket):
        no_item = client.post(f"{API}/booking-equipment", json={"basket_id": basket["id"]}, headers=auth_headers)
        assert no_item.status_code == 422

        no_owner = client.post(f"{API}/booking-equipment", json={"equipment_item_id": 1}, headers=auth_headers)
        assert no_owner.status_code == 422

        no_type = client.post(f"{API}/booking-equipment", json={
            "basket_id": basket["id"], "equipment_source": "Customer Own",
        }, headers=auth_headers)
        assert no_type.status_code == 422

    def test_deleting_checked_out_row_frees_item(self, client, auth_headers, basket, make_item):
        item = make_item()
        row = add_center_row(client, auth_headers, basket, item)

        response = client.delete(f"{API}/booking-equipment/{row['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert item_status(client, auth_headers, item) == "Available"


class TestReturns:
    def test_return_basket_with_damage(self, client, auth_headers, basket, make_item):
        damaged_item, clean_item = make_item(), make_item(size="L")
        damaged = add_center_row(client, auth_headers, basket, damaged_item)
        add_center_row(client, auth_headers, basket, clean_item)

        response = client.post(f"{API}/equipment-baskets/{basket['id']}/return", json={"damage": {
            str(damaged["id"]): {
                "damage_reported": True,
                "damage_description": "Torn strap",
                "damage_cost": "30.00",
                "charge_customer": True,
                "damage_charge_amount": "45.00",
            },
        }}, headers=auth_headers)
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "Returned"
        assert data["actual_return_date"] == date.today().isoformat()
        assert {row["assignment_status"] for row in data["equipment"]} == {"Returned"}

        rows = {row["id"]: row for row in data["equipment"]}
        assert rows[damaged["id"]]["damage_reported"] is True
        assert float(rows[damaged["id"]]["damage_charge_amount"]) == 45.0

        assert item_status(client, auth_headers, damaged_item) == "Maintenance"
        assert item_status(client, auth_headers, clean_item) == "Available"

    def test_return_without_body(self, client, auth_headers, basket, make_item):
        add_center_row(client, auth_headers, basket, make_item())
        response = client.post(f"{API}/equipment-baskets/{basket['id']}/return", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "Returned"

    def test_basket_cannot_be_returned_twice(self, client, auth_headers, basket, make_item):
        add_center_row(client, auth_headers, basket, make_item())
        client.post(f"{API}/equipment-baskets/{basket['id']}/return", json={}, headers=auth_headers)

        response = client.post(f"{API}/equipment-baskets/{basket['id']}/return", json={}, headers=auth_headers)
        assert response.status_code == 400

    def test_damage_for_foreign_row_rejected(self, client, auth_headers, basket, make_item):
        add_center_row(client, auth_headers, basket, make_item())
        response = client.post(f"{API}/equipment-baskets/{basket['id']}/return",
                               json={"damage": {"9999": {"damage_reported": True}}}, headers=auth_headers)
        assert response.status_code == 400

    def test_damage_for_already_returned_row_rejected(self, client, auth_headers, basket, make_item):
        returned = add_center_row(client, auth_headers, basket, make_item())
        open_row = add_center_row(client, auth_headers, basket, make_item(size="L"))
        client.post(f"{API}/booking-equipment/{returned['id']}/return", headers=auth_headers)

        response = client.post(f"{API}/equipment-baskets/{basket['id']}/return", json={"damage": {
            str(returned["id"]): {"damage_reported": True, "damage_description": "Cracked mouthpiece"},
        }}, headers=auth_headers)
        assert response.status_code == 400
        assert "no longer checked out" in response.json()["detail"]

        detail = client.get(f"{API}/equipment-baskets/{basket['id']}", headers=auth_headers).json()
        assert detail["status"] == "Active"
        rows = {row["id"]: row for row in detail["equipment"]}
        assert rows[open_row["id"]]["assignment_status"] == "Checked Out"
        assert rows[returned["id"]]["damage_reported"] is False

    def test_return_selected_closes_basket_when_empty(self, client, auth_headers, basket, make_item):
        first = add_center_row(client, auth_headers, basket, make_item())
        second = add_center_row(client, auth_headers, basket, make_item(size="L"))
        url = f"{API}/equipment-baskets/{basket['id']}/return-selected"

        partial = client.post(url, json={"equipment_ids": [first["id"]]}, headers=auth_headers).json()
        assert partial["status"] == "Active"

        rest = client.post(url, json={"equipment_ids": [second["id"]]}, headers=auth_headers).json()
        assert rest["status"] == "Returned"
        assert rest["actual_return_date"] == date.today().isoformat()

    def test_return_selected_rejects_rows_from_other_baskets(self, client, auth_headers, basket, make_item):
        add_center_row(client, auth_headers, basket, make_item())
        response = client.post(f"{API}/equipment-baskets/{basket['id']}/return-selected",
                               json={"equipment_ids": [9999]}, headers=auth_headers)
        assert response.status_code == 400

    def test_bulk_return_across_baskets(self, client, auth_headers, customer, basket, make_item):
        other = new_basket(client, auth_headers, customer)
        first = add_center_row(client, auth_headers, basket, make_item())
        second = add_center_row(client, auth_headers, other, make_item(size="L"))

        response = client.post(f"{API}/booking-equipment/bulk-return",
                               json={"equipment_ids": [first["id"], second["id"]]}, headers=auth_headers)
        assert response.status_code == 200
        assert {row["assignment_status"] for row in response.json()} == {"Returned"}

        for basket_id in (basket["id"], other["id"]):
            detail = client.get(f"{API}/equipment-baskets/{basket_id}", headers=auth_headers).json()
            assert detail["status"] == "Returned"

    def test_bulk_return_unknown_id_changes_nothing(self, client, auth_headers, basket, make_item):
        row = add_center_row(client, auth_headers, basket, make_item())

        response = client.post(f"{API}/booking-equipment/bulk-return",
                               json={"equipment_ids": [row["id"], 9999]}, headers=auth_headers)
        assert response.status_code == 400

        refreshed = client.get(f"{API}/booking-equipment/{row['id']}", headers=auth_headers).json()
        assert refreshed["assignment_status"] == "Checked Out"


class TestAssignmentTransitions:
    def test_lost_is_terminal(self, client, auth_headers, basket, make_item):
        item = make_item()
        row = add_center_row(client, auth_headers, basket, item)

        lost = client.post(f"{API}/booking-equipment/{row['id']}/lost", headers=auth_headers)
        assert lost.status_code == 200
        assert lost.json()["assignment_status"] == "Lost"
        assert item_status(client, auth_headers, item) == "Maintenance"

        again = client.post(f"{API}/booking-equipment/{row['id']}/return", headers=auth_headers)
        assert again.status_code == 400

        detail = client.get(f"{API}/equipment-baskets/{basket['id']}", headers=auth_headers).json()
        assert detail["status"] == "Returned"

    def test_returned_row_only_accepts_damage_details(self, client, auth_headers, basket, make_item):
        row = add_center_row(client, auth_headers, basket, make_item())
        client.post(f"{API}/booking-equipment/{row['id']}/return", headers=auth_headers)

        price = client.put(f"{API}/booking-equipment/{row['id']}", json={"price": "5.00"}, headers=auth_headers)
        assert price.status_code == 400

        damage = client.put(f"{API}/booking-equipment/{row['id']}", json={
            "damage_reported": True, "damage_description": "Scratched inflator",
        }, headers=auth_headers)
        assert damage.status_code == 200
        assert damage.json()["damage_description"] == "Scratched inflator"

    def test_single_return_with_damage_report(self, client, auth_headers, basket, make_item):
        item = make_item()
        row = add_center_row(client, auth_headers, basket, item)

        response = client.post(f"{API}/booking-equipment/{row['id']}/return", json={
            "damage_reported": True, "damage_cost": "12.00",
        }, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["actual_return_date"] == date.today().isoformat()
        assert item_status(client, auth_headers, item) == "Maintenance"

    def test_equipment_with_rental_history_cannot_be_deleted(self, client, auth_headers, basket, make_item):
        item = make_item()
        add_center_row(client, auth_headers, basket, item)
        response = client.delete(f"{API}/equipment/{item['equipment_id']}", headers=auth_headers)
        assert response.status_code == 400


class TestBulkAdd:
    def test_mixed_sources(self, client, auth_headers, basket, make_item):
        item = make_item()
        response = client.post(f"{API}/equipment-baskets/{basket['id']}/equipment/bulk", json={"items": [
            {"equipment_source": "Center", "equipment_item_id": item["id"], "price": "15.00"},
            {"equipment_source": "Customer Own", "customer_equipment_type": "Wetsuit",
             "customer_equipment_brand": "Scubapro"},
        ]}, headers=auth_headers)
        assert response.status_code == 201

        rows = response.json()
        assert [row["display_name"] for row in rows] == ["BCD - M", "Wetsuit - Scubapro"]
        assert rows[1]["equipment_item_id"] is None
        assert item_status(client, auth_headers, item) == "Rented"

    def test_one_bad_item_rejects_the_batch(self, client, auth_headers, basket, make_item):
        item = make_item()
        response = client.post(f"{API}/equipment-baskets/{basket['id']}/equipment/bulk", json={"items": [
            {"equipment_source": "Center", "equipment_item_id": item["id"]},
            {"equipment_source": "Center", "equipment_item_id": 9999},
        ]}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Item 2:")

        listing = client.get(f"{API}/booking-equipment", params={"basket_id": basket["id"]},
                             headers=auth_headers).json()
        assert listing["total"] == 0
        assert item_status(client, auth_headers, item) == "Available"

    def test_duplicate_item_in_batch_rejected(self, client, auth_headers, basket, make_item):
        item = make_item()
        response = client.post(f"{API}/equipment-baskets/{basket['id']}/equipment/bulk", json={"items": [
            {"equipment_source": "Center", "equipment_item_id": item["id"]},
            {"equipment_source": "Center", "equipment_item_id": item["id"]},
        ]}, headers=auth_headers)
        assert response.status_code == 400

    def test_variant_fields_are_required(self, client, auth_headers, basket):
        response = client.post(f"{API}/equipment-baskets/{basket['id']}/equipment/bulk", json={"items": [
            {"equipment_source": "Customer Own"},
        ]}, headers=auth_headers)
        assert response.status_code == 422

    def test_returned_basket_rejects_additions(self, client, auth_headers, customer, make_item):
        empty = new_basket(client, auth_headers, customer)
        client.post(f"{API}/equipment-baskets/{empty['id']}/return", headers=auth_headers)

        response = client.post(f"{API}/equipment-baskets/{empty['id']}/equipment/bulk", json={"items": [
            {"equipment_source": "Center", "equipment_item_id": make_item()["id"]},
        ]}, headers=auth_headers)
        assert response.status_code == 400

    def test_unknown_basket(self, client, auth_headers, make_item):
        response = client.post(f"{API}/equipment-baskets/9999/equipment/bulk", json={"items": [
            {"equipment_source": "Center", "equipment_item_id": make_item()["id"]},
        ]}, headers=auth_headers)
        assert response.status_code == 404
