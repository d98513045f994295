"""
Tests for equipment items and their service history.
"""
from datetime import date, timedelta

from conftest import API


def serviced_item(make_item, purchased_days_ago, interval=180):
    return make_item(
        requires_service=True,
        service_interval_days=interval,
        purchase_date=(date.today() - timedelta(days=purchased_days_ago)).isoformat(),
    )


class TestEquipmentItems:
    def test_next_service_derived_from_purchase(self, make_item):
        item = serviced_item(make_item, purchased_days_ago=10)

        purchase = date.fromisoformat(item["purchase_date"])
        assert item["next_service_date"] == (purchase + timedelta(days=180)).isoformat()
        assert item["is_service_overdue"] is False
        assert item["display_name"] == "BCD - M"

    def test_overdue_filter(self, client, auth_headers, make_item):
        overdue = serviced_item(make_item, purchased_days_ago=400)
        serviced_item(make_item, purchased_days_ago=5)
        make_item(size="L")

        assert overdue["is_service_overdue"] is True

        listing = client.get(f"{API}/equipment-items", params={"overdue": "true"}, headers=auth_headers).json()
        assert [i["id"] for i in listing["data"]] == [overdue["id"]]

    def test_unknown_equipment_type_rejected(self, client, auth_headers):
        response = client.post(f"{API}/equipment-items", json={"equipment_id": 9999}, headers=auth_headers)
        assert response.status_code == 400


class TestServiceHistory:
    def test_record_moves_service_dates(self, client, auth_headers, make_item):
        item = serviced_item(make_item, purchased_days_ago=400)
        today = date.today()

        response = client.post(f"{API}/equipment-items/{item['id']}/service-history", json={
            "service_date": today.isoformat(),
            "service_type": "Annual inspection",
            "cost": "35.00",
        }, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["next_service_due_date"] == (today + timedelta(days=180)).isoformat()

        refreshed = client.get(f"{API}/equipment-items/{item['id']}", headers=auth_headers).json()
        assert refreshed["last_service_date"] == today.isoformat()
        assert refreshed["is_service_overdue"] is False

    def test_deleting_record_restores_purchase_schedule(self, client, auth_headers, make_item):
        item = serviced_item(make_item, purchased_days_ago=400)
        record = client.post(f"{API}/equipment-items/{item['id']}/service-history", json={
            "service_date": date.today().isoformat(),
        }, headers=auth_headers).json()

        response = client.delete(f"{API}/equipment-items/{item['id']}/service-history/{record['id']}",
                                 headers=auth_headers)
        assert response.status_code == 200

        refreshed = client.get(f"{API}/equipment-items/{item['id']}", headers=auth_headers).json()
        assert refreshed["last_service_date"] is None
        assert refreshed["next_service_date"] == item["next_service_date"]

    def test_history_for_unknown_item_is_404(self, client, auth_headers):
        response = client.get(f"{API}/equipment-items/9999/service-history", headers=auth_headers)
        assert response.status_code == 404


class TestBulkService:
    def test_bulk_service_applies_to_every_item(self, client, auth_headers, make_item):
        first = serviced_item(make_item, purchased_days_ago=400)
        second = serviced_item(make_item, purchased_days_ago=400, interval=90)

        response = client.post(f"{API}/equipment-service-history/bulk", json={
            "equipment_item_ids": [first["id"], second["id"]],
            "service_date": date.today().isoformat(),
            "service_provider": "Reef Tech",
        }, headers=auth_headers)
        assert response.status_code == 201

        records = {r["equipment_item_id"]: r for r in response.json()["records"]}
        assert records[first["id"]]["next_service_due_date"] == (date.today() + timedelta(days=180)).isoformat()
        assert records[second["id"]]["next_service_due_date"] == (date.today() + timedelta(days=90)).isoformat()

    def test_bulk_service_without_auto_next(self, client, auth_headers, make_item):
        item = serviced_item(make_item, purchased_days_ago=400)

        response = client.post(f"{API}/equipment-service-history/bulk", json={
            "equipment_item_ids": [item["id"]],
            "service_date": date.today().isoformat(),
            "auto_calculate_next_service": False,
        }, headers=auth_headers)
        assert response.json()["records"][0]["next_service_due_date"] is None

    def test_unknown_item_rejects_whole_batch(self, client, auth_headers, make_item):
        item = serviced_item(make_item, purchased_days_ago=400)

        response = client.post(f"{API}/equipment-service-history/bulk", json={
            "equipment_item_ids": [item["id"], 9999],
            "service_date": date.today().isoformat(),
        }, headers=auth_headers)
        assert response.status_code == 400

        history = client.get(f"{API}/equipment-items/{item['id']}/service-history", headers=auth_headers).json()
        assert history == []
