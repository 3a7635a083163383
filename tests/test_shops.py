# Overview: Pytest coverage for shop settings and custom field definitions.

from shelfguard.extensions import db
from shelfguard.models import CustomField
from shelfguard.services.auth_service import create_manager
from shelfguard.services.token_service import issue_access_token

from conftest import auth_headers

SETTINGS = "/api/v1/shops/settings"
FIELDS = "/api/v1/shops/custom-fields"


class TestShopSettings:
    def test_get_settings(self, client, shop_a, headers_a):
        resp = client.get(SETTINGS, headers=headers_a)
        assert resp.status_code == 200

        shop = resp.get_json()["data"]["shop"]
        assert shop["id"] == shop_a.id
        assert shop["name"] == "Shop A"
        assert shop["defaultNotificationDays"] == [7, 3, 0]
        assert shop["notificationsEnabled"] is True

    def test_update_settings(self, client, shop_a, headers_a):
        resp = client.put(SETTINGS, json={
            "name": "Shop A Market",
            "address": "1 Main St",
            "email": "hello@shop-a.test",
            "notificationTime": "08:30",
            "notificationsEnabled": False,
        }, headers=headers_a)
        assert resp.status_code == 200

        shop = resp.get_json()["data"]["shop"]
        assert shop["name"] == "Shop A Market"
        assert shop["address"] == "1 Main St"
        assert shop["notificationTime"] == "08:30"
        assert shop["notificationsEnabled"] is False

    def test_lead_times_are_deduplicated_and_sorted(self, client, shop_a, headers_a):
        resp = client.put(SETTINGS, json={"defaultNotificationDays": [1, 14, 3, 14, 0]}, headers=headers_a)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["shop"]["defaultNotificationDays"] == [14, 3, 1, 0]

    def test_empty_lead_times_are_kept(self, client, shop_a, headers_a):
        resp = client.put(SETTINGS, json={"defaultNotificationDays": []}, headers=headers_a)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["shop"]["defaultNotificationDays"] == []

        again = client.get(SETTINGS, headers=headers_a)
        assert again.get_json()["data"]["shop"]["defaultNotificationDays"] == []

    def test_lead_times_must_be_non_negative_ints(self, client, shop_a, headers_a):
        for bad in ([3, -1], ["7"], 7, [True], [100000]):
            resp = client.put(SETTINGS, json={"defaultNotificationDays": bad}, headers=headers_a)
            assert resp.status_code == 400, bad

    def test_notification_time_format(self, client, shop_a, headers_a):
        resp = client.put(SETTINGS, json={"notificationTime": "25:00"}, headers=headers_a)
        assert resp.status_code == 400
        assert resp.get_json()["errors"][0]["message"] == "Invalid time format (HH:mm)"

    def test_unknown_and_blank_fields(self, client, shop_a, headers_a):
        assert client.put(SETTINGS, json={"ownerId": 5}, headers=headers_a).status_code == 400
        assert client.put(SETTINGS, json={"name": "  "}, headers=headers_a).status_code == 400

    def test_invalid_email(self, client, shop_a, headers_a):
        resp = client.put(SETTINGS, json={"email": "not-mail"}, headers=headers_a)
        assert resp.status_code == 400


class TestCustomFields:
    def test_create_and_list(self, client, shop_a, headers_a):
        resp = client.post(FIELDS, json={
            "name": "grade",
            "fieldType": "select",
            "selectOptions": ["A", " B "],
            "defaultValue": "A",
            "sortOrder": 2,
        }, headers=headers_a)
        assert resp.status_code == 201

        field = resp.get_json()["data"]["customField"]
        assert field["shopId"] == shop_a.id
        assert field["selectOptions"] == ["A", "B"]
        assert field["defaultValue"] == "A"

        client.post(FIELDS, json={"name": "supplier", "fieldType": "text"}, headers=headers_a)

        listing = client.get(FIELDS, headers=headers_a).get_json()["data"]
        assert listing["count"] == 2
        assert [f["name"] for f in listing["customFields"]] == ["supplier", "grade"]

    def test_duplicate_name_is_conflict(self, client, shop_a, headers_a):
        payload = {"name": "supplier", "fieldType": "text"}
        assert client.post(FIELDS, json=payload, headers=headers_a).status_code == 201

        resp = client.post(FIELDS, json=payload, headers=headers_a)
        assert resp.status_code == 409
        assert db.session.query(CustomField).count() == 1

    def test_rename_to_existing_name_is_conflict(self, client, shop_a, headers_a):
        client.post(FIELDS, json={"name": "supplier", "fieldType": "text"}, headers=headers_a)
        other = client.post(FIELDS, json={"name": "origin", "fieldType": "text"}, headers=headers_a)
        field_id = other.get_json()["data"]["customField"]["id"]

        resp = client.put(f"{FIELDS}/{field_id}", json={"name": "supplier"}, headers=headers_a)
        assert resp.status_code == 409

    def test_select_requires_options(self, client, shop_a, headers_a):
        resp = client.post(FIELDS, json={"name": "grade", "fieldType": "select"}, headers=headers_a)
        assert resp.status_code == 400
        assert resp.get_json()["errors"][0]["field"] == "selectOptions"

    def test_unknown_type(self, client, shop_a, headers_a):
        resp = client.post(FIELDS, json={"name": "x", "fieldType": "color"}, headers=headers_a)
        assert resp.status_code == 400

    def test_default_must_match_type(self, client, shop_a, headers_a):
        resp = client.post(FIELDS, json={"name": "weight", "fieldType": "number", "defaultValue": "heavy"},
                           headers=headers_a)
        assert resp.status_code == 400
        assert resp.get_json()["errors"][0]["field"] == "defaultValue"

    def test_boolean_default_is_normalized(self, client, shop_a, headers_a):
        resp = client.post(FIELDS, json={"name": "organic", "fieldType": "boolean", "defaultValue": "TRUE"},
                           headers=headers_a)
        assert resp.status_code == 201
        assert resp.get_json()["data"]["customField"]["defaultValue"] == "true"

    def test_update_and_delete(self, client, shop_a, headers_a):
        created = client.post(FIELDS, json={"name": "supplier", "fieldType": "text"}, headers=headers_a)
        field_id = created.get_json()["data"]["customField"]["id"]

        update = client.put(f"{FIELDS}/{field_id}", json={"required": True, "sortOrder": 5}, headers=headers_a)
        assert update.status_code == 200
        field = update.get_json()["data"]["customField"]
        assert field["required"] is True
        assert field["sortOrder"] == 5

        delete = client.delete(f"{FIELDS}/{field_id}", headers=headers_a)
        assert delete.status_code == 200
        assert db.session.query(CustomField).count() == 0

    def test_missing_field_is_404(self, client, shop_a, headers_a):
        resp = client.delete(f"{FIELDS}/4242", headers=headers_a)
        assert resp.status_code == 404

    def test_manager_can_read_but_not_write(self, client, shop_a, headers_a):
        client.post(FIELDS, json={"name": "supplier", "fieldType": "text"}, headers=headers_a)
        manager = create_manager(shop_a.id, "mia@shop-a.test", "Mia", "secret123")
        headers = auth_headers(issue_access_token(manager.id))

        assert client.get(FIELDS, headers=headers).get_json()["data"]["count"] == 1
        resp = client.post(FIELDS, json={"name": "origin", "fieldType": "text"}, headers=headers)
        assert resp.status_code == 403
