"""
Plugin integration tests.

Verifies:
- API keys are shown once and stored only as a hash
- Plugin orders are pending gift orders scoped to their integration
- Duplicate external order ids are refused per integration
- Deactivated keys stop authenticating
"""

from decimal import Decimal

import pytest

from giftbox.errors import NotFoundError, ValidationError
from giftbox.models import Order
from giftbox.services import order_service, plugin_service
from giftbox.services.plugin_service import PluginError

from conftest import auth_headers


def plugin_order(external_order_id="shop-1001", **overrides):
    payload = {
        "external_order_id": external_order_id,
        "sender_name": "Sam Sender",
        "sender_email": "sam@example.com",
        "sender_phone": "555-0100",
        "sender_address": "1 Sender St",
        "receiver_name": "Riley Receiver",
        "receiver_email": "riley@example.com",
        "items": [{"name": "Mug", "price": 12.5, "quantity": 2}],
        "shipping": 5,
        "tax": 2,
        "total": 32,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def integration(db_session, make_store):
    store = make_store()
    integration, api_key = plugin_service.create_integration("Shopfront", store.id, fee_per_order="1.50")
    return integration, api_key


def key_header(api_key):
    return {"X-API-Key": api_key}


class TestIntegrations:

    def test_key_is_hashed(self, integration):
        record, api_key = integration
        assert api_key.startswith("gbx_live_")
        assert record.api_key_hash == plugin_service.hash_api_key(api_key)
        assert api_key not in record.to_dict().values()
        assert record.fee_per_order == Decimal("1.50")

    def test_one_integration_per_store(self, db_session, integration):
        record, _ = integration
        with pytest.raises(PluginError):
            plugin_service.create_integration("Again", record.store_id)

    def test_unknown_store(self, db_session):
        with pytest.raises(NotFoundError):
            plugin_service.create_integration("Nowhere", 99999)

    def test_name_required(self, db_session, make_store):
        with pytest.raises(ValidationError):
            plugin_service.create_integration("  ", make_store().id)

    def test_authenticate(self, integration):
        record, api_key = integration
        assert plugin_service.authenticate_api_key(api_key).id == record.id
        assert plugin_service.authenticate_api_key("gbx_live_wrong") is None
        assert plugin_service.authenticate_api_key(None) is None

    def test_deactivated_key_stops_working(self, integration):
        record, api_key = integration
        plugin_service.deactivate_integration(record.id)
        assert plugin_service.authenticate_api_key(api_key) is None


class TestPluginOrders:

    def test_creates_pending_gift_with_single_vendor_order(self, db_session, integration):
        record, _ = integration
        order = plugin_service.create_plugin_order(record, plugin_order())

        assert order.order_type == "plugin"
        assert order.status == "pending"
        assert order.order_number.startswith("PLUG-")
        assert order.gift_token and order.gift_link
        assert order.subtotal == Decimal("25.00")
        assert order.total == Decimal("32.00")
        assert order.plugin_fee == Decimal("1.50")
        assert [(item.item_type, item.product_id, item.service_id) for item in order.items] == [("external", None, None)]
        assert len(order.vendor_orders) == 1
        assert order.vendor_orders[0].store_id == record.store_id

    def test_duplicate_external_id(self, db_session, integration):
        record, _ = integration
        plugin_service.create_plugin_order(record, plugin_order())
        with pytest.raises(PluginError):
            plugin_service.create_plugin_order(record, plugin_order())
        assert db_session.query(Order).count() == 1

    def test_same_external_id_in_another_integration(self, db_session, integration, make_store):
        record, _ = integration
        other, _ = plugin_service.create_integration("Other", make_store().id)
        plugin_service.create_plugin_order(record, plugin_order())
        assert plugin_service.create_plugin_order(other, plugin_order()).id

    @pytest.mark.parametrize("overrides", [
        {"external_order_id": ""},
        {"sender_phone": None},
        {"receiver_email": "  "},
        {"items": []},
        {"items": [{"name": "Mug", "price": 1, "quantity": 0}]},
        {"total": 0},
    ])
    def test_validation(self, db_session, integration, overrides):
        record, _ = integration
        with pytest.raises(ValidationError):
            plugin_service.create_plugin_order(record, plugin_order(**overrides))

    def test_receiver_confirmation_works_for_plugin_orders(self, db_session, integration):
        record, _ = integration
        order = plugin_service.create_plugin_order(record, plugin_order())
        confirmed = order_service.confirm_gift_receiver(order.gift_token, "9 Receiver Way")
        assert confirmed.status == "confirmed"
        assert confirmed.vendor_orders[0].status == "confirmed"


class TestPluginRoutes:

    def test_missing_or_bad_key(self, client, integration):
        assert client.post("/api/plugin/v1/orders", json=plugin_order()).status_code == 401
        resp = client.post("/api/plugin/v1/orders", json=plugin_order(), headers=key_header("gbx_live_nope"))
        assert resp.status_code == 401

    def test_create_and_lookup(self, client, integration):
        _, api_key = integration

        resp = client.post("/api/plugin/v1/orders", json=plugin_order(), headers=key_header(api_key))
        assert resp.status_code == 201
        created = resp.get_json()
        assert created["status"] == "pending"
        assert created["recipient_link"].startswith("https://giftbox.test/gift-receiver/")

        resp = client.get(f"/api/plugin/v1/orders/{created['order_id']}", headers=key_header(api_key))
        assert resp.status_code == 200
        assert resp.get_json()["order"]["order_number"] == created["order_number"]
        assert resp.get_json()["order_items"][0]["name"] == "Mug"

        resp = client.get("/api/plugin/v1/orders?external_order_id=shop-1001", headers=key_header(api_key))
        assert resp.get_json()["order"]["id"] == created["order_id"]

        resp = client.post("/api/plugin/v1/orders", json=plugin_order(), headers=key_header(api_key))
        assert resp.status_code == 409

    def test_other_integration_gets_404(self, client, integration, make_store):
        _, api_key = integration
        _, other_key = plugin_service.create_integration("Other", make_store().id)
        created = client.post("/api/plugin/v1/orders", json=plugin_order(), headers=key_header(api_key)).get_json()

        resp = client.get(f"/api/plugin/v1/orders/{created['order_id']}", headers=key_header(other_key))
        assert resp.status_code == 404

    def test_admin_issues_and_revokes_keys(self, client, make_store, make_user, token_for):
        store = make_store()
        headers = auth_headers(token_for(make_user("admin")))

        assert client.post("/api/admin/plugin-integrations", json={"name": "X"}, headers=headers).status_code == 400

        resp = client.post("/api/admin/plugin-integrations", json={"name": "Shopfront", "store_id": store.id}, headers=headers)
        assert resp.status_code == 201
        body = resp.get_json()
        api_key = body["api_key"]

        listed = client.get("/api/admin/plugin-integrations", headers=headers).get_json()["integrations"]
        assert listed[0]["store_name"] == store.name
        assert "api_key" not in listed[0]

        client.post(f"/api/admin/plugin-integrations/{body['id']}/deactivate", headers=headers)
        resp = client.post("/api/plugin/v1/orders", json=plugin_order(), headers=key_header(api_key))
        assert resp.status_code == 401

    def test_admin_plugin_order_listing(self, client, integration, make_user, token_for):
        record, _ = integration
        plugin_service.create_plugin_order(record, plugin_order())

        listing = client.get("/api/admin/plugin-orders", headers=auth_headers(token_for(make_user("admin")))).get_json()
        row = listing["orders"][0]
        assert row["total"] == 32.0
        assert row["commission_amount"] == 3.2
        assert row["plugin_fee"] == 1.5
        assert row["vendor_amount"] == 27.3
