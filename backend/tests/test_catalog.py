"""
Catalog, storefront and landing tests.

Verifies:
- Vendors manage only their own store's items; admins name the store
- Public listings show only active items of approved stores
- New stores start pending; status is not writable by the vendor
"""

from decimal import Decimal

import pytest

from giftbox.errors import NotFoundError, PermissionDeniedError, ValidationError
from giftbox.models import Product
from giftbox.services import catalog_service, order_service, vendor_service
from giftbox.services.vendor_service import StoreError

from conftest import auth_headers, order_payload


class TestCatalogService:

    def test_create_product(self, db_session, make_store):
        store = make_store()
        product = catalog_service.create_product(
            store.id,
            {"name": " Candle ", "price": "12.5", "stock": 3, "image_urls": ["https://img.test/c.png"], "bogus": 1},
            vendor_id=store.vendor_id,
        )
        assert product.name == "Candle"
        assert product.price == Decimal("12.50")
        assert product.stock == 3

    @pytest.mark.parametrize("patch", [
        {"name": "X"},
        {"price": 1},
        {"name": "X", "price": -1},
        {"name": "X", "price": 1, "stock": -2},
        {"name": "X", "price": 1, "stock": "3"},
        {"name": "X", "price": 1, "image_urls": "https://img.test/one.png"},
    ])
    def test_product_validation(self, db_session, make_store, patch):
        store = make_store()
        with pytest.raises(ValidationError):
            catalog_service.create_product(store.id, patch, vendor_id=store.vendor_id)

    def test_vendor_cannot_touch_other_store(self, db_session, make_store, make_product):
        mine = make_store()
        other_product = make_product(make_store(), price="10.00")

        with pytest.raises(PermissionDeniedError):
            catalog_service.update_product(other_product.id, {"price": 1}, vendor_id=mine.vendor_id)
        assert db_session.get(Product, other_product.id).price == Decimal("10.00")

    def test_admin_may_manage_any_store(self, db_session, make_store):
        store = make_store()
        service = catalog_service.create_service(store.id, {"name": "Massage", "price": 80})
        assert service.store_id == store.id

    def test_delete_is_soft(self, db_session, make_store, make_product):
        store = make_store()
        product = make_product(store)
        catalog_service.delete_product(product.id, vendor_id=store.vendor_id)

        assert db_session.get(Product, product.id).is_active is False
        with pytest.raises(NotFoundError):
            catalog_service.get_product(product.id)
        assert catalog_service.get_product(product.id, include_inactive=True)["id"] == product.id

    def test_public_listing_filters(self, db_session, make_store, make_product):
        approved = make_store()
        visible = make_product(approved, name="Tea Set")
        make_product(approved, is_active=False)
        make_product(make_store(status="pending"))
        make_product(make_store(status="suspended"))

        assert [p.id for p in catalog_service.list_approved_products()] == [visible.id]
        assert [p.id for p in catalog_service.list_approved_products(search="tea")] == [visible.id]
        assert catalog_service.list_approved_products(category="Nope") == []


class TestLanding:

    def test_categories(self, db_session, make_store, make_product, make_service):
        store = make_store()
        make_product(store, category="Flowers")
        make_product(store, category="Flowers")
        make_product(store, category="Candles")
        make_service(store)

        categories = catalog_service.landing_categories()
        assert categories[0] == {"category": "Flowers", "product_count": 2, "service_count": 0}
        assert {c["category"] for c in categories} == {"Flowers", "Candles", "Experiences"}

    def test_trending_ignores_cancelled_orders(self, db_session, make_store, make_product):
        store = make_store()
        popular = make_product(store, stock=20)
        cancelled = make_product(store, stock=20)

        order_service.create_order(order_payload([(popular, 2)]))
        order = order_service.create_order(order_payload([(cancelled, 5)]))
        order_service.update_order_status(order.id, "cancelled")

        trending = catalog_service.landing_trending_products()
        assert trending[0]["id"] == popular.id
        assert trending[0]["quantity_ordered"] == 2
        assert {t["id"]: t["quantity_ordered"] for t in trending}[cancelled.id] == 0

    def test_top_vendors(self, db_session, make_store):
        make_store(name="Alpha")
        make_store(status="pending", name="Hidden")
        names = [v["name"] for v in vendor_service.list_top_vendors()]
        assert names == ["Alpha"]

    def test_checkout_settings_route(self, client, db_session):
        body = client.get("/api/settings/checkout").get_json()
        assert body == {"tax_percent": 8.0, "plugin_tax": 0.0, "shipping_flat_rate": 9.99}


class TestStores:

    def test_register_starts_pending(self, db_session, make_user):
        user = make_user("vendor")
        vendor = vendor_service.create_vendor(user.id, {"vendor_name": "Bloom"})
        assert vendor_service.get_vendor_by_user_id(user.id).id == vendor.id

        store = vendor_service.register_store(vendor.id, {"name": "Bloom Shop", "status": "approved"})
        assert store.status == "pending"
        assert vendor_service.get_store_by_vendor_id(vendor.id).id == store.id

        with pytest.raises(StoreError):
            vendor_service.register_store(vendor.id, {"name": "Second"})

    def test_update_ignores_status_and_payment(self, db_session, make_store):
        store = make_store(status="pending")
        updated = vendor_service.update_store(store.id, {
            "name": "Renamed", "status": "approved", "payment_account_id": "acct_x",
        })
        assert updated.name == "Renamed"
        assert updated.status == "pending"
        assert updated.payment_account_id is None


class TestCatalogRoutes:

    def test_vendor_crud(self, client, make_store, token_for):
        store = make_store()
        headers = auth_headers(token_for(store.vendor.user))

        resp = client.post("/api/vendor/products", json={"name": "Vase", "price": 30, "stock": 2}, headers=headers)
        assert resp.status_code == 201
        product_id = resp.get_json()["product"]["id"]

        resp = client.patch(f"/api/vendor/products/{product_id}", json={"price": 35}, headers=headers)
        assert resp.get_json()["product"]["price"] == 35.0

        listed = client.get("/api/vendor/products", headers=headers).get_json()["products"]
        assert [p["id"] for p in listed] == [product_id]

        assert client.delete(f"/api/vendor/products/{product_id}", headers=headers).status_code == 200
        assert client.get(f"/api/products/{product_id}").status_code == 404

    def test_admin_must_name_store(self, client, make_store, make_user, token_for):
        store = make_store()
        headers = auth_headers(token_for(make_user("admin")))

        resp = client.post("/api/vendor/services", json={"name": "Tour", "price": 40}, headers=headers)
        assert resp.status_code == 400

        resp = client.post("/api/vendor/services", json={"name": "Tour", "price": 40, "store_id": store.id}, headers=headers)
        assert resp.status_code == 201

    def test_public_routes(self, client, make_store, make_product):
        store = make_store()
        product = make_product(store)
        hidden = make_product(make_store(status="pending"))

        assert [p["id"] for p in client.get("/api/products").get_json()["products"]] == [product.id]
        assert client.get(f"/api/products?store_id={hidden.store_id}").get_json()["products"] == []
        assert client.get(f"/api/products/{hidden.id}").status_code == 404
        assert [s["id"] for s in client.get("/api/stores").get_json()["stores"]] == [store.id]

    def test_vendor_registers_store(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "email": "shop@example.com", "password": "secret1", "role": "vendor", "vendor_name": "Shop",
        })
        assert resp.status_code == 201
        token = client.post("/api/auth/login", json={"email": "shop@example.com", "password": "secret1"}).get_json()["token"]

        resp = client.post("/api/vendor/store", json={"name": "My Shop"}, headers=auth_headers(token))
        assert resp.status_code == 201
        assert resp.get_json()["store"]["status"] == "pending"

        resp = client.get("/api/vendor/store", headers=auth_headers(token))
        assert resp.get_json()["store"]["name"] == "My Shop"
