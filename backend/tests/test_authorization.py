"""
Authorization tests.

Verifies:
- Unauthenticated requests to protected endpoints return 401
- Customers are denied vendor and admin operations (403)
- Vendors are denied admin operations (403)
- Public endpoints answer without a token
"""

import pytest

from conftest import auth_headers


@pytest.fixture
def customer_headers(make_user, token_for):
    return auth_headers(token_for(make_user("user")))


@pytest.fixture
def vendor_headers(make_store, token_for):
    return auth_headers(token_for(make_store().vendor.user))


@pytest.fixture
def admin_headers(make_user, token_for):
    return auth_headers(token_for(make_user("admin")))


ADMIN_ROUTES = [
    ("GET", "/api/admin/stores"),
    ("GET", "/api/admin/stats"),
    ("GET", "/api/admin/orders"),
    ("GET", "/api/admin/commission"),
    ("PATCH", "/api/admin/commission"),
    ("PATCH", "/api/admin/settings"),
    ("GET", "/api/admin/overview-videos"),
    ("PATCH", "/api/admin/overview-videos"),
    ("GET", "/api/admin/payouts"),
    ("POST", "/api/admin/process-payouts"),
    ("GET", "/api/admin/plugin-orders"),
    ("GET", "/api/admin/plugin-integrations"),
    ("POST", "/api/admin/plugin-integrations"),
    ("GET", "/api/admin/contact-queries"),
    ("GET", "/api/admin/plugin-queries"),
    ("PATCH", "/api/orders/1/status"),
    ("GET", "/api/profile/search?q=a"),
]

VENDOR_ROUTES = [
    ("GET", "/api/vendor/store"),
    ("PATCH", "/api/vendor/store"),
    ("GET", "/api/vendor/orders"),
    ("PATCH", "/api/vendor/orders/1/status"),
    ("GET", "/api/vendor/payouts"),
    ("POST", "/api/stripe/connect/onboard"),
    ("POST", "/api/stripe/connect/complete"),
    ("POST", "/api/stripe/connect/disconnect"),
    ("POST", "/api/stripe/connect/dashboard-link"),
]

SIGNED_IN_ROUTES = [
    ("GET", "/api/auth/me"),
    ("POST", "/api/auth/logout"),
    ("GET", "/api/profile"),
    ("GET", "/api/orders"),
    ("GET", "/api/orders/1"),
    ("GET", "/api/cart"),
    ("GET", "/api/wishlists"),
    ("POST", "/api/reviews"),
    ("GET", "/api/vendor/products"),
    ("POST", "/api/vendor/services"),
]

PUBLIC_ROUTES = [
    "/health",
    "/api/products",
    "/api/services",
    "/api/stores",
    "/api/landing/categories",
    "/api/landing/trending-products",
    "/api/landing/top-vendors",
    "/api/landing/services",
    "/api/settings/checkout",
    "/api/overview/videos",
]


def _call(client, method, path, headers=None):
    kwargs = {"headers": headers or {}}
    if method in ("POST", "PATCH"):
        kwargs["json"] = {}
    return getattr(client, method.lower())(path, **kwargs)


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES + VENDOR_ROUTES + SIGNED_IN_ROUTES)
    def test_requires_auth(self, client, db_session, method, path):
        resp = _call(client, method, path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# ROLE DENIALS: 403
# =============================================================================


class TestCustomerDenied:

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES + VENDOR_ROUTES)
    def test_customer_denied(self, client, customer_headers, method, path):
        resp = _call(client, method, path, customer_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_customer_cannot_manage_catalog(self, client, customer_headers):
        resp = client.post("/api/vendor/products", json={"name": "X", "price": 1}, headers=customer_headers)
        assert resp.status_code == 403


class TestVendorDenied:

    @pytest.mark.parametrize("method,path", ADMIN_ROUTES)
    def test_vendor_denied_admin(self, client, vendor_headers, method, path):
        resp = _call(client, method, path, vendor_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_vendor_cannot_touch_another_stores_product(self, client, make_store, make_product, vendor_headers):
        other = make_product(make_store())
        resp = client.patch(f"/api/vendor/products/{other.id}", json={"price": 1}, headers=vendor_headers)
        assert resp.status_code in (403, 404)


class TestAdminAllowed:

    @pytest.mark.parametrize("path", [
        "/api/admin/stores",
        "/api/admin/stats",
        "/api/admin/orders",
        "/api/admin/commission",
        "/api/admin/overview-videos",
        "/api/admin/payouts",
        "/api/admin/plugin-integrations",
        "/api/admin/contact-queries",
    ])
    def test_admin_reads(self, client, admin_headers, path):
        assert client.get(path, headers=admin_headers).status_code == 200

    def test_admin_is_not_a_vendor(self, client, admin_headers):
        assert client.get("/api/vendor/store", headers=admin_headers).status_code == 403


class TestPublicAccess:

    @pytest.mark.parametrize("path", PUBLIC_ROUTES)
    def test_public(self, client, db_session, path):
        assert client.get(path).status_code == 200, path

    def test_preflight_reaches_admin_blueprint(self, client, db_session):
        resp = client.options("/api/admin/stores", headers={"Origin": "http://localhost:3000"})
        assert resp.status_code != 401
