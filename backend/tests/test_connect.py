"""
Connected payment account tests: onboarding, completion, disconnect.
"""

import pytest

from giftbox.errors import PermissionDeniedError, ValidationError
from giftbox.services import connect_service

from conftest import FakeGateway, auth_headers


class TestConnectService:

    def test_onboard_creates_account_once(self, db_session, make_store):
        store = make_store()
        gateway = FakeGateway()

        first = connect_service.onboard(store.vendor_id, gateway=gateway, email="v@example.com")
        second = connect_service.onboard(store.vendor_id, gateway=gateway)

        assert len(gateway.accounts) == 1
        assert store.payment_account_id == "acct_1"
        assert store.payment_onboarding_complete is False
        assert first.startswith("https://connect.test/onboard/acct_1")
        assert "stripe=complete" in first
        assert f"store_id={store.id}" in second

    def test_complete_requires_submitted_details(self, db_session, make_store):
        store = make_store()
        gateway = FakeGateway(details_submitted=False)
        connect_service.onboard(store.vendor_id, gateway=gateway)

        with pytest.raises(ValidationError):
            connect_service.complete(store.vendor_id, gateway=gateway)
        assert store.payment_onboarding_complete is False

        gateway.details_submitted = True
        assert connect_service.complete(store.vendor_id, gateway=gateway).payment_onboarding_complete is True

    def test_complete_without_account(self, db_session, make_store):
        store = make_store()
        with pytest.raises(ValidationError):
            connect_service.complete(store.vendor_id, gateway=FakeGateway())

    def test_disconnect(self, db_session, make_store):
        store = make_store(payment_account_id="acct_old")
        connect_service.disconnect(store.vendor_id)
        assert store.payment_account_id is None
        assert store.payment_onboarding_complete is False

    def test_other_vendors_store(self, db_session, make_store):
        mine = make_store()
        theirs = make_store()
        with pytest.raises(PermissionDeniedError):
            connect_service.onboard(mine.vendor_id, theirs.id, gateway=FakeGateway())

    def test_no_vendor(self, db_session):
        with pytest.raises(PermissionDeniedError):
            connect_service.disconnect(None)


class TestConnectRoutes:

    def test_onboard_and_dashboard(self, client, make_store, token_for, fake_gateway):
        store = make_store()
        headers = auth_headers(token_for(store.vendor.user))

        resp = client.post("/api/stripe/connect/onboard", json={"store_id": store.id}, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["url"].startswith("https://connect.test/onboard/")

        resp = client.post("/api/stripe/connect/complete", json={}, headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["store"]["payment_onboarding_complete"] is True

        resp = client.post("/api/stripe/connect/dashboard-link", json={}, headers=headers)
        assert resp.get_json()["url"] == "https://connect.test/dashboard/acct_1"

    def test_other_vendors_store_is_403(self, client, make_store, token_for, fake_gateway):
        mine = make_store()
        theirs = make_store()
        resp = client.post(
            "/api/stripe/connect/onboard",
            json={"storeId": theirs.id},
            headers=auth_headers(token_for(mine.vendor.user)),
        )
        assert resp.status_code == 403
        assert fake_gateway.accounts == []

    def test_customers_are_refused(self, client, make_user, token_for, fake_gateway):
        resp = client.post("/api/stripe/connect/onboard", headers=auth_headers(token_for(make_user())))
        assert resp.status_code == 403

    def test_processor_failure_is_502(self, client, app, make_store, token_for):
        store = make_store(payment_account_id="acct_1")
        # Default gateway has no API key in tests
        resp = client.post(
            "/api/stripe/connect/dashboard-link",
            headers=auth_headers(token_for(store.vendor.user)),
        )
        assert resp.status_code == 502
