"""
Store approval lifecycle tests.

pending -> approved | rejected; approved -> suspended -> approved.
Only approved stores show up in the catalog or accept orders.
"""

import pytest

from giftbox.errors import PermissionDeniedError
from giftbox.events import store_status_changed
from giftbox.services import store_admin_service
from giftbox.services.store_admin_service import StoreApprovalError

from conftest import auth_headers


@pytest.fixture
def admin(make_user):
    return make_user("admin")


class TestTransitions:

    def test_approve_pending(self, db_session, make_store, admin):
        store = make_store(status="pending")
        approved = store_admin_service.approve_store(store.id, admin.id)
        assert approved.status == "approved"
        assert approved.approved_by == admin.id
        assert approved.approved_at is not None

    def test_reject_pending(self, db_session, make_store, admin):
        store = make_store(status="pending")
        assert store_admin_service.reject_store(store.id, admin.id).status == "rejected"

    def test_suspend_and_reactivate(self, db_session, make_store, admin):
        store = make_store()
        suspended = store_admin_service.suspend_store(store.id, admin.id)
        assert suspended.status == "suspended"
        assert suspended.suspended_at is not None

        reactivated = store_admin_service.reactivate_store(store.id, admin.id)
        assert reactivated.status == "approved"
        assert reactivated.suspended_at is None

    @pytest.mark.parametrize("status,action", [
        ("approved", "approve_store"),
        ("rejected", "approve_store"),
        ("approved", "reject_store"),
        ("pending", "suspend_store"),
        ("rejected", "suspend_store"),
        ("pending", "reactivate_store"),
    ])
    def test_invalid_transitions(self, db_session, make_store, admin, status, action):
        store = make_store(status=status)
        with pytest.raises(StoreApprovalError):
            getattr(store_admin_service, action)(store.id, admin.id)
        assert store.status == status

    def test_pending_queue(self, db_session, make_store, admin):
        first = make_store(status="pending")
        second = make_store(status="pending")
        make_store()

        assert [s.id for s in store_admin_service.list_pending_stores()] == [first.id, second.id]
        store_admin_service.reject_store(first.id, admin.id)
        assert [s.id for s in store_admin_service.list_pending_stores()] == [second.id]

    def test_admin_required(self, db_session, make_store):
        store = make_store(status="pending")
        with pytest.raises(PermissionDeniedError):
            store_admin_service.approve_store(store.id, None)

    def test_event_emitted(self, db_session, make_store, admin):
        store = make_store(status="pending")
        seen = []

        def _receiver(change, **kw):
            seen.append(change)

        with store_status_changed.connected_to(_receiver):
            store_admin_service.approve_store(store.id, admin.id)

        assert [(c.store_id, c.old_status, c.new_status) for c in seen] == [(store.id, "pending", "approved")]


class TestAdminStoreRoutes:

    def test_approve_route(self, client, make_store, admin, token_for):
        store = make_store(status="pending")
        resp = client.post(f"/api/admin/stores/{store.id}/approve", headers=auth_headers(token_for(admin)))
        assert resp.status_code == 200
        assert resp.get_json()["store"]["status"] == "approved"

    def test_double_approve_is_409(self, client, make_store, admin, token_for):
        store = make_store()
        resp = client.post(f"/api/admin/stores/{store.id}/approve", headers=auth_headers(token_for(admin)))
        assert resp.status_code == 409

    def test_suspend_then_unsuspend(self, client, make_store, admin, token_for):
        store = make_store()
        headers = auth_headers(token_for(admin))

        resp = client.post(f"/api/admin/stores/{store.id}/suspend", json={}, headers=headers)
        assert resp.get_json()["store"]["status"] == "suspended"

        resp = client.post(f"/api/admin/stores/{store.id}/suspend", json={"unsuspend": True}, headers=headers)
        assert resp.get_json()["store"]["status"] == "approved"

    def test_list_and_detail(self, client, make_store, make_product, admin, token_for):
        pending = make_store(status="pending")
        approved = make_store()
        make_product(approved)
        headers = auth_headers(token_for(admin))

        stores = client.get("/api/admin/stores?status=pending", headers=headers).get_json()["stores"]
        assert [s["id"] for s in stores] == [pending.id]

        detail = client.get(f"/api/admin/stores/{approved.id}", headers=headers).get_json()
        assert len(detail["products"]) == 1
        assert detail["total_orders"] == 0

        assert client.get("/api/admin/stores/99999", headers=headers).status_code == 404

    def test_stats(self, client, make_store, admin, token_for):
        make_store(status="pending")
        make_store()
        stats = client.get("/api/admin/stats", headers=auth_headers(token_for(admin))).get_json()
        assert stats["total_stores"] == 2
        assert stats["pending_stores"] == 1
        assert stats["approved_stores"] == 1
        assert stats["revenue"] == 0.0

    def test_vendor_cannot_approve(self, client, make_store, token_for):
        store = make_store(status="pending")
        resp = client.post(f"/api/admin/stores/{store.id}/approve", headers=auth_headers(token_for(store.vendor.user)))
        assert resp.status_code == 403
