"""
Gift order tests.

Verifies:
- Gift orders start pending with a gift token and a signed, expiring link
- Vendors and admins cannot confirm/dispatch before the receiver's address
- Receiver confirmation cascades to vendor orders, exactly once
- Expired links and tokens answer 410
"""

import re
from datetime import timedelta

import jwt
import pytest

from giftbox.errors import GiftLinkExpiredError, NotFoundError, ValidationError
from giftbox.models import Order
from giftbox.services import gift_link_service, order_service
from giftbox.services.order_service import OrderError
from giftbox.time_utils import utcnow

from conftest import auth_headers, order_payload


GIFT_TOKEN_RE = re.compile(r"^gift-\d{13}-[0-9a-z]{9}$")


@pytest.fixture
def gift_order(db_session, make_store, make_product):
    store = make_store(name="Gift Shop")
    product = make_product(store, price="30.00", stock=4)
    order = order_service.create_order(order_payload(
        [(product, 1)], order_type="gift", receiver_address="ignored at creation",
    ))
    return order, store


def _link_token(order):
    return order.gift_link.rsplit("/", 1)[1]


class TestGiftCreation:

    def test_gift_starts_pending_with_token_and_link(self, app, gift_order):
        order, _ = gift_order
        assert order.status == "pending"
        assert order.confirmed_at is None
        assert GIFT_TOKEN_RE.match(order.gift_token)
        assert order.gift_link.startswith("https://giftbox.test/gift-receiver/")
        assert order.gift_expires_at is not None
        assert order.shipping_address is None
        assert order.receiver_address is None
        assert all(vo.status == "pending" for vo in order.vendor_orders)

    def test_link_names_the_gift_token(self, app, gift_order):
        order, _ = gift_order
        assert gift_link_service.resolve_gift_link(_link_token(order)) == order.gift_token

    def test_link_does_not_contain_raw_token(self, app, gift_order):
        order, _ = gift_order
        assert order.gift_token not in order.gift_link

    def test_tampered_link_is_not_found(self, app, gift_order):
        order, _ = gift_order
        forged = jwt.encode({"sub": order.gift_token, "exp": 4102444800}, "another-signing-key-of-sufficient-length", algorithm="HS256")
        with pytest.raises(NotFoundError):
            gift_link_service.resolve_gift_link(forged)

    def test_expired_link_is_gone(self, app, gift_order):
        order, _ = gift_order
        expired = gift_link_service.issue_link_token(order.gift_token, order.id, utcnow() - timedelta(minutes=1))
        with pytest.raises(GiftLinkExpiredError):
            gift_link_service.resolve_gift_link(expired)


class TestReceiverGuard:

    def test_vendor_cannot_confirm_before_receiver(self, db_session, gift_order):
        order, store = gift_order
        with pytest.raises(OrderError) as exc:
            order_service.update_vendor_order_status(order.id, store.vendor_id, "confirmed")
        assert exc.value.details["requested_status"] == "confirmed"
        assert db_session.get(Order, order.id).status == "pending"

    def test_admin_cannot_dispatch_before_receiver(self, db_session, gift_order):
        order, _ = gift_order
        with pytest.raises(OrderError):
            order_service.update_order_status(order.id, "confirmed")

    def test_pending_gift_can_still_be_cancelled(self, db_session, gift_order):
        order, _ = gift_order
        cancelled = order_service.update_order_status(order.id, "cancelled")
        assert cancelled.status == "cancelled"


class TestReceiverConfirmation:

    def test_confirm_cascades_to_vendor_orders(self, db_session, gift_order):
        order, _ = gift_order

        confirmed = order_service.confirm_gift_link(
            _link_token(order), "  22 Receiver Rd  ", receiver_name="Riley R.", receiver_phone="555-0199",
        )

        assert confirmed.status == "confirmed"
        assert confirmed.confirmed_at is not None
        assert confirmed.receiver_address == "22 Receiver Rd"
        assert confirmed.shipping_address == "22 Receiver Rd"
        assert confirmed.receiver_name == "Riley R."
        assert confirmed.receiver_phone == "555-0199"
        assert all(vo.status == "confirmed" for vo in confirmed.vendor_orders)

    def test_vendor_can_dispatch_after_confirmation(self, db_session, gift_order):
        order, store = gift_order
        order_service.confirm_gift_receiver(order.gift_token, "22 Receiver Rd")

        vendor_order = order_service.update_vendor_order_status(order.id, store.vendor_id, "dispatched")
        assert vendor_order.status == "dispatched"
        assert db_session.get(Order, order.id).status == "dispatched"

    def test_second_confirmation_is_a_conflict(self, db_session, gift_order):
        order, _ = gift_order
        order_service.confirm_gift_receiver(order.gift_token, "22 Receiver Rd")

        with pytest.raises(OrderError):
            order_service.confirm_gift_receiver(order.gift_token, "Somewhere else")
        assert db_session.get(Order, order.id).receiver_address == "22 Receiver Rd"

    def test_address_required(self, db_session, gift_order):
        order, _ = gift_order
        with pytest.raises(ValidationError):
            order_service.confirm_gift_receiver(order.gift_token, "   ")

    def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.confirm_gift_receiver("gift-0-unknown00", "22 Receiver Rd")

    def test_expired_gift_changes_nothing(self, db_session, gift_order):
        order, _ = gift_order
        order.gift_expires_at = utcnow() - timedelta(days=1)
        db_session.commit()

        with pytest.raises(GiftLinkExpiredError):
            order_service.confirm_gift_receiver(order.gift_token, "22 Receiver Rd")

        refreshed = db_session.get(Order, order.id)
        assert refreshed.status == "pending"
        assert refreshed.receiver_address is None


class TestGiftReceiverRoutes:

    def test_receiver_view_hides_sender_contact(self, client, gift_order):
        order, _ = gift_order
        resp = client.get(f"/api/gift-receiver/{_link_token(order)}")
        assert resp.status_code == 200
        gift = resp.get_json()["gift"]
        assert gift["order_number"] == order.order_number
        assert gift["awaiting_address"] is True
        assert gift["sender_name"] == "Sam Sender"
        assert "sender_email" not in gift
        assert "sender_address" not in gift

    def test_confirm_route(self, client, gift_order):
        order, _ = gift_order
        token = _link_token(order)

        resp = client.post(f"/api/gift-receiver/{token}/confirm", json={"receiver_address": "22 Receiver Rd"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "confirmed"

        resp = client.post(f"/api/gift-receiver/{token}/confirm", json={"receiver_address": "22 Receiver Rd"})
        assert resp.status_code == 409

    def test_garbage_link_is_404(self, client, db_session):
        resp = client.get("/api/gift-receiver/not-a-token")
        assert resp.status_code == 404

    def test_vendor_confirm_route_is_409(self, client, gift_order, token_for):
        order, store = gift_order
        resp = client.patch(
            f"/api/vendor/orders/{order.id}/status",
            json={"status": "confirmed"},
            headers=auth_headers(token_for(store.vendor.user)),
        )
        assert resp.status_code == 409
