"""
Payout settlement tests.

Verifies:
- commission + vendor amount == order total to the cent
- one row's failure never stops the batch
- transfers below the minimum are marked paid without a transfer
- paid rows are never paid again
- the holding period applies only to automatic batches
- a retried row pays the stored split under a fresh idempotency key
- plugin fees come out of the vendor share
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from giftbox.errors import ValidationError
from giftbox.models import VendorOrder, VendorPayout
from giftbox.services import order_service, payout_service, plugin_service, settings_service
from giftbox.services.payout_service import PayoutError, compute_payout_amounts
from giftbox.time_utils import utcnow

from conftest import FakeGateway, auth_headers, order_payload


@pytest.fixture
def delivered(db_session, make_store, make_product):
    """delivered(price, account='acct_x', days_ago=10) -> delivered VendorOrder."""
    def _make(price="100.00", account="acct_default", days_ago=10):
        store = make_store(payment_account_id=account)
        product = make_product(store, price=price, stock=5)
        order = order_service.create_order(order_payload([(product, 1)]))
        vendor_order = order.vendor_orders[0]
        order_service.update_vendor_order_status(order.id, store.vendor_id, "dispatched")
        order_service.update_vendor_order_status(order.id, store.vendor_id, "delivered")
        vendor_order.delivered_at = utcnow() - timedelta(days=days_ago)
        db_session.commit()
        return vendor_order
    return _make


class TestPayoutAmounts:

    @pytest.mark.parametrize("total,pct,commission,vendor_amount", [
        ("100.00", "10", "10.00", "90.00"),
        ("33.33", "12.5", "4.17", "29.16"),
        ("0.05", "10", "0.01", "0.04"),
        ("19.99", "0", "0.00", "19.99"),
        ("19.99", "100", "19.99", "0.00"),
    ])
    def test_split_adds_up(self, total, pct, commission, vendor_amount):
        got_commission, got_vendor = compute_payout_amounts(Decimal(total), Decimal(pct))
        assert got_commission == Decimal(commission)
        assert got_vendor == Decimal(vendor_amount)
        assert got_commission + got_vendor == Decimal(total)


class TestProcessPayouts:

    def test_pays_delivered_vendor_orders(self, db_session, delivered):
        vendor_order = delivered("100.00", account="acct_a")
        gateway = FakeGateway()

        result = payout_service.process_payouts(gateway=gateway)

        assert result.processed == 1
        assert result.errors == []
        transfer, idempotency_key = gateway.transfers[0]
        assert transfer.amount_cents == 9000
        assert transfer.destination == "acct_a"
        assert idempotency_key == f"payout-{vendor_order.id}-1"

        row = db_session.get(VendorOrder, vendor_order.id)
        assert row.payout_status == "paid"
        assert row.commission_amount == Decimal("10.00")
        assert row.vendor_amount == Decimal("90.00")
        assert row.transfer_id == transfer.id

        ledger = db_session.query(VendorPayout).filter_by(vendor_order_id=vendor_order.id).one()
        assert ledger.vendor_amount + ledger.commission_amount == ledger.order_total

    def test_partial_failure_carries_on(self, db_session, delivered):
        ok = delivered("50.00", account="acct_ok")
        bad = delivered("60.00", account="acct_bad")
        missing = delivered("70.00", account=None)
        gateway = FakeGateway(fail_destinations={"acct_bad"})

        result = payout_service.process_payouts(gateway=gateway)

        assert result.processed == 1
        assert len(result.errors) == 2
        assert db_session.get(VendorOrder, ok.id).payout_status == "paid"
        assert db_session.get(VendorOrder, bad.id).payout_status == "failed"
        assert db_session.get(VendorOrder, missing.id).payout_status == "failed"
        assert db_session.query(VendorPayout).count() == 1

    def test_failed_rows_retry_by_id(self, db_session, delivered):
        vendor_order = delivered("60.00", account="acct_flaky")
        payout_service.process_payouts(gateway=FakeGateway(fail_destinations={"acct_flaky"}))
        assert db_session.get(VendorOrder, vendor_order.id).payout_status == "failed"

        result = payout_service.process_payouts([vendor_order.id], gateway=FakeGateway())

        assert result.processed == 1
        assert db_session.get(VendorOrder, vendor_order.id).payout_status == "paid"

    def test_retry_pays_the_amount_listed_after_failure(self, db_session, delivered, make_user):
        vendor_order = delivered("100.00", account="acct_flaky")
        gateway = FakeGateway(fail_destinations={"acct_flaky"})
        payout_service.process_payouts(gateway=gateway)

        listed = payout_service.list_payouts(status="failed")["payouts"][0]
        assert listed["vendor_amount"] == 90.0

        settings_service.update_commission(30, make_user("admin").id)
        gateway.fail_destinations.clear()
        result = payout_service.process_payouts([vendor_order.id], gateway=gateway)

        assert result.processed == 1
        assert gateway.attempts == [
            (9000, f"payout-{vendor_order.id}-1"),
            (9000, f"payout-{vendor_order.id}-2"),
        ]
        row = db_session.get(VendorOrder, vendor_order.id)
        assert row.vendor_amount == Decimal("90.00")
        assert row.payout_attempts == 2

    def test_small_amount_is_paid_without_transfer(self, db_session, delivered):
        vendor_order = delivered("0.40", account="acct_small")
        gateway = FakeGateway()

        result = payout_service.process_payouts(gateway=gateway)

        assert result.processed == 1
        assert gateway.transfers == []
        row = db_session.get(VendorOrder, vendor_order.id)
        assert row.payout_status == "paid"
        assert row.transfer_id is None

    def test_paid_rows_are_never_paid_twice(self, db_session, delivered):
        vendor_order = delivered("100.00")
        gateway = FakeGateway()

        payout_service.process_payouts(gateway=gateway)
        result = payout_service.process_payouts([vendor_order.id], gateway=gateway)

        assert result.processed == 0
        assert len(gateway.transfers) == 1

    def test_holding_period_for_automatic_batches(self, db_session, delivered):
        recent = delivered("100.00", days_ago=1)
        gateway = FakeGateway()

        assert payout_service.process_payouts(gateway=gateway).processed == 0
        assert payout_service.process_payouts([recent.id], gateway=gateway).processed == 1

    def test_undelivered_orders_are_ignored(self, db_session, make_store, make_product):
        store = make_store(payment_account_id="acct_x")
        product = make_product(store)
        order = order_service.create_order(order_payload([(product, 1)]))

        result = payout_service.process_payouts([order.vendor_orders[0].id], gateway=FakeGateway())
        assert result.processed == 0
        assert result.errors == []

    def test_commission_rate_at_settlement(self, db_session, delivered, make_user):
        vendor_order = delivered("80.00")
        settings_service.update_commission(25, make_user("admin").id)

        payout_service.process_payouts(gateway=FakeGateway())

        row = db_session.get(VendorOrder, vendor_order.id)
        assert row.commission_amount == Decimal("20.00")
        assert row.vendor_amount == Decimal("60.00")

    def test_plugin_fee_comes_out_of_the_vendor_share(self, db_session, make_store):
        store = make_store(payment_account_id="acct_plugin")
        integration, _ = plugin_service.create_integration("Shopfront", store.id, fee_per_order="5.00")
        order = plugin_service.create_plugin_order(integration, {
            "external_order_id": "shop-77",
            "sender_name": "Sam Sender",
            "sender_email": "sam@example.com",
            "sender_phone": "555-0100",
            "sender_address": "1 Sender St",
            "receiver_name": "Riley Receiver",
            "receiver_email": "riley@example.com",
            "items": [{"name": "Hamper", "price": 100, "quantity": 1}],
            "total": 100,
        })
        order_service.confirm_gift_receiver(order.gift_token, "9 Receiver Way")
        order_service.update_vendor_order_status(order.id, store.vendor_id, "dispatched")
        vendor_order = order_service.update_vendor_order_status(order.id, store.vendor_id, "delivered")
        vendor_order.delivered_at = utcnow() - timedelta(days=10)
        db_session.commit()

        listed = payout_service.list_payouts()["payouts"][0]
        assert (listed["commission_amount"], listed["plugin_fee"], listed["vendor_amount"]) == (10.0, 5.0, 85.0)
        plugin_row = plugin_service.list_plugin_orders()["orders"][0]
        assert plugin_row["vendor_amount"] == listed["vendor_amount"]

        gateway = FakeGateway()
        payout_service.process_payouts(gateway=gateway)

        assert gateway.transfers[0][0].amount_cents == 8500
        assert db_session.get(VendorOrder, vendor_order.id).vendor_amount == Decimal("85.00")

    @pytest.mark.parametrize("total,fee,commission,vendor_amount", [
        ("100.00", "5.00", "10.00", "85.00"),
        ("4.00", "5.00", "0.40", "0.00"),
    ])
    def test_split_with_plugin_fee_never_goes_negative(self, total, fee, commission, vendor_amount):
        got_commission, got = compute_payout_amounts(Decimal(total), Decimal("10"), Decimal(fee))
        assert got_commission == Decimal(commission)
        assert got == Decimal(vendor_amount)

    def test_ids_must_be_integers(self, db_session):
        with pytest.raises(PayoutError):
            payout_service.process_payouts(["abc"], gateway=FakeGateway())


class TestPayoutListings:

    def test_admin_listing_filters(self, db_session, delivered):
        paid = delivered("100.00")
        payout_service.process_payouts(gateway=FakeGateway())
        waiting = delivered("40.00", days_ago=1)

        pending = payout_service.list_payouts()
        assert [row["vendor_order_id"] for row in pending["payouts"]] == [waiting.id]

        every = payout_service.list_payouts(status="all")
        assert {row["vendor_order_id"] for row in every["payouts"]} == {paid.id, waiting.id}

        with pytest.raises(ValidationError):
            payout_service.list_payouts(status="bogus")

    def test_vendor_listing(self, db_session, delivered):
        vendor_order = delivered("100.00")
        payout_service.process_payouts(gateway=FakeGateway())

        listing = payout_service.list_vendor_payouts(vendor_order.vendor_id)
        assert listing["pending"] == []
        assert listing["received"][0]["vendor_amount"] == 90.0

    def test_admin_process_route(self, client, db_session, delivered, make_user, token_for, fake_gateway):
        vendor_order = delivered("100.00")
        headers = auth_headers(token_for(make_user("admin")))

        resp = client.post("/api/admin/process-payouts", json={"vendor_order_ids": [vendor_order.id]}, headers=headers)

        assert resp.status_code == 200
        assert resp.get_json()["processed"] == 1
        assert len(fake_gateway.transfers) == 1

        resp = client.get("/api/admin/payouts?status=paid", headers=headers)
        assert resp.get_json()["total"] == 1
