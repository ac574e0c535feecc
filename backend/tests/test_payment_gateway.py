"""
Payment gateway client tests against httpx.MockTransport.
"""

from urllib.parse import parse_qs

import httpx
import pytest

from giftbox.errors import PaymentGatewayError
from giftbox.services.payment_gateway import PaymentGateway


def _gateway(handler, api_key="sk_test_123"):
    return PaymentGateway(api_key, "https://pay.test", transport=httpx.MockTransport(handler))


def _form(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class TestTransfers:

    def test_transfer_request_shape(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json={"id": "tr_1", "amount": 9000, "currency": "usd", "destination": "acct_a"})

        transfer = _gateway(handler).create_transfer(9000, "usd", "acct_a", "Payout for order 1", idempotency_key="payout-7")

        request = seen["request"]
        assert request.method == "POST"
        assert request.url.path == "/v1/transfers"
        assert request.headers["Authorization"] == "Bearer sk_test_123"
        assert request.headers["Idempotency-Key"] == "payout-7"
        assert _form(request) == {
            "amount": "9000",
            "currency": "usd",
            "destination": "acct_a",
            "description": "Payout for order 1",
        }
        assert transfer.id == "tr_1"
        assert transfer.amount_cents == 9000

    def test_provider_error_message(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"message": "Insufficient funds in platform balance"}})

        with pytest.raises(PaymentGatewayError) as exc:
            _gateway(handler).create_transfer(100, "usd", "acct_a")

        assert exc.value.message == "Insufficient funds in platform balance"
        assert exc.value.details == {"status": 400}
        assert exc.value.status_code == 502

    def test_error_without_json_body(self):
        def handler(request):
            return httpx.Response(503, text="upstream down")

        with pytest.raises(PaymentGatewayError, match="HTTP 503"):
            _gateway(handler).create_transfer(100, "usd", "acct_a")

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentGatewayError, match="unreachable"):
            _gateway(handler).create_transfer(100, "usd", "acct_a")

    def test_not_configured(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(PaymentGatewayError, match="not configured"):
            _gateway(handler, api_key="").create_transfer(100, "usd", "acct_a")

    def test_non_positive_amount(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(PaymentGatewayError):
            _gateway(handler).create_transfer(0, "usd", "acct_a")


class TestConnectedAccounts:

    def test_create_account(self):
        seen = {}

        def handler(request):
            seen["form"] = _form(request)
            return httpx.Response(200, json={"id": "acct_9"})

        account = _gateway(handler).create_connected_account("vendor@example.com")

        assert account.id == "acct_9"
        assert account.details_submitted is False
        assert seen["form"]["type"] == "express"
        assert seen["form"]["capabilities[transfers][requested]"] == "true"
        assert seen["form"]["email"] == "vendor@example.com"

    def test_onboarding_link(self):
        def handler(request):
            form = _form(request)
            assert request.url.path == "/v1/account_links"
            assert form["type"] == "account_onboarding"
            assert form["account"] == "acct_9"
            return httpx.Response(200, json={"url": "https://connect.test/setup"})

        url = _gateway(handler).create_onboarding_link("acct_9", "https://shop/refresh", "https://shop/return")
        assert url == "https://connect.test/setup"

    def test_retrieve_account(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path == "/v1/accounts/acct_9"
            return httpx.Response(200, json={"id": "acct_9", "details_submitted": True, "payouts_enabled": True})

        account = _gateway(handler).retrieve_account("acct_9")
        assert account.details_submitted is True
        assert account.payouts_enabled is True

    def test_dashboard_link(self):
        def handler(request):
            assert request.url.path == "/v1/accounts/acct_9/login_links"
            return httpx.Response(200, json={"url": "https://connect.test/dash"})

        assert _gateway(handler).create_dashboard_link("acct_9") == "https://connect.test/dash"
