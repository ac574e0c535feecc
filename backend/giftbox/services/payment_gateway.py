# Overview: httpx client for the Connect-style payment processor (transfers and connected accounts).

"""
Payment Gateway

Thin client over a Connect-style REST API:
- form-encoded request bodies, nested keys as ``capabilities[transfers][requested]``
- ``Authorization: Bearer <secret key>``
- an ``Idempotency-Key`` header on every POST that may be retried

Any non-2xx response or transport failure raises PaymentGatewayError with
the provider's message. The app keeps one instance in
``app.extensions["payment_gateway"]``; tests install a fake or pass an
``httpx.MockTransport``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from ..errors import PaymentGatewayError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transfer:
    id: str
    amount_cents: int
    currency: str
    destination: str


@dataclass(frozen=True)
class ConnectedAccount:
    id: str
    details_submitted: bool = False
    payouts_enabled: bool = False


def _account(data: dict) -> ConnectedAccount:
    return ConnectedAccount(
        id=data["id"],
        details_submitted=bool(data.get("details_submitted")),
        payouts_enabled=bool(data.get("payouts_enabled")),
    )


class PaymentGateway:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.stripe.com",
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config) -> "PaymentGateway":
        return cls(
            config["PAYMENT_API_KEY"],
            config["PAYMENT_API_BASE"],
            timeout=config["PAYMENT_TIMEOUT_SECONDS"],
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, *, data: dict | None = None, idempotency_key: str | None = None) -> dict:
        if not self.api_key:
            raise PaymentGatewayError("Payment processor is not configured")

        headers = {}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            response = self._client.request(method, path, data=data, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Payment processor unreachable: %s %s (%s)", method, path, exc)
            raise PaymentGatewayError("Payment processor unreachable", {"reason": str(exc)})

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            error = body.get("error") if isinstance(body, dict) else None
            message = (error or {}).get("message") if isinstance(error, dict) else None
            raise PaymentGatewayError(
                message or f"Payment processor returned HTTP {response.status_code}",
                {"status": response.status_code},
            )
        return body

    def create_transfer(
        self,
        amount_cents: int,
        currency: str,
        destination: str,
        description: str | None = None,
        *,
        idempotency_key: str | None = None,
    ) -> Transfer:
        if amount_cents <= 0:
            raise PaymentGatewayError("Transfer amount must be positive")
        payload = {"amount": str(amount_cents), "currency": currency, "destination": destination}
        if description:
            payload["description"] = description
        data = self._request("POST", "/v1/transfers", data=payload, idempotency_key=idempotency_key)
        return Transfer(
            id=data["id"],
            amount_cents=int(data.get("amount", amount_cents)),
            currency=data.get("currency", currency),
            destination=data.get("destination", destination),
        )

    def create_connected_account(self, email: str | None = None) -> ConnectedAccount:
        payload = {
            "type": "express",
            "capabilities[transfers][requested]": "true",
        }
        if email:
            payload["email"] = email
        return _account(self._request("POST", "/v1/accounts", data=payload))

    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        data = self._request("POST", "/v1/account_links", data={
            "account": account_id,
            "refresh_url": refresh_url,
            "return_url": return_url,
            "type": "account_onboarding",
        })
        return data["url"]

    def create_dashboard_link(self, account_id: str) -> str:
        data = self._request("POST", f"/v1/accounts/{account_id}/login_links")
        return data["url"]

    def retrieve_account(self, account_id: str) -> ConnectedAccount:
        return _account(self._request("GET", f"/v1/accounts/{account_id}"))
