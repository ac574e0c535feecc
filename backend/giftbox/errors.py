# Overview: Typed error hierarchy shared by services and routes.

"""
Domain errors.

Services raise these; routes hand them to error_response() which maps each
class to its HTTP status. Every error carries a human-readable message and
an optional details dict that is echoed to the client.
"""

from __future__ import annotations

from flask import jsonify


class GiftboxError(Exception):
    """Base class for all expected (non-bug) failures."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(GiftboxError):
    """400-level input problem."""
    status_code = 400


class AuthenticationError(GiftboxError):
    status_code = 401


class PermissionDeniedError(GiftboxError):
    status_code = 403


class NotFoundError(GiftboxError):
    status_code = 404


class ConflictError(GiftboxError):
    """409-level business rule conflict (e.g., double confirmation)."""
    status_code = 409


class InsufficientStockError(ConflictError):
    """
    Raised when any product in an order lacks stock.

    The message never names the item: the whole order is refused.
    """

    def __init__(self, message: str = "Insufficient stock for one or more items", details: dict | None = None):
        super().__init__(message, details)


class GiftLinkExpiredError(ValidationError):
    status_code = 410


class ThrottledError(GiftboxError):
    status_code = 429


class PaymentGatewayError(GiftboxError):
    """Payment processor rejected a call or could not be reached."""
    status_code = 502


def error_response(exc: GiftboxError):
    """Serialize a domain error as a (json, status) tuple for a Flask view."""
    return jsonify(exc.to_dict()), exc.status_code
