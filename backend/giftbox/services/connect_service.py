# Overview: Service-layer operations linking a vendor's store to a connected payment account.

from __future__ import annotations

import logging

from flask import current_app

from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db, get_payment_gateway
from ..models import Store

logger = logging.getLogger(__name__)


def _own_store(vendor_id: int | None, store_id: int | None = None) -> Store:
    """The vendor's store; store_id, when given, must name that same store."""
    if vendor_id is None:
        raise PermissionDeniedError("Vendor access required")
    if store_id is not None:
        store = db.session.get(Store, store_id)
        if not store:
            raise NotFoundError("Store not found")
        if store.vendor_id != vendor_id:
            raise PermissionDeniedError("Not your store")
        return store
    store = db.session.query(Store).filter_by(vendor_id=vendor_id).first()
    if not store:
        raise NotFoundError("Store not found")
    return store


def _return_urls(store: Store) -> tuple[str, str]:
    site_url = current_app.config["SITE_URL"].rstrip("/")
    base = f"{site_url}/vendor/register-store"
    return (
        f"{base}?stripe=refresh&store_id={store.id}",
        f"{base}?stripe=complete&store_id={store.id}",
    )


def onboard(vendor_id: int, store_id: int | None = None, *, email: str | None = None, gateway=None) -> str:
    """Create the connected account on first use and return an onboarding URL."""
    gateway = gateway or get_payment_gateway()
    store = _own_store(vendor_id, store_id)

    if not store.payment_account_id:
        account = gateway.create_connected_account(store.email or email)
        store.payment_account_id = account.id
        store.payment_onboarding_complete = False
        db.session.commit()
        logger.info("Connected account %s created for store %s", account.id, store.id)

    refresh_url, return_url = _return_urls(store)
    return gateway.create_onboarding_link(store.payment_account_id, refresh_url, return_url)


def complete(vendor_id: int, store_id: int | None = None, *, gateway=None) -> Store:
    """
    Mark onboarding complete once the processor reports the account's
    details as submitted.
    """
    gateway = gateway or get_payment_gateway()
    store = _own_store(vendor_id, store_id)
    if not store.payment_account_id:
        raise ValidationError("Store has no connected payment account")

    account = gateway.retrieve_account(store.payment_account_id)
    if not account.details_submitted:
        raise ValidationError("Payment onboarding is not finished yet")

    store.payment_onboarding_complete = True
    db.session.commit()
    return store


def disconnect(vendor_id: int, store_id: int | None = None) -> Store:
    store = _own_store(vendor_id, store_id)
    store.payment_account_id = None
    store.payment_onboarding_complete = False
    db.session.commit()
    logger.info("Payment account disconnected from store %s", store.id)
    return store


def dashboard_link(vendor_id: int, store_id: int | None = None, *, gateway=None) -> str:
    gateway = gateway or get_payment_gateway()
    store = _own_store(vendor_id, store_id)
    if not store.payment_account_id:
        raise ValidationError("Store has no connected payment account")
    return gateway.create_dashboard_link(store.payment_account_id)
