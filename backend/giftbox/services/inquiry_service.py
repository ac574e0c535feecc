# Overview: Service-layer operations for public contact and plugin sales inquiries.

from __future__ import annotations

import logging

from ..errors import ValidationError
from ..extensions import db
from ..models import ContactQuery, PluginQuery
from .pagination import paginate

logger = logging.getLogger(__name__)


def _field(value, name: str, *, required: bool = True, max_length: int | None = None) -> str | None:
    value = str(value).strip() if value is not None else ""
    if required and not value:
        raise ValidationError(f"{name} is required")
    if max_length and len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value or None


def _email(value) -> str:
    email = _field(value, "email", max_length=255)
    if "@" not in email:
        raise ValidationError("email must be a valid email address")
    return email


def submit_contact_query(name, email, phone=None, subject=None, message=None) -> ContactQuery:
    query = ContactQuery(
        name=_field(name, "name", max_length=255),
        email=_email(email),
        phone=_field(phone, "phone", required=False, max_length=32),
        subject=_field(subject, "subject", required=False, max_length=255),
        message=_field(message, "message"),
    )
    db.session.add(query)
    db.session.commit()
    logger.info("Contact query %s received", query.id)
    return query


def submit_plugin_query(name, email, phone=None, query=None) -> PluginQuery:
    inquiry = PluginQuery(
        name=_field(name, "name", max_length=255),
        email=_email(email),
        phone=_field(phone, "phone", required=False, max_length=32),
        query_text=_field(query, "query"),
    )
    db.session.add(inquiry)
    db.session.commit()
    logger.info("Plugin query %s received", inquiry.id)
    return inquiry


def _listing(model, page, per_page) -> dict:
    query = db.session.query(model).order_by(model.created_at.desc(), model.id.desc())
    rows, total, page, per_page = paginate(query, page, per_page)
    return {"queries": [row.to_dict() for row in rows], "total": total, "page": page, "per_page": per_page}


def list_contact_queries(page=1, per_page=20) -> dict:
    return _listing(ContactQuery, page, per_page)


def list_plugin_queries(page=1, per_page=20) -> dict:
    return _listing(PluginQuery, page, per_page)
