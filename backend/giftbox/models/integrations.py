from __future__ import annotations

from ..extensions import db
from giftbox.money import money_json
from giftbox.time_utils import to_utc_z


class PluginIntegration(db.Model):
    """
    External storefront allowed to push gift orders for one store.

    The API key is shown once at creation; only its SHA-256 and a display
    prefix are kept.
    """
    __tablename__ = "plugin_integrations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, unique=True)

    api_key_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    api_key_prefix = db.Column(db.String(32), nullable=False)

    fee_per_order = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("plugin_integration", uselist=False, lazy=True))
    vendor = db.relationship("Vendor")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vendor_id": self.vendor_id,
            "store_id": self.store_id,
            "api_key_prefix": self.api_key_prefix,
            "fee_per_order": money_json(self.fee_per_order),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ContactQuery(db.Model):
    __tablename__ = "contact_queries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    subject = db.Column(db.String(255), nullable=True)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "subject": self.subject,
            "message": self.message,
            "created_at": to_utc_z(self.created_at),
        }


class PluginQuery(db.Model):
    """Sales inquiry from a merchant interested in the plugin integration."""
    __tablename__ = "plugin_queries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    # "query" would shadow Model.query
    query_text = db.Column("query", db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "query": self.query_text,
            "created_at": to_utc_z(self.created_at),
        }


class CartSnapshot(db.Model):
    """Persisted cart hint per user; the catalog stays the price authority."""
    __tablename__ = "cart_snapshots"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    owner_key = db.Column(db.String(128), nullable=False, unique=True, index=True)
    payload = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
