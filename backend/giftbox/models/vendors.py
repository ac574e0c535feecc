from __future__ import annotations

from ..extensions import db
from giftbox.time_utils import to_utc_z


STORE_STATUSES = ("pending", "approved", "suspended", "rejected")


class Vendor(db.Model):
    """Business profile attached to a vendor-role user (one per user)."""
    __tablename__ = "vendors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    vendor_name = db.Column(db.String(255), nullable=False)
    business_name = db.Column(db.String(255), nullable=True)
    business_type = db.Column(db.String(128), nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)

    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(128), nullable=True)
    zip_code = db.Column(db.String(32), nullable=True)
    country = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("vendor", uselist=False, lazy=True))

    @property
    def display_name(self) -> str:
        return self.business_name or self.vendor_name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "vendor_name": self.vendor_name,
            "business_name": self.business_name,
            "business_type": self.business_type,
            "tax_id": self.tax_id,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
            "created_at": to_utc_z(self.created_at),
        }


class Store(db.Model):
    """
    A vendor's storefront.

    Lifecycle (admin controlled):
        pending -> approved | rejected
        approved -> suspended
        suspended -> approved

    Only approved stores are publicly listed and can transact.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'suspended', 'rejected')",
            name="ck_stores_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, unique=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    logo_url = db.Column(db.String(1024), nullable=True)
    banner_url = db.Column(db.String(1024), nullable=True)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    suspended_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Connected payment-processor account used for payouts
    payment_account_id = db.Column(db.String(255), nullable=True)
    payment_onboarding_complete = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    vendor = db.relationship("Vendor", backref=db.backref("store", uselist=False, lazy=True))

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    def to_dict(self, *, include_payment: bool = False) -> dict:
        data = {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "logo_url": self.logo_url,
            "banner_url": self.banner_url,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "status": self.status,
            "approved_at": to_utc_z(self.approved_at),
            "approved_by": self.approved_by,
            "suspended_at": to_utc_z(self.suspended_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_payment:
            data["payment_account_id"] = self.payment_account_id
            data["payment_onboarding_complete"] = self.payment_onboarding_complete
        return data
