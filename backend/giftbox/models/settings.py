from __future__ import annotations

from ..extensions import db
from giftbox.money import money_json
from giftbox.time_utils import to_utc_z


class PlatformSettings(db.Model):
    """
    Singleton (id='default') holding platform-wide percentages and links.

    commission_percent: platform cut taken from each delivered vendor order
    tax_percent: tax applied at checkout
    plugin_tax: tax percent shown to plugin integrations
    overview_video_*_url: explainer videos on the public overview pages
    """
    __tablename__ = "platform_settings"

    id = db.Column(db.String(32), primary_key=True, default="default")

    commission_percent = db.Column(db.Numeric(5, 2), nullable=False)
    tax_percent = db.Column(db.Numeric(5, 2), nullable=False)
    plugin_tax = db.Column(db.Numeric(5, 2), nullable=False)

    overview_video_gifting_url = db.Column(db.String(1024), nullable=True)
    overview_video_vendor_url = db.Column(db.String(1024), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "commission_percent": money_json(self.commission_percent),
            "tax_percent": money_json(self.tax_percent),
            "plugin_tax": money_json(self.plugin_tax),
            "overview_video_gifting_url": self.overview_video_gifting_url,
            "overview_video_vendor_url": self.overview_video_vendor_url,
            "updated_at": to_utc_z(self.updated_at),
            "updated_by": self.updated_by,
        }
