# Overview: Flask extension instances for database and migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def get_payment_gateway():
    """Return the payment gateway registered on the current app."""
    from flask import current_app
    return current_app.extensions["payment_gateway"]


def get_cart_service():
    """Return the cart service registered on the current app."""
    from flask import current_app
    return current_app.extensions["cart_service"]
