from .accounts import Role, User, SessionToken, SecurityEvent
from .vendors import Vendor, Store, STORE_STATUSES
from .catalog import Product, Service
from .orders import (
    Order, OrderItem, VendorOrder, VendorPayout,
    ORDER_TYPES, ORDER_STATUSES, PAYOUT_STATUSES, DEFERRED_ADDRESS_TYPES,
)
from .engagement import Review, Wishlist, WishlistItem
from .settings import PlatformSettings
from .integrations import PluginIntegration, ContactQuery, PluginQuery, CartSnapshot

__all__ = [
    'Role', 'User', 'SessionToken', 'SecurityEvent',
    'Vendor', 'Store', 'STORE_STATUSES',
    'Product', 'Service',
    'Order', 'OrderItem', 'VendorOrder', 'VendorPayout',
    'ORDER_TYPES', 'ORDER_STATUSES', 'PAYOUT_STATUSES', 'DEFERRED_ADDRESS_TYPES',
    'Review', 'Wishlist', 'WishlistItem',
    'PlatformSettings',
    'PluginIntegration', 'ContactQuery', 'PluginQuery', 'CartSnapshot',
]
