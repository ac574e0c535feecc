"""initial marketplace schema

Revision ID: gb0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates the complete giftbox schema from scratch:
- users, session_tokens, security_events: accounts and authentication
- vendors, stores: vendor profiles and their storefronts (admin approval)
- products, services: store catalog
- orders, order_items, vendor_orders, vendor_payouts: checkout, per-store
  fan-out and settlement
- reviews, wishlists, wishlist_items: customer engagement
- platform_settings: commission and tax percentages, overview videos (singleton row)
- plugin_integrations, contact_queries, plugin_queries, cart_snapshots
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'gb0001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # Accounts
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.String(length=1024), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    op.create_table(
        'security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=255), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_security_events_user_id', 'security_events', ['user_id'])
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])
    op.create_index('ix_security_events_occurred_at', 'security_events', ['occurred_at'])
    op.create_index('ix_security_events_type_action', 'security_events', ['event_type', 'action'])

    # ============================================================================
    # Vendors and stores
    # ============================================================================
    op.create_table(
        'vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('vendor_name', sa.String(length=255), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('business_type', sa.String(length=128), nullable=True),
        sa.Column('tax_id', sa.String(length=64), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('state', sa.String(length=128), nullable=True),
        sa.Column('zip_code', sa.String(length=32), nullable=True),
        sa.Column('country', sa.String(length=128), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendors_user_id', 'vendors', ['user_id'], unique=True)

    op.create_table(
        'stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('logo_url', sa.String(length=1024), nullable=True),
        sa.Column('banner_url', sa.String(length=1024), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('website', sa.String(length=512), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('suspended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_account_id', sa.String(length=255), nullable=True),
        sa.Column('payment_onboarding_complete', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("status IN ('pending', 'approved', 'suspended', 'rejected')",
                           name='ck_stores_status'),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stores_vendor_id', 'stores', ['vendor_id'], unique=True)
    op.create_index('ix_stores_status', 'stores', ['status'])

    # ============================================================================
    # Catalog
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('original_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('image_urls', sa.JSON(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_nonnegative'),
        sa.CheckConstraint('price >= 0', name='ck_products_price_nonnegative'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_store_id', 'products', ['store_id'])
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_store_active', 'products', ['store_id', 'is_active'])

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('duration', sa.String(length=64), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('image_urls', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('price >= 0', name='ck_services_price_nonnegative'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_services_store_id', 'services', ['store_id'])
    op.create_index('ix_services_category', 'services', ['category'])
    op.create_index('ix_services_store_active', 'services', ['store_id', 'is_active'])

    # ============================================================================
    # Platform settings and integrations
    # ============================================================================
    op.create_table(
        'platform_settings',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('commission_percent', sa.Numeric(5, 2), nullable=False),
        sa.Column('tax_percent', sa.Numeric(5, 2), nullable=False),
        sa.Column('plugin_tax', sa.Numeric(5, 2), nullable=False),
        sa.Column('overview_video_gifting_url', sa.String(length=1024), nullable=True),
        sa.Column('overview_video_vendor_url', sa.String(length=1024), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['updated_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'plugin_integrations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('api_key_hash', sa.String(length=64), nullable=False),
        sa.Column('api_key_prefix', sa.String(length=32), nullable=False),
        sa.Column('fee_per_order', sa.Numeric(12, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_plugin_integrations_vendor_id', 'plugin_integrations', ['vendor_id'])
    op.create_index('ix_plugin_integrations_api_key_hash', 'plugin_integrations', ['api_key_hash'], unique=True)

    # ============================================================================
    # Orders: header, lines, per-store fan-out, payout ledger
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=64), nullable=False),
        sa.Column('order_type', sa.String(length=16), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('sender_name', sa.String(length=255), nullable=False),
        sa.Column('sender_email', sa.String(length=255), nullable=False),
        sa.Column('sender_phone', sa.String(length=32), nullable=True),
        sa.Column('sender_address', sa.Text(), nullable=False),
        sa.Column('receiver_name', sa.String(length=255), nullable=True),
        sa.Column('receiver_email', sa.String(length=255), nullable=True),
        sa.Column('receiver_phone', sa.String(length=32), nullable=True),
        sa.Column('receiver_address', sa.Text(), nullable=True),
        sa.Column('shipping_address', sa.Text(), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax', sa.Numeric(12, 2), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('gift_token', sa.String(length=64), nullable=True),
        sa.Column('gift_link', sa.String(length=2048), nullable=True),
        sa.Column('gift_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('plugin_integration_id', sa.Integer(), nullable=True),
        sa.Column('external_order_id', sa.String(length=255), nullable=True),
        sa.Column('plugin_fee', sa.Numeric(12, 2), nullable=True),
        *_timestamps(),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dispatched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("order_type IN ('self', 'gift', 'plugin')", name='ck_orders_order_type'),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'dispatched', 'delivered', 'cancelled')",
            name='ck_orders_status'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['plugin_integration_id'], ['plugin_integrations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('plugin_integration_id', 'external_order_id', name='uq_orders_plugin_external'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_gift_token', 'orders', ['gift_token'], unique=True)
    op.create_index('ix_orders_plugin_integration_id', 'orders', ['plugin_integration_id'])
    op.create_index('ix_orders_user_created', 'orders', ['user_id', 'created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('item_type', sa.String(length=16), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('service_id', sa.Integer(), nullable=True),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
        sa.CheckConstraint(
            "(item_type = 'product' AND service_id IS NULL)"
            " OR (item_type = 'service' AND product_id IS NULL)"
            " OR (item_type = 'external' AND product_id IS NULL AND service_id IS NULL)",
            name='ck_order_items_single_ref',
        ),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['service_id'], ['services.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])
    op.create_index('ix_order_items_service_id', 'order_items', ['service_id'])
    op.create_index('ix_order_items_store_id', 'order_items', ['store_id'])

    op.create_table(
        'vendor_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payout_status', sa.String(length=16), nullable=False),
        sa.Column('payout_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('commission_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('vendor_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('transfer_id', sa.String(length=255), nullable=True),
        sa.Column('payout_attempts', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'dispatched', 'delivered', 'cancelled')",
            name='ck_vendor_orders_status'),
        sa.CheckConstraint("payout_status IN ('pending', 'paid', 'failed')",
                           name='ck_vendor_orders_payout_status'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'store_id', name='uq_vendor_orders_order_store'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendor_orders_order_id', 'vendor_orders', ['order_id'])
    op.create_index('ix_vendor_orders_vendor_id', 'vendor_orders', ['vendor_id'])
    op.create_index('ix_vendor_orders_store_id', 'vendor_orders', ['store_id'])
    op.create_index('ix_vendor_orders_payout', 'vendor_orders', ['status', 'payout_status'])

    op.create_table(
        'vendor_payouts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_order_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('order_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('commission_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('vendor_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('transfer_id', sa.String(length=255), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['vendor_order_id'], ['vendor_orders.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vendor_order_id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendor_payouts_order_id', 'vendor_payouts', ['order_id'])
    op.create_index('ix_vendor_payouts_vendor_id', 'vendor_payouts', ['vendor_id'])
    op.create_index('ix_vendor_payouts_store_id', 'vendor_payouts', ['store_id'])

    # ============================================================================
    # Engagement
    # ============================================================================
    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('service_id', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_reviews_rating_range'),
        sa.CheckConstraint('(product_id IS NULL) <> (service_id IS NULL)', name='ck_reviews_single_ref'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['service_id'], ['services.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_reviews_user_id', 'reviews', ['user_id'])
    op.create_index('ix_reviews_order_id', 'reviews', ['order_id'])
    op.create_index('ix_reviews_product_id', 'reviews', ['product_id'])
    op.create_index('ix_reviews_service_id', 'reviews', ['service_id'])

    op.create_table(
        'wishlists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=64), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_wishlists_user_id', 'wishlists', ['user_id'])

    op.create_table(
        'wishlist_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wishlist_id', sa.Integer(), nullable=False),
        sa.Column('item_type', sa.String(length=16), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('service_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint('(product_id IS NULL) <> (service_id IS NULL)',
                           name='ck_wishlist_items_single_ref'),
        sa.ForeignKeyConstraint(['wishlist_id'], ['wishlists.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['service_id'], ['services.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_wishlist_items_wishlist_id', 'wishlist_items', ['wishlist_id'])

    # ============================================================================
    # Inquiries and carts
    # ============================================================================
    op.create_table(
        'contact_queries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'plugin_queries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('query', sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'cart_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_key', sa.String(length=128), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cart_snapshots_owner_key', 'cart_snapshots', ['owner_key'], unique=True)


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('cart_snapshots')
    op.drop_table('plugin_queries')
    op.drop_table('contact_queries')
    op.drop_table('wishlist_items')
    op.drop_table('wishlists')
    op.drop_table('reviews')
    op.drop_table('vendor_payouts')
    op.drop_table('vendor_orders')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('plugin_integrations')
    op.drop_table('platform_settings')
    op.drop_table('services')
    op.drop_table('products')
    op.drop_table('stores')
    op.drop_table('vendors')
    op.drop_table('security_events')
    op.drop_table('session_tokens')
    op.drop_table('users')
