"""sales engine schema

Revision ID: c7d1e2f3a4b5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the shop/salesman directory, the product catalog with its stock
movement trail, sales, commission rules and the commission ledger.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c7d1e2f3a4b5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # shops / salesmen
    # ============================================================================
    op.create_table(
        'shops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('owner_name', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'salesmen',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_salesmen_shop_id', 'salesmen', ['shop_id'])
    op.create_index('ix_salesmen_shop_active', 'salesmen', ['shop_id', 'is_active'])

    # ============================================================================
    # products: catalog + current stock (never negative)
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('base_price_cents', sa.Integer(), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_shop_id', 'products', ['shop_id'])
    op.create_index('ix_products_shop_name', 'products', ['shop_id', 'name'])

    # ============================================================================
    # sales / sale_items
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('salesman_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('rejection_reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['salesman_id'], ['salesmen.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_shop_id', 'sales', ['shop_id'])
    op.create_index('ix_sales_salesman_id', 'sales', ['salesman_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])
    op.create_index('ix_sales_shop_status_created', 'sales', ['shop_id', 'status', 'created_at'])
    op.create_index('ix_sales_salesman_status', 'sales', ['salesman_id', 'status'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sold_at_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sale_items_quantity_positive'),
        sa.CheckConstraint('sold_at_cents > 0', name='ck_sale_items_sold_at_positive'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])

    # ============================================================================
    # inventory_movements: append-only stock trail
    # ============================================================================
    op.create_table(
        'inventory_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_movements_shop_id', 'inventory_movements', ['shop_id'])
    op.create_index('ix_inventory_movements_product_id', 'inventory_movements', ['product_id'])
    op.create_index('ix_inventory_movements_sale_id', 'inventory_movements', ['sale_id'])
    op.create_index('ix_inventory_movements_type', 'inventory_movements', ['type'])
    op.create_index('ix_inventory_movements_product_occurred', 'inventory_movements',
                    ['product_id', 'occurred_at'])

    # ============================================================================
    # commission_rules / salesman_commission_rules
    # ============================================================================
    op.create_table(
        'commission_rules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('value', sa.Numeric(12, 4), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_commission_rules_type', 'commission_rules', ['type'])

    op.create_table(
        'salesman_commission_rules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('salesman_id', sa.Integer(), nullable=False),
        sa.Column('commission_rule_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('unassigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['salesman_id'], ['salesmen.id'], ),
        sa.ForeignKeyConstraint(['commission_rule_id'], ['commission_rules.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_salesman_commission_rules_salesman_id', 'salesman_commission_rules', ['salesman_id'])
    # At most one active assignment per salesman
    op.create_index(
        'uq_salesman_commission_rules_active',
        'salesman_commission_rules',
        ['salesman_id'],
        unique=True,
        sqlite_where=sa.text('is_active = 1'),
        postgresql_where=sa.text('is_active'),
    )

    # ============================================================================
    # commissions: ledger, one row per approved salesman sale
    # ============================================================================
    op.create_table(
        'commissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('salesman_id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('commission_rule_id', sa.Integer(), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('amount_cents >= 0', name='ck_commissions_amount_non_negative'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['salesman_id'], ['salesmen.id'], ),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['commission_rule_id'], ['commission_rules.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', name='uq_commissions_sale'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_commissions_salesman_id', 'commissions', ['salesman_id'])
    op.create_index('ix_commissions_shop_id', 'commissions', ['shop_id'])
    op.create_index('ix_commissions_is_paid', 'commissions', ['is_paid'])
    op.create_index('ix_commissions_salesman_created', 'commissions', ['salesman_id', 'created_at'])
    op.create_index('ix_commissions_shop_created', 'commissions', ['shop_id', 'created_at'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('commissions')
    op.drop_table('salesman_commission_rules')
    op.drop_table('commission_rules')
    op.drop_table('inventory_movements')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('products')
    op.drop_table('salesmen')
    op.drop_table('shops')
