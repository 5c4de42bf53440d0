"""initial schema

Revision ID: b1e0a7c2d301
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the bevledger schema:
- categories, tracked_items: materials and products in one table (family)
- opening_stocks: balance snapshots, unique per (item_id, date)
- stock_inflows, stock_outflows: movements; outflows hold unsigned magnitudes
- suppliers, supply_items, deliveries: purchasing
- marketers, orders, order_lines, payments: sales
- expenses: money out
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b1e0a7c2d301'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # Stock
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_categories'),
        sa.UniqueConstraint('name', name='uq_categories_name'),
    )

    op.create_table(
        'tracked_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('family', sa.String(length=16), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('unit', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'],
                                name='fk_tracked_items_category_id_categories'),
        sa.PrimaryKeyConstraint('id', name='pk_tracked_items'),
        sa.UniqueConstraint('family', 'name', name='uq_tracked_items_family_name'),
    )
    op.create_index('ix_tracked_items_family', 'tracked_items', ['family'])
    op.create_index('ix_tracked_items_family_category', 'tracked_items', ['family', 'category_id'])

    # ============================================================================
    # Purchasing (deliveries before stock_inflows: inflows reference them)
    # ============================================================================
    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_suppliers'),
        sa.UniqueConstraint('name', name='uq_suppliers_name'),
    )

    op.create_table(
        'supply_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('amount_paid', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_supply_items_quantity'),
        sa.CheckConstraint('amount_paid >= 0', name='ck_supply_items_amount_paid'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'],
                                name='fk_supply_items_supplier_id_suppliers'),
        sa.ForeignKeyConstraint(['item_id'], ['tracked_items.id'],
                                name='fk_supply_items_item_id_tracked_items'),
        sa.PrimaryKeyConstraint('id', name='pk_supply_items'),
    )
    op.create_index('ix_supply_items_supplier_id', 'supply_items', ['supplier_id'])
    op.create_index('ix_supply_items_item_id', 'supply_items', ['item_id'])

    op.create_table(
        'deliveries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supply_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_deliveries_quantity'),
        sa.ForeignKeyConstraint(['supply_item_id'], ['supply_items.id'],
                                name='fk_deliveries_supply_item_id_supply_items'),
        sa.PrimaryKeyConstraint('id', name='pk_deliveries'),
    )
    op.create_index('ix_deliveries_supply_item_id', 'deliveries', ['supply_item_id'])

    # ============================================================================
    # Balances & movements
    # ============================================================================
    op.create_table(
        'opening_stocks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_opening_stocks_quantity'),
        sa.ForeignKeyConstraint(['item_id'], ['tracked_items.id'],
                                name='fk_opening_stocks_item_id_tracked_items'),
        sa.PrimaryKeyConstraint('id', name='pk_opening_stocks'),
        # One snapshot per item per day; concurrent duplicates fail here
        sa.UniqueConstraint('item_id', 'date', name='uq_opening_stocks_item_date'),
    )
    op.create_index('ix_opening_stocks_item_id', 'opening_stocks', ['item_id'])

    op.create_table(
        'stock_inflows',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=120), nullable=False),
        sa.Column('delivery_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.String(length=120), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_inflows_quantity'),
        sa.ForeignKeyConstraint(['item_id'], ['tracked_items.id'],
                                name='fk_stock_inflows_item_id_tracked_items'),
        sa.ForeignKeyConstraint(['delivery_id'], ['deliveries.id'],
                                name='fk_stock_inflows_delivery_id_deliveries'),
        sa.PrimaryKeyConstraint('id', name='pk_stock_inflows'),
    )
    op.create_index('ix_stock_inflows_item_date', 'stock_inflows', ['item_id', 'date'])
    op.create_index('ix_stock_inflows_delivery_id', 'stock_inflows', ['delivery_id'])

    op.create_table(
        'stock_outflows',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=120), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.String(length=120), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_outflows_quantity'),
        sa.ForeignKeyConstraint(['item_id'], ['tracked_items.id'],
                                name='fk_stock_outflows_item_id_tracked_items'),
        sa.PrimaryKeyConstraint('id', name='pk_stock_outflows'),
    )
    op.create_index('ix_stock_outflows_item_date', 'stock_outflows', ['item_id', 'date'])

    # ============================================================================
    # Sales
    # ============================================================================
    op.create_table(
        'marketers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_marketers'),
    )

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('marketer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['marketer_id'], ['marketers.id'],
                                name='fk_orders_marketer_id_marketers'),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
    )
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_marketer_date', 'orders', ['marketer_id', 'order_date'])

    op.create_table(
        'order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_lines_quantity'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'],
                                name='fk_order_lines_order_id_orders'),
        sa.ForeignKeyConstraint(['item_id'], ['tracked_items.id'],
                                name='fk_order_lines_item_id_tracked_items'),
        sa.PrimaryKeyConstraint('id', name='pk_order_lines'),
    )
    op.create_index('ix_order_lines_order_id', 'order_lines', ['order_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('marketer_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('amount_paid', sa.Integer(), nullable=False),
        sa.Column('mode_of_payment', sa.String(length=32), nullable=False),
        sa.Column('bank_name', sa.String(length=120), nullable=True),
        sa.Column('mobile_provider', sa.String(length=32), nullable=True),
        sa.Column('purpose', sa.String(length=255), nullable=True),
        sa.Column('paid_on', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount_paid > 0', name='ck_payments_amount'),
        sa.ForeignKeyConstraint(['marketer_id'], ['marketers.id'],
                                name='fk_payments_marketer_id_marketers'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'],
                                name='fk_payments_order_id_orders'),
        sa.PrimaryKeyConstraint('id', name='pk_payments'),
    )
    op.create_index('ix_payments_marketer_id', 'payments', ['marketer_id'])
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])
    op.create_index('ix_payments_paid_on', 'payments', ['paid_on'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('amount_spent', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=False),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('item', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('amount_spent > 0', name='ck_expenses_amount'),
        sa.PrimaryKeyConstraint('id', name='pk_expenses'),
    )
    op.create_index('ix_expenses_date', 'expenses', ['date'])
    op.create_index('ix_expenses_category_date', 'expenses', ['category', 'date'])


def downgrade():
    op.drop_table('expenses')
    op.drop_table('payments')
    op.drop_table('order_lines')
    op.drop_table('orders')
    op.drop_table('marketers')
    op.drop_table('stock_outflows')
    op.drop_table('stock_inflows')
    op.drop_table('opening_stocks')
    op.drop_table('deliveries')
    op.drop_table('supply_items')
    op.drop_table('suppliers')
    op.drop_table('tracked_items')
    op.drop_table('categories')
