"""Initial schema: items, lots, movement ledger, references, permissions

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None

# Enums are stored by member name
ITEM_STATUS = ('ACTIVE', 'INACTIVE', 'DEPLETED')
LOT_STATUS = ('AVAILABLE', 'DEPLETED', 'EXPIRED', 'RESERVED', 'BLOCKED')
ELEMENT_TYPE = ('RAW_MATERIAL', 'FINISHED_GOOD')
MOVEMENT_TYPE = ('ENTRY', 'EXIT', 'POSITIVE_ADJUSTMENT', 'NEGATIVE_ADJUSTMENT')
REFERENCE_KIND = ('PURCHASE_ORDER', 'RECEIPT', 'RECIPE', 'CONSUMPTION', 'SALE', 'RETURN')


def _item_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('unit_of_measure', sa.String(length=20), nullable=False),
        sa.Column('current_stock', sa.Numeric(precision=14, scale=3), nullable=False, server_default='0'),
        sa.Column('minimum_stock', sa.Numeric(precision=14, scale=3), nullable=False, server_default='0'),
        sa.Column('status', sa.Enum(*ITEM_STATUS, name='itemstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _lot_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('lot_code', sa.String(length=50), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('quantity_available', sa.Numeric(precision=14, scale=3), nullable=False, server_default='0'),
        sa.Column('received_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('status', sa.Enum(*LOT_STATUS, name='lotstatus'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # Items
    op.create_table(
        'raw_materials',
        *_item_columns(),
        sa.Column('material_type', sa.String(length=50), nullable=False),
        sa.Column('subtype', sa.String(length=50), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.Column('attributes', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_raw_materials_code', 'raw_materials', ['code'], unique=True)
    op.create_index('ix_raw_materials_status', 'raw_materials', ['status'])
    op.create_index('ix_raw_materials_material_type', 'raw_materials', ['material_type'])

    op.create_table(
        'finished_goods',
        *_item_columns(),
        sa.Column('style', sa.String(length=50), nullable=False),
        sa.Column('presentation', sa.String(length=50), nullable=False),
        sa.Column('capacity', sa.Numeric(precision=10, scale=3), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_finished_goods_code', 'finished_goods', ['code'], unique=True)
    op.create_index('ix_finished_goods_status', 'finished_goods', ['status'])
    op.create_index('ix_finished_goods_style', 'finished_goods', ['style'])

    # Lots
    op.create_table(
        'raw_material_lots',
        *_lot_columns(),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('production_date', sa.Date(), nullable=True),
        sa.Column('purchase_order_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['item_id'], ['raw_materials.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('item_id', 'lot_code', name='uq_raw_material_lots_item_code'),
    )
    op.create_index('ix_raw_material_lots_item_id', 'raw_material_lots', ['item_id'])
    op.create_index('ix_raw_material_lots_lot_code', 'raw_material_lots', ['lot_code'])
    op.create_index('ix_raw_material_lots_expiry_date', 'raw_material_lots', ['expiry_date'])
    op.create_index('ix_raw_material_lots_status', 'raw_material_lots', ['status'])

    op.create_table(
        'finished_good_lots',
        *_lot_columns(),
        sa.Column('production_batch_id', sa.Integer(), nullable=True),
        sa.Column('best_before_date', sa.Date(), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(['item_id'], ['finished_goods.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('item_id', 'lot_code', name='uq_finished_good_lots_item_code'),
    )
    op.create_index('ix_finished_good_lots_item_id', 'finished_good_lots', ['item_id'])
    op.create_index('ix_finished_good_lots_lot_code', 'finished_good_lots', ['lot_code'])
    op.create_index('ix_finished_good_lots_expiry_date', 'finished_good_lots', ['expiry_date'])
    op.create_index('ix_finished_good_lots_status', 'finished_good_lots', ['status'])

    # Movement ledger; lot_id has no foreign key so history survives lot deletion
    op.create_table(
        'inventory_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('movement_type', sa.Enum(*MOVEMENT_TYPE, name='movementtype'), nullable=False),
        sa.Column('element_type', sa.Enum(*ELEMENT_TYPE, name='elementtype'), nullable=False),
        sa.Column('element_id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('unit_of_measure', sa.String(length=20), nullable=False),
        sa.Column('document_reference', sa.String(length=50), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(length=100), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('idempotency_key', sa.String(length=100), nullable=True),
        sa.Column('split_index', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', 'split_index', name='uq_inventory_movements_idempotency'),
    )
    op.create_index('ix_inventory_movements_timestamp', 'inventory_movements', ['timestamp'])
    op.create_index('ix_inventory_movements_movement_type', 'inventory_movements', ['movement_type'])
    op.create_index('ix_inventory_movements_element', 'inventory_movements', ['element_type', 'element_id'])
    op.create_index('ix_inventory_movements_lot_id', 'inventory_movements', ['lot_id'])
    op.create_index('ix_inventory_movements_user_id', 'inventory_movements', ['user_id'])
    op.create_index('ix_inventory_movements_idempotency_key', 'inventory_movements', ['idempotency_key'])

    # External documents pointing at items and lots
    op.create_table(
        'inventory_references',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('element_type', sa.Enum(*ELEMENT_TYPE, name='elementtype'), nullable=False),
        sa.Column('element_id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=True),
        sa.Column('reference_kind', sa.Enum(*REFERENCE_KIND, name='referencekind'), nullable=False),
        sa.Column('document_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_references_element', 'inventory_references', ['element_type', 'element_id'])
    op.create_index('ix_inventory_references_lot_id', 'inventory_references', ['lot_id'])

    # Permission grants
    op.create_table(
        'user_permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('permission', sa.String(length=100), nullable=False),
        sa.Column('granted_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'permission', name='uq_user_permissions_user_permission'),
    )
    op.create_index('ix_user_permissions_user_id', 'user_permissions', ['user_id'])


def downgrade():
    op.drop_table('user_permissions')
    op.drop_table('inventory_references')
    op.drop_table('inventory_movements')
    op.drop_table('finished_good_lots')
    op.drop_table('raw_material_lots')
    op.drop_table('finished_goods')
    op.drop_table('raw_materials')
