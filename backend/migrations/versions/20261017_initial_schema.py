"""Initial schema: products, deleted product archive, estimates

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17

This migration adds:
1. products (descriptive columns + JSON history lists)
2. deleted_products (soft-delete archive, document snapshot)
3. estimates and estimate_lines
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_initial'
down_revision = None
branch_labels = None
depends_on = None


HISTORY_COLUMNS = (
    'photo_history',
    'cost_history',
    'wholesale_price_history',
    'sale_price_history',
    'inbound_records',
    'outbound_records',
    'voided_wholesale_price_history',
    'voided_inbound_records',
    'voided_outbound_records',
)


def upgrade():
    # ==========================================================================
    # 1. PRODUCTS TABLE
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seq_no', sa.Integer(), nullable=False),
        sa.Column('product_code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('category1', sa.String(length=128), nullable=True),
        sa.Column('category2', sa.String(length=128), nullable=True),
        sa.Column('product_category2', sa.String(length=128), nullable=True),
        sa.Column('brand', sa.String(length=255), nullable=True),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('width', sa.String(length=32), nullable=True),
        sa.Column('height', sa.String(length=32), nullable=True),
        sa.Column('bead_count', sa.String(length=32), nullable=True),
        sa.Column('bead_size', sa.String(length=32), nullable=True),
        sa.Column('raw_material', sa.String(length=255), nullable=True),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('season_event', sa.String(length=128), nullable=True),
        sa.Column('first_delivery_name1', sa.String(length=255), nullable=True),
        sa.Column('first_delivery_name2', sa.String(length=255), nullable=True),
        *[sa.Column(name, sa.JSON(), nullable=False) for name in HISTORY_COLUMNS],
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_seq_no'), ['seq_no'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_product_code'), ['product_code'], unique=True)
        batch_op.create_index(batch_op.f('ix_products_brand'), ['brand'], unique=False)
        batch_op.create_index('ix_products_category', ['category1', 'category2'], unique=False)

    # ==========================================================================
    # 2. DELETED PRODUCTS (ARCHIVE)
    # ==========================================================================
    op.create_table('deleted_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('original_id', sa.Integer(), nullable=False),
        sa.Column('product_code', sa.String(length=64), nullable=True),
        sa.Column('document', sa.JSON(), nullable=False),
        sa.Column('deleted_at', sa.String(length=19), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('deleted_products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_deleted_products_original_id'), ['original_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_deleted_products_product_code'), ['product_code'], unique=False)
        batch_op.create_index(batch_op.f('ix_deleted_products_deleted_at'), ['deleted_at'], unique=False)

    # ==========================================================================
    # 3. ESTIMATES
    # ==========================================================================
    op.create_table('estimates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('estimates', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_estimates_created_at'), ['created_at'], unique=False)

    op.create_table('estimate_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('estimate_id', sa.Integer(), nullable=False),
        sa.Column('line_no', sa.Integer(), nullable=False),
        sa.Column('product_code', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('size', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(['estimate_id'], ['estimates.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('estimate_id', 'line_no', name='uq_estimate_lines_estimate_line'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('estimate_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_estimate_lines_estimate_id'), ['estimate_id'], unique=False)


def downgrade():
    with op.batch_alter_table('estimate_lines', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_estimate_lines_estimate_id'))
    op.drop_table('estimate_lines')

    with op.batch_alter_table('estimates', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_estimates_created_at'))
    op.drop_table('estimates')

    with op.batch_alter_table('deleted_products', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_deleted_products_deleted_at'))
        batch_op.drop_index(batch_op.f('ix_deleted_products_product_code'))
        batch_op.drop_index(batch_op.f('ix_deleted_products_original_id'))
    op.drop_table('deleted_products')

    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.drop_index('ix_products_category')
        batch_op.drop_index(batch_op.f('ix_products_brand'))
        batch_op.drop_index(batch_op.f('ix_products_product_code'))
        batch_op.drop_index(batch_op.f('ix_products_seq_no'))
    op.drop_table('products')
