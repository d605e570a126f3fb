"""Create delivery_record, product and product_variant tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'delivery_record',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('row_id', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='new'),
        sa.Column('tracking', sa.Text(), nullable=True),
        sa.Column('delivery_type', sa.Text(), nullable=False, server_default='api_dhd'),
        sa.Column('row_json', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "delivery_type IN ('api_dhd', 'api_sook', 'livreur')",
            name='ck_delivery_record_delivery_type'
        ),
    )
    op.create_index('ix_delivery_record_row_id', 'delivery_record', ['row_id'], unique=True)
    op.create_index('ix_delivery_record_status', 'delivery_record', ['status'])

    op.create_table(
        'product',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('code', sa.Text(), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('cost_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('sale_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('image', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_code', 'product', ['code'])
    op.create_index('ix_product_name', 'product', ['name'])

    # quantity is signed: over-sold variants go negative
    op.create_table(
        'product_variant',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('product_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['product.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_product_variant_product_id', 'product_variant', ['product_id'])


def downgrade():
    op.drop_index('ix_product_variant_product_id', table_name='product_variant')
    op.drop_table('product_variant')
    op.drop_index('ix_product_name', table_name='product')
    op.drop_index('ix_product_code', table_name='product')
    op.drop_table('product')
    op.drop_index('ix_delivery_record_status', table_name='delivery_record')
    op.drop_index('ix_delivery_record_row_id', table_name='delivery_record')
    op.drop_table('delivery_record')
