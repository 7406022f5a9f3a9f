"""create products

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'products',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, index=True),
        sa.Column('value', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('minQuantity', sa.Integer, nullable=False),
        sa.Column('image', sa.String(255), nullable=True),
        sa.CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
    )

def downgrade():
    op.drop_table('products')
