"""add canceled_reason and push_subscriptions

Revision ID: 8c4e0b5a91d2
Revises: 3f1a9c2d7b10
Create Date: 2026-09-14 22:41:07.302118
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c4e0b5a91d2'
down_revision: Union[str, Sequence[str], None] = '3f1a9c2d7b10'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # причина отмены из админки
    op.add_column('orders', sa.Column('canceled_reason', sa.String(length=300), nullable=True))

    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_id", sa.String(32), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("endpoint", sa.String(1024), nullable=False),
        sa.Column("p256dh", sa.String(256), nullable=False),
        sa.Column("auth", sa.String(256), nullable=False),
        sa.Column("expiration_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("order_id", "endpoint", name="uq_push_subscriptions_order_endpoint"),
    )
    op.create_index("ix_push_subscriptions_order_id", "push_subscriptions", ["order_id"])


def downgrade() -> None:
    op.drop_table('push_subscriptions')
    op.drop_column('orders', 'canceled_reason')
