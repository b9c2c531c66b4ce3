"""orders and prize counts

Revision ID: 0001_orders_and_prize_counts
Revises:
Create Date: 2026-01-20 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_orders_and_prize_counts"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "orders",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("phone", sa.String(length=10), nullable=False),
        sa.Column("registration_date", sa.Date(), nullable=False),
        sa.Column("branch", sa.String(length=50), nullable=False),
        sa.Column("room", sa.String(length=50), nullable=False),
        sa.Column("duration_hours", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=True),
        sa.Column("is_grand_eligible", sa.Boolean(), nullable=False),
        sa.Column("grand_draw_serial", sa.String(length=6), nullable=True),
        sa.Column("prize_id", sa.String(length=32), nullable=False),
        sa.Column("prize_name", sa.String(length=100), nullable=False),
        sa.Column("prize_kind", sa.String(length=10), nullable=False),
        sa.Column("redeemed", sa.Boolean(), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("revealed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(is_grand_eligible AND grand_draw_serial IS NOT NULL) OR "
            "(NOT is_grand_eligible AND grand_draw_serial IS NULL)",
            name=op.f("ck_orders_serial_iff_eligible"),
        ),
        sa.CheckConstraint(
            "prize_kind IN ('none','win')", name=op.f("ck_orders_prize_kind_enum")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_orders")),
        sa.UniqueConstraint("phone", "registration_date", name="uq_orders_phone_date"),
    )
    op.create_index(op.f("ix_orders_phone"), "orders", ["phone"], unique=False)
    op.create_index(
        "ix_orders_grand_draw_serial", "orders", ["grand_draw_serial"], unique=False
    )

    op.create_table(
        "prize_counts",
        sa.Column("prize_id", sa.String(length=32), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "count >= 0", name=op.f("ck_prize_counts_count_non_negative")
        ),
        sa.PrimaryKeyConstraint("prize_id", name=op.f("pk_prize_counts")),
    )


def downgrade() -> None:
    op.drop_table("prize_counts")
    op.drop_index("ix_orders_grand_draw_serial", table_name="orders")
    op.drop_index(op.f("ix_orders_phone"), table_name="orders")
    op.drop_table("orders")
