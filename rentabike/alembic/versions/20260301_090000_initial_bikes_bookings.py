"""Initial schema: bikes and bookings

Revision ID: 20260301090000
Revises:
Create Date: 2026-03-01 09:00:00

Notes:
- bookings.start_at / end_at store the normalized closed interval
  (00:00 / 23:59 when no pickup / dropoff time).
- On PostgreSQL an exclusion constraint rejects overlapping pending/confirmed
  bookings for the same bike; the API reports the violation as a booking conflict.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20260301090000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def upgrade() -> None:
    op.create_table(
        "bikes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price_per_hour", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("price_per_day", sa.Numeric(10, 2), nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_bikes_id", "bikes", ["id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bike_id", sa.Integer(), sa.ForeignKey("bikes.id"), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("pickup_time", sa.Time(), nullable=True),
        sa.Column("dropoff_time", sa.Time(), nullable=True),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("end_at", sa.DateTime(), nullable=False),
        sa.Column("duration_hours", sa.Numeric(8, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_bike_id", "bookings", ["bike_id"])
    op.create_index("ix_bookings_customer_email", "bookings", ["customer_email"])
    op.create_index("ix_bookings_start_date", "bookings", ["start_date"])
    op.create_index("ix_bookings_end_date", "bookings", ["end_date"])
    op.create_index("ix_bookings_bike_status", "bookings", ["bike_id", "status"])
    op.create_index("ix_bookings_bike_start_at", "bookings", ["bike_id", "start_at"])
    op.create_index("ix_bookings_status_created_at", "bookings", ["status", "created_at"])

    if _is_postgres():
        op.execute(sa.text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        op.execute(
            sa.text(
                "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_active_overlap "
                "EXCLUDE USING gist (bike_id WITH =, tsrange(start_at, end_at, '[]') WITH &&) "
                "WHERE (status IN ('pending', 'confirmed'))"
            )
        )


def downgrade() -> None:
    if _is_postgres():
        op.execute(sa.text("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_active_overlap"))
    op.drop_index("ix_bookings_status_created_at", table_name="bookings")
    op.drop_index("ix_bookings_bike_start_at", table_name="bookings")
    op.drop_index("ix_bookings_bike_status", table_name="bookings")
    op.drop_index("ix_bookings_end_date", table_name="bookings")
    op.drop_index("ix_bookings_start_date", table_name="bookings")
    op.drop_index("ix_bookings_customer_email", table_name="bookings")
    op.drop_index("ix_bookings_bike_id", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_bikes_id", table_name="bikes")
    op.drop_table("bikes")
