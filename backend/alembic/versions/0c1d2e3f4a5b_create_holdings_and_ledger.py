"""create_holdings_and_ledger

Revision ID: 0c1d2e3f4a5b
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0c1d2e3f4a5b"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "holdings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_ref", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("ticker", sa.String(length=20), nullable=False),
        sa.Column("instrument_type", sa.String(length=10), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=20, scale=10), nullable=False),
        sa.Column("unit_price_at_acquisition", sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column("exchange_rate_at_acquisition", sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column("payment_currency", sa.String(length=3), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name="ck_holdings_quantity_positive"),
        sa.CheckConstraint(
            "unit_price_at_acquisition > 0", name="ck_holdings_unit_price_positive"
        ),
    )
    op.create_index("ix_holdings_owner_ref", "holdings", ["owner_ref"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("holding_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("value_at_time", sa.Numeric(precision=24, scale=10), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["holding_id"], ["holdings.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_ledger_entries_holding_ts",
        "ledger_entries",
        ["holding_id", "timestamp"],
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_entries_holding_ts", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_index("ix_holdings_owner_ref", table_name="holdings")
    op.drop_table("holdings")
