"""
Add commission report tables: sales source, per-week adjustments and the
published report log.

Revision ID: 001_commission_tables
Revises:
Create Date: 2025-01-15
"""

from alembic import op
import sqlalchemy as sa

revision = "001_commission_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sale_id", sa.String(100), nullable=True),
        sa.Column("sale_date", sa.String(40), nullable=True),
        sa.Column("account_number", sa.String(100), nullable=True),
        sa.Column("stock_number", sa.String(100), nullable=True),
        sa.Column("vin", sa.String(32), nullable=True),
        sa.Column("vin_last4", sa.String(8), nullable=True),
        sa.Column("salesperson", sa.String(120), nullable=True),
        sa.Column("salesperson_split", sa.JSON(), nullable=True),
        sa.Column("sale_type", sa.String(40), nullable=True),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("sale_down_payment", sa.Numeric(12, 2), nullable=True),
        sa.Column("down_payment", sa.Numeric(12, 2), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("make", sa.String(80), nullable=True),
        sa.Column("model", sa.String(80), nullable=True),
        sa.Column("trim", sa.String(80), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_sales_sale_id", "sales", ["sale_id"])
    op.create_index("ix_sales_sale_date", "sales", ["sale_date"])

    op.create_table(
        "commission_collections_bonus",
        sa.Column("week_key", sa.String(10), primary_key=True),
        sa.Column("collections_bonus", sa.Numeric(10, 2), nullable=False),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_commission_collections_bonus_locked", "commission_collections_bonus", ["locked"]
    )

    op.create_table(
        "commission_manual_overrides",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("week_key", sa.String(10), nullable=False),
        sa.Column("row_key", sa.String(500), nullable=False),
        sa.Column("value", sa.String(40), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_commission_manual_overrides_week_key", "commission_manual_overrides", ["week_key"]
    )
    op.create_index(
        "ix_commission_manual_overrides_week_row",
        "commission_manual_overrides",
        ["week_key", "row_key"],
        unique=True,
    )

    op.create_table(
        "commission_row_notes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("week_key", sa.String(10), nullable=False),
        sa.Column("row_key", sa.String(500), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_commission_row_notes_week_key", "commission_row_notes", ["week_key"])
    op.create_index(
        "ix_commission_row_notes_week_row",
        "commission_row_notes",
        ["week_key", "row_key"],
        unique=True,
    )

    op.create_table(
        "commission_report_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("logged_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("payload", sa.JSON(), nullable=False),
    )
    op.create_index("ix_commission_report_logs_report_date", "commission_report_logs", ["report_date"])


def downgrade():
    op.drop_index("ix_commission_report_logs_report_date", "commission_report_logs")
    op.drop_table("commission_report_logs")
    op.drop_index("ix_commission_row_notes_week_row", "commission_row_notes")
    op.drop_index("ix_commission_row_notes_week_key", "commission_row_notes")
    op.drop_table("commission_row_notes")
    op.drop_index("ix_commission_manual_overrides_week_row", "commission_manual_overrides")
    op.drop_index("ix_commission_manual_overrides_week_key", "commission_manual_overrides")
    op.drop_table("commission_manual_overrides")
    op.drop_index("ix_commission_collections_bonus_locked", "commission_collections_bonus")
    op.drop_table("commission_collections_bonus")
    op.drop_index("ix_sales_sale_date", "sales")
    op.drop_index("ix_sales_sale_id", "sales")
    op.drop_table("sales")
