"""Create transactions, recurring groups and per-user override tables.

Revision ID: 5e2a9c71b4d8
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5e2a9c71b4d8"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # 1) Recurring groups (referenced by transactions).
    op.create_table(
        "recurring_groups",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("merchant_normalized", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("average_amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("amount_variance", sa.Float(), nullable=False),
        sa.Column("interval", sa.String(length=20), nullable=False),
        sa.Column("last_transaction_date", sa.Date(), nullable=False),
        sa.Column("next_expected_date", sa.Date(), nullable=False),
        sa.Column("transaction_count", sa.Integer(), nullable=False),
        sa.Column("total_amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_recurring_groups_user_id", "recurring_groups", ["user_id"])
    op.create_index(
        "ix_recurring_groups_user_id_is_active", "recurring_groups", ["user_id", "is_active"]
    )
    # One active group per (user, merchant); inactive history rows are unconstrained.
    op.create_index(
        "uq_recurring_groups_active_user_merchant",
        "recurring_groups",
        ["user_id", "merchant_normalized"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    # 2) Transactions.
    op.create_table(
        "transactions",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("source", sa.String(length=10), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("direction", sa.String(length=6), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("txn_date", sa.Date(), nullable=False),
        sa.Column("merchant_raw_text", sa.String(length=255), nullable=False),
        sa.Column("merchant_normalized", sa.String(length=255), nullable=True),
        sa.Column("merchant_confidence", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("account_type", sa.String(length=20), nullable=False),
        sa.Column("account_last4", sa.String(length=4), nullable=True),
        sa.Column("bank_name", sa.String(length=50), nullable=True),
        sa.Column("reference_id", sa.String(length=100), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("category_confidence", sa.Float(), nullable=False),
        sa.Column("category_method", sa.String(length=30), nullable=False),
        sa.Column("overall_confidence_score", sa.Float(), nullable=False),
        sa.Column("duplicate_hash", sa.String(length=64), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.Column("recurring_group_id", sa.Uuid(), nullable=True),
        sa.Column("user_corrected_category", sa.String(length=100), nullable=True),
        sa.Column("user_corrected_merchant", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["recurring_group_id"], ["recurring_groups.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "duplicate_hash", name="uq_transactions_user_duplicate_hash"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_source", "transactions", ["source"])
    op.create_index("ix_transactions_category", "transactions", ["category"])
    op.create_index("ix_transactions_recurring_group_id", "transactions", ["recurring_group_id"])
    op.create_index("ix_transactions_user_id_txn_date", "transactions", ["user_id", "txn_date"])
    op.create_index(
        "ix_transactions_user_id_merchant_normalized",
        "transactions",
        ["user_id", "merchant_normalized"],
    )

    # 3) Per-user correction overlays.
    op.create_table(
        "merchant_alias_overrides",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("alias_key", sa.String(length=255), nullable=False),
        sa.Column("merchant_name", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "alias_key", name="uq_alias_override_user_alias_key"),
    )
    op.create_table(
        "merchant_category_overrides",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("merchant_key", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "merchant_key", name="uq_category_override_user_merchant_key"),
    )


def downgrade() -> None:
    op.drop_table("merchant_category_overrides")
    op.drop_table("merchant_alias_overrides")

    op.drop_index("ix_transactions_user_id_merchant_normalized", table_name="transactions")
    op.drop_index("ix_transactions_user_id_txn_date", table_name="transactions")
    op.drop_index("ix_transactions_recurring_group_id", table_name="transactions")
    op.drop_index("ix_transactions_category", table_name="transactions")
    op.drop_index("ix_transactions_source", table_name="transactions")
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("uq_recurring_groups_active_user_merchant", table_name="recurring_groups")
    op.drop_index("ix_recurring_groups_user_id_is_active", table_name="recurring_groups")
    op.drop_index("ix_recurring_groups_user_id", table_name="recurring_groups")
    op.drop_table("recurring_groups")
