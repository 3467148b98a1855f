# ruff: noqa: I001
"""Ledger core tables: accounts, import batches, transactions, checkpoints.

Revision ID: 0001_ledger_core
Revises: None
Create Date: 2026-10-16
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps(*names: str) -> list[sa.Column]:
    return [
        sa.Column(
            name,
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        )
        for name in names
    ]


def upgrade() -> None:
    # sr_accounts
    op.create_table(
        "sr_accounts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("bank_name", sa.Text(), nullable=True),
        sa.Column(
            "currency_code",
            sa.CHAR(3),
            nullable=False,
            server_default=sa.text("'VND'"),
        ),
        *_timestamps("created_at"),
    )

    # sr_import_batches
    op.create_table(
        "sr_import_batches",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("sr_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("total_records", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("transaction_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("duplicate_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'completed'")),
        *_timestamps("imported_at"),
        sa.Column("rolled_back_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status in ('completed','rolled_back')",
            name="ck_sr_import_batch_status",
        ),
    )

    # sr_transactions
    op.create_table(
        "sr_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("sr_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reference", sa.String(100), nullable=True),
        sa.Column("branch", sa.Text(), nullable=True),
        sa.Column("running_balance", sa.Numeric(18, 2), nullable=True),
        sa.Column(
            "is_balance_adjustment",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "import_batch_id",
            sa.BigInteger(),
            sa.ForeignKey("sr_import_batches.id"),
            nullable=True,
        ),
        *_timestamps("created_at"),
        sa.CheckConstraint("direction in ('debit','credit')", name="ck_sr_tx_direction"),
        sa.CheckConstraint("amount >= 0", name="ck_sr_tx_amount_non_negative"),
    )
    op.create_index(
        "ix_sr_tx_account_date_seq",
        "sr_transactions",
        ["account_id", "transaction_date", "sequence"],
    )
    op.create_index("ix_sr_tx_import_batch", "sr_transactions", ["import_batch_id"])

    # sr_checkpoints
    op.create_table(
        "sr_checkpoints",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.BigInteger(),
            sa.ForeignKey("sr_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("checkpoint_date", sa.Date(), nullable=False),
        sa.Column("declared_balance", sa.Numeric(18, 2), nullable=False),
        sa.Column(
            "calculated_balance",
            sa.Numeric(18, 2),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "adjustment_amount",
            sa.Numeric(18, 2),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "is_reconciled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "import_batch_id",
            sa.BigInteger(),
            sa.ForeignKey("sr_import_batches.id"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps("created_at", "updated_at"),
    )
    op.create_index(
        "ix_sr_checkpoint_account_date",
        "sr_checkpoints",
        ["account_id", "checkpoint_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_sr_checkpoint_account_date", table_name="sr_checkpoints")
    op.drop_table("sr_checkpoints")
    op.drop_index("ix_sr_tx_import_batch", table_name="sr_transactions")
    op.drop_index("ix_sr_tx_account_date_seq", table_name="sr_transactions")
    op.drop_table("sr_transactions")
    op.drop_table("sr_import_batches")
    op.drop_table("sr_accounts")
