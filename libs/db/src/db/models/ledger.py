from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CHAR,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BIGINT on Postgres; SQLite only autoincrements an INTEGER PRIMARY KEY (rowid).
_PK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: sr_accounts
# ---------------------------


class SrAccount(Base):
    __tablename__ = "sr_accounts"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    bank_name: Mapped[str | None] = mapped_column(String, nullable=True)
    currency_code: Mapped[str] = mapped_column(
        CHAR(3), nullable=False, server_default=text("'VND'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )


# ---------------------------
# Import batches
# ---------------------------


class SrImportBatch(Base):
    __tablename__ = "sr_import_batches"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("sr_accounts.id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    # Rows seen in the parsed file vs. transactions actually written.
    total_records: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    transaction_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    duplicate_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    status: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'completed'")
    )
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    rolled_back_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(
            "status in ('completed','rolled_back')",
            name="ck_sr_import_batch_status",
        ),
    )


# ---------------------------
# Core: sr_transactions
# ---------------------------


class SrTransaction(Base):
    __tablename__ = "sr_transactions"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("sr_accounts.id", ondelete="CASCADE"), nullable=False
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Insertion order within the account; breaks ties between same-date rows so
    # that balance recomputation is deterministic.
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    direction: Mapped[str] = mapped_column(String, nullable=False)
    # Always non-negative; the sign comes from ``direction``.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    branch: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Running balance exactly as printed on the statement (informational).
    running_balance: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    is_balance_adjustment: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    import_batch_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("sr_import_batches.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )

    __table_args__ = (
        CheckConstraint("direction in ('debit','credit')", name="ck_sr_tx_direction"),
        CheckConstraint("amount >= 0", name="ck_sr_tx_amount_non_negative"),
        Index("ix_sr_tx_account_date_seq", "account_id", "transaction_date", "sequence"),
        Index("ix_sr_tx_import_batch", "import_batch_id"),
    )

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == "credit" else -self.amount


# ---------------------------
# Balance checkpoints
# ---------------------------


class SrCheckpoint(Base):
    __tablename__ = "sr_checkpoints"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("sr_accounts.id", ondelete="CASCADE"), nullable=False
    )
    checkpoint_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Source of truth, supplied by the user or a statement.
    declared_balance: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    # Derived fields, owned by the reconciler.
    calculated_balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, server_default=text("0")
    )
    adjustment_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, server_default=text("0")
    )
    is_reconciled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    # NULL => manual checkpoint; otherwise owned by (and only removable through
    # rollback of) the import batch.
    import_batch_id: Mapped[int | None] = mapped_column(
        _PK, ForeignKey("sr_import_batches.id"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )

    __table_args__ = (
        Index("ix_sr_checkpoint_account_date", "account_id", "checkpoint_date"),
    )


__all__ = [
    "Base",
    "SrAccount",
    "SrCheckpoint",
    "SrImportBatch",
    "SrTransaction",
]
