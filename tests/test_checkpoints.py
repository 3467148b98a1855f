from datetime import date
from decimal import Decimal

import pytest
from db.models.ledger import SrCheckpoint, SrTransaction
from statement_recon import api
from statement_recon.errors import (
    AccountNotFoundError,
    CheckpointLockedError,
    CheckpointNotFoundError,
    TransactionNotFoundError,
)
from statement_recon.models import CandidateTransaction, CheckpointDraft

from tests.helpers.db import count_rows, load_checkpoint, seed_transaction

D = Decimal


def test_manual_checkpoint_create_update_delete(db_url, account_id):
    seed_transaction(db_url, account_id, date(2024, 1, 5), 100)
    cp = api.create_checkpoint(account_id, date(2024, 1, 31), 90, notes="paper statement")
    assert cp.import_batch_id is None
    assert cp.adjustment_amount == D("-10")
    assert cp.notes == "paper statement"

    updated = api.update_checkpoint(cp.id, declared_balance="100")
    assert updated.is_reconciled
    assert updated.notes == "paper statement"

    moved = api.update_checkpoint(cp.id, checkpoint_date=date(2024, 1, 4))
    assert moved.calculated_balance == D("0")
    assert moved.adjustment_amount == D("100")

    api.delete_checkpoint(cp.id)
    assert count_rows(db_url, SrCheckpoint) == 0


def test_deleting_a_checkpoint_recalculates_the_next_one(db_url, account_id):
    seed_transaction(db_url, account_id, date(2024, 1, 5), 100)
    seed_transaction(db_url, account_id, date(2024, 2, 5), 50)
    first = api.create_checkpoint(account_id, date(2024, 1, 31), 80)
    second = api.create_checkpoint(account_id, date(2024, 2, 29), 130)
    assert second.is_reconciled

    api.delete_checkpoint(first.id)
    (remaining,) = api.list_checkpoints(account_id)
    assert remaining.id == second.id
    assert remaining.calculated_balance == D("150")
    assert remaining.adjustment_amount == D("-20")


def test_import_owned_checkpoint_is_locked(db_url, account_id):
    outcome = api.commit_import(
        account_id,
        [CandidateTransaction(date=date(2024, 1, 5), credit_amount=D("100"))],
        CheckpointDraft(date(2024, 1, 31), D("100")),
        file_name="jan.csv",
    )
    assert outcome.checkpoint_id is not None

    with pytest.raises(CheckpointLockedError) as exc:
        api.update_checkpoint(outcome.checkpoint_id, declared_balance=1)
    assert exc.value.import_batch_id == outcome.batch_id
    with pytest.raises(CheckpointLockedError):
        api.delete_checkpoint(outcome.checkpoint_id)

    stored = load_checkpoint(db_url, outcome.checkpoint_id)
    assert stored.declared_balance == D("100")
    assert stored.is_reconciled


def test_checkpoint_errors(db_url, account_id):
    with pytest.raises(CheckpointNotFoundError):
        api.update_checkpoint(999, notes="x")
    with pytest.raises(CheckpointNotFoundError):
        api.delete_checkpoint(999)
    with pytest.raises(AccountNotFoundError):
        api.create_checkpoint(999, date(2024, 1, 31), 1)
    with pytest.raises(ValueError):
        api.create_checkpoint(account_id, date(2024, 1, 31), "lots")
    assert count_rows(db_url, SrCheckpoint) == 0


def test_summary_and_current_balance(db_url, account_id):
    assert api.current_balance(account_id) == D("0")
    empty = api.checkpoint_summary(account_id)
    assert empty.total_checkpoints == 0
    assert empty.earliest_date is None

    seed_transaction(db_url, account_id, date(2024, 1, 5), 100)
    seed_transaction(db_url, account_id, date(2024, 2, 5), -30)
    seed_transaction(db_url, account_id, date(2024, 3, 5), 7)
    assert api.current_balance(account_id) == D("77")

    api.create_checkpoint(account_id, date(2024, 1, 31), 110)
    api.create_checkpoint(account_id, date(2024, 2, 29), 75)
    summary = api.checkpoint_summary(account_id)
    assert summary.total_checkpoints == 2
    assert summary.reconciled_count == 0
    assert summary.unreconciled_count == 2
    # |110 - 100| + |75 - 80|
    assert summary.total_adjustment == D("15")
    assert summary.earliest_date == date(2024, 1, 31)
    assert summary.latest_date == date(2024, 2, 29)

    # Latest declared balance plus what happened after it.
    assert api.current_balance(account_id) == D("82")


def test_manual_transactions_keep_checkpoints_current(db_url, account_id):
    cp = api.create_checkpoint(account_id, date(2024, 1, 31), 100)
    assert not cp.is_reconciled

    tx = api.add_transaction(
        account_id,
        CandidateTransaction(date=date(2024, 1, 10), credit_amount=D("100"), description="Cash"),
    )
    assert tx.direction == "credit"
    assert api.list_checkpoints(account_id)[0].is_reconciled

    edited = api.update_transaction(tx.id, amount="60", direction="debit")
    assert edited.amount == D("60")
    (view,) = api.list_checkpoints(account_id)
    assert view.calculated_balance == D("-60")

    api.update_transaction(tx.id, transaction_date=date(2024, 2, 1))
    assert api.list_checkpoints(account_id)[0].calculated_balance == D("0")

    api.delete_transaction(tx.id)
    assert count_rows(db_url, SrTransaction) == 0


def test_balance_adjustment_transaction(db_url, account_id):
    seed_transaction(db_url, account_id, date(2024, 1, 5), 100)
    cp = api.create_checkpoint(account_id, date(2024, 1, 31), 120)
    adj = api.add_transaction(
        account_id,
        CandidateTransaction(date=date(2024, 1, 31), credit_amount=cp.adjustment_amount),
        is_balance_adjustment=True,
    )
    assert adj.is_balance_adjustment
    assert api.list_checkpoints(account_id)[0].is_reconciled


def test_transaction_errors(db_url, account_id):
    with pytest.raises(TransactionNotFoundError):
        api.update_transaction(999, amount=1)
    with pytest.raises(TransactionNotFoundError):
        api.delete_transaction(999)
    with pytest.raises(ValueError):
        api.add_transaction(account_id, CandidateTransaction(date=date(2024, 1, 1)))

    tx = api.add_transaction(
        account_id, CandidateTransaction(date=date(2024, 1, 1), debit_amount=D("5"))
    )
    with pytest.raises(ValueError):
        api.update_transaction(tx.id, amount="-5")
    with pytest.raises(ValueError):
        api.update_transaction(tx.id, direction="sideways")
