from datetime import date
from decimal import Decimal

import pytest
from statement_recon import api
from statement_recon.errors import AccountNotFoundError
from statement_recon.ledger.reconcile import compute_checkpoint_balances

from tests.helpers.db import load_checkpoint, seed_transaction

D = Decimal


def test_window_is_previous_date_exclusive_to_own_date_inclusive():
    checkpoints = [(date(2024, 1, 31), D("100")), (date(2024, 2, 29), D("150"))]
    transactions = [
        (date(2024, 1, 5), D("60")),
        (date(2024, 1, 31), D("40")),
        (date(2024, 2, 1), D("30")),
        (date(2024, 2, 29), D("10")),
        # After the last checkpoint: ignored.
        (date(2024, 3, 1), D("999")),
    ]
    first, second = compute_checkpoint_balances(checkpoints, transactions)
    assert first.calculated_balance == D("100")
    assert first.adjustment_amount == D("0")
    assert first.is_reconciled
    assert second.calculated_balance == D("140")
    assert second.adjustment_amount == D("10")
    assert not second.is_reconciled


def test_next_period_starts_from_declared_not_calculated():
    checkpoints = [(date(2024, 1, 31), D("500")), (date(2024, 2, 29), D("520"))]
    transactions = [(date(2024, 1, 10), D("100")), (date(2024, 2, 10), D("20"))]
    first, second = compute_checkpoint_balances(checkpoints, transactions)
    assert first.adjustment_amount == D("400")
    assert second.calculated_balance == D("520")
    assert second.is_reconciled


def test_exact_decimal_arithmetic_has_no_tolerance():
    checkpoints = [(date(2024, 1, 31), D("0.30"))]
    transactions = [(date(2024, 1, 1), D("0.10"))] * 3
    (only,) = compute_checkpoint_balances(checkpoints, transactions)
    assert only.is_reconciled
    (off,) = compute_checkpoint_balances([(date(2024, 1, 31), D("0.31"))], transactions)
    assert off.adjustment_amount == D("0.01")
    assert not off.is_reconciled


def test_checkpoint_without_transactions():
    (only,) = compute_checkpoint_balances([(date(2024, 1, 31), D("500"))], [])
    assert only.calculated_balance == D("0")
    assert only.adjustment_amount == D("500")


def test_recalculate_store_is_idempotent(db_url, account_id):
    seed_transaction(db_url, account_id, date(2024, 1, 5), 1_000_000)
    seed_transaction(db_url, account_id, date(2024, 1, 20), -250_000)
    cp = api.create_checkpoint(account_id, date(2024, 1, 31), "800000")
    assert cp.calculated_balance == D("750000")
    assert cp.adjustment_amount == D("50000")

    stored = load_checkpoint(db_url, cp.id)
    stamp = stored.updated_at
    first = api.recalculate(account_id)
    second = api.recalculate(account_id)
    assert first == second
    # Nothing changed, so nothing was written.
    assert load_checkpoint(db_url, cp.id).updated_at == stamp

    for view in second:
        assert view.declared_balance == view.calculated_balance + view.adjustment_amount
        assert view.is_reconciled == (view.adjustment_amount == 0)


def test_balance_adjustments_count_towards_calculation(db_url, account_id):
    seed_transaction(db_url, account_id, date(2024, 1, 5), 100)
    seed_transaction(
        db_url,
        account_id,
        date(2024, 1, 31),
        25,
        description="Reconciliation adjustment",
        is_balance_adjustment=True,
    )
    cp = api.create_checkpoint(account_id, date(2024, 1, 31), 125)
    assert cp.is_reconciled


def test_same_date_checkpoints_ordered_by_id(db_url, account_id):
    seed_transaction(db_url, account_id, date(2024, 1, 5), 100)
    first = api.create_checkpoint(account_id, date(2024, 1, 31), 100)
    second = api.create_checkpoint(account_id, date(2024, 1, 31), 90)
    views = {v.id: v for v in api.recalculate(account_id)}
    assert views[first.id].is_reconciled
    # Empty window after the first: starts (and ends) at its declared 100.
    assert views[second.id].calculated_balance == D("100")
    assert views[second.id].adjustment_amount == D("-10")


def test_recalculate_unknown_account(db_url):
    with pytest.raises(AccountNotFoundError):
        api.recalculate(424242)


def test_recalculate_without_checkpoints(db_url, account_id):
    seed_transaction(db_url, account_id, date(2024, 1, 5), 100)
    assert api.recalculate(account_id) == []
    assert load_checkpoint(db_url, 1) is None
