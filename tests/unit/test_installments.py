"""Unit tests for installment amortization rules"""

import pytest
from dataclasses import replace
from datetime import datetime
from finance_ledger.domain.exceptions import InvalidStateError
from finance_ledger.domain.installments import (
    apply_payment,
    build_installment_transaction,
    calculate_installment_amount,
    check_invariants,
    installment_label,
    validate_payment,
)
from finance_ledger.domain.models import InstallmentPurchase, TransactionType


@pytest.fixture
def purchase() -> InstallmentPurchase:
    return InstallmentPurchase(
        id="p1",
        owner_id="user_ana",
        description="Laptop",
        total_amount=1200.0,
        installment_amount=100.0,
        total_installments=12,
        start_date=datetime(2024, 1, 5),
        next_due_date=datetime(2024, 2, 5),
        category="shopping",
    )


def test_calculate_installment_amount_equal_split():
    """Test evenly divisible amount"""
    assert calculate_installment_amount(1200, 12) == 100


def test_calculate_installment_amount_no_rounding():
    """Test remainder is not reconciled onto any installment"""
    amount = calculate_installment_amount(100, 3)
    assert amount == 100 / 3
    assert amount != 33.33


def test_calculate_installment_amount_rejects_zero_installments():
    with pytest.raises(InvalidStateError):
        calculate_installment_amount(100, 0)


def test_installment_label():
    assert installment_label("Laptop", 2, 12) == "Laptop (2/12)"


def test_validate_payment_rejects_already_paid(purchase):
    paid = replace(purchase, paid_installments=3, transaction_ids=["a", "b", "c"])
    with pytest.raises(InvalidStateError, match="already paid"):
        validate_payment(paid, 3)
    with pytest.raises(InvalidStateError):
        validate_payment(paid, 1)


def test_validate_payment_rejects_out_of_range(purchase):
    with pytest.raises(InvalidStateError, match="out of range"):
        validate_payment(purchase, 13)


def test_validate_payment_accepts_next_installment(purchase):
    validate_payment(purchase, 1)


def test_validate_payment_rejects_everything_once_completed(purchase):
    done = replace(purchase, paid_installments=12, is_completed=True, transaction_ids=[str(i) for i in range(12)])
    for number in (1, 12, 13):
        with pytest.raises(InvalidStateError):
            validate_payment(done, number)


def test_apply_payment_rolls_due_date_one_month(purchase):
    """Test rollover is from the previous due date"""
    progressed = apply_payment(replace(purchase, paid_installments=1, transaction_ids=["t1"]), "t2")

    assert progressed.paid_installments == 2
    assert progressed.transaction_ids == ["t1", "t2"]
    assert progressed.next_due_date == datetime(2024, 3, 5)
    assert progressed.is_completed is False
    # Original is untouched
    assert purchase.paid_installments == 0


def test_apply_payment_clamps_month_end(purchase):
    """Test Jan 31 rolls to the last day of February"""
    month_end = replace(purchase, next_due_date=datetime(2024, 1, 31))
    assert apply_payment(month_end, "t1").next_due_date == datetime(2024, 2, 29)


def test_apply_payment_completes_without_rollover(purchase):
    last = replace(
        purchase,
        paid_installments=11,
        transaction_ids=[f"t{i}" for i in range(1, 12)],
        next_due_date=datetime(2024, 12, 5),
    )
    done = apply_payment(last, "t12")

    assert done.paid_installments == 12
    assert done.is_completed is True
    assert done.next_due_date == datetime(2024, 12, 5)
    check_invariants(done)


def test_apply_payment_first_installment_keeps_due_date(purchase):
    progressed = apply_payment(purchase, "t1", advance_due_date=False)
    assert progressed.next_due_date == purchase.next_due_date
    assert progressed.paid_installments == 1


def test_single_installment_purchase_completes_on_first_payment(purchase):
    single = replace(purchase, total_installments=1, installment_amount=1200.0)
    done = apply_payment(single, "t1", advance_due_date=False)
    assert done.is_completed is True
    check_invariants(done)


def test_build_installment_transaction(purchase):
    txn = build_installment_transaction(purchase, 4, datetime(2024, 4, 5))

    assert txn.description == "Laptop (4/12)"
    assert txn.amount == 100.0
    assert txn.type == TransactionType.EXPENSE
    assert txn.is_installment is True
    assert txn.installment_number == 4
    assert txn.total_installments == 12
    assert txn.installment_group_id == "p1"
    assert txn.owner_id == "user_ana"


@pytest.mark.parametrize(
    "changes",
    [
        {"paid_installments": 13, "transaction_ids": ["x"] * 13},
        {"paid_installments": 2, "transaction_ids": ["a"]},
        {"paid_installments": 12, "transaction_ids": ["a"] * 12, "is_completed": False},
        {"is_completed": True},
    ],
)
def test_check_invariants_detects_broken_state(purchase, changes):
    with pytest.raises(InvalidStateError):
        check_invariants(replace(purchase, **changes))
