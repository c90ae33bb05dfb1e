"""Amortization rules for installment purchases"""

from dataclasses import replace
from datetime import datetime

from finance_ledger.domain.exceptions import InvalidStateError
from finance_ledger.domain.models import InstallmentPurchase, Transaction, TransactionType
from finance_ledger.utils.date_utils import add_months


def calculate_installment_amount(total_amount: float, total_installments: int) -> float:
    """
    Split a purchase into equal installments.

    No rounding is applied and no remainder is carried to the last payment:
    the stored amount is exactly total_amount / total_installments.

    Example:
        1200 over 12 -> 100.0
    """
    if total_installments < 1:
        raise InvalidStateError("total_installments must be at least 1")
    return total_amount / total_installments


def installment_label(description: str, number: int, total: int) -> str:
    """Description used for the transaction recording one installment"""
    return f"{description} ({number}/{total})"


def check_invariants(purchase: InstallmentPurchase) -> None:
    """Raise InvalidStateError if the purchase is in an impossible state"""
    if purchase.total_installments < 1:
        raise InvalidStateError("total_installments must be at least 1")
    if not 0 <= purchase.paid_installments <= purchase.total_installments:
        raise InvalidStateError(
            f"paid_installments {purchase.paid_installments} outside 0..{purchase.total_installments}"
        )
    if purchase.is_completed != (purchase.paid_installments == purchase.total_installments):
        raise InvalidStateError("is_completed does not match paid_installments")
    if len(purchase.transaction_ids) != purchase.paid_installments:
        raise InvalidStateError("transaction_ids does not match paid_installments")


def validate_payment(purchase: InstallmentPurchase, installment_number: int) -> None:
    """
    Check that an installment may be paid.

    Requirements:
    - Installments at or below paid_installments are already paid
    - Installments above total_installments do not exist
    - A completed purchase accepts nothing (follows from the two rules above)

    Raises:
        InvalidStateError: If the payment must be rejected
    """
    if installment_number <= purchase.paid_installments:
        raise InvalidStateError(
            f"Installment {installment_number} of purchase {purchase.id} is already paid"
        )
    if installment_number > purchase.total_installments:
        raise InvalidStateError(
            f"Installment {installment_number} is out of range for purchase {purchase.id} "
            f"({purchase.total_installments} installments)"
        )


def build_installment_transaction(
    purchase: InstallmentPurchase,
    installment_number: int,
    payment_date: datetime,
) -> Transaction:
    """Expense transaction linked to one installment of a purchase"""
    return Transaction(
        owner_id=purchase.owner_id,
        amount=purchase.installment_amount,
        type=TransactionType.EXPENSE,
        category=purchase.category,
        description=installment_label(purchase.description, installment_number, purchase.total_installments),
        date=payment_date,
        is_recurring=False,
        is_installment=True,
        installment_number=installment_number,
        total_installments=purchase.total_installments,
        installment_group_id=purchase.id,
    )


def apply_payment(
    purchase: InstallmentPurchase,
    transaction_id: str,
    advance_due_date: bool = True,
) -> InstallmentPurchase:
    """
    Return the purchase state after one more installment is paid.

    The due date rolls over by exactly one calendar month from the previous
    next_due_date (not from the payment date), and only while installments
    remain. The synthesized first installment at creation passes
    advance_due_date=False.
    """
    paid = purchase.paid_installments + 1
    completed = paid == purchase.total_installments

    next_due_date = purchase.next_due_date
    if advance_due_date and not completed:
        next_due_date = add_months(purchase.next_due_date, 1)

    return replace(
        purchase,
        paid_installments=paid,
        is_completed=completed,
        transaction_ids=[*purchase.transaction_ids, transaction_id],
        next_due_date=next_due_date,
    )
