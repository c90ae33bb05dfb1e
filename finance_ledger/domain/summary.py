"""Income/expense totals over a set of transactions"""

from collections import defaultdict
from typing import Dict, Iterable

from finance_ledger.domain.models import FinancialSummary, Transaction, TransactionType


def _category_key(category) -> str:
    return getattr(category, "value", category)


def calculate_financial_summary(transactions: Iterable[Transaction]) -> FinancialSummary:
    """
    Aggregate transactions into totals.

    Balance is income minus expenses; investments are reported separately and
    do not reduce the balance.
    """
    total_income = 0.0
    total_expenses = 0.0
    total_investments = 0.0
    expenses_by_category: Dict[str, float] = defaultdict(float)
    income_by_category: Dict[str, float] = defaultdict(float)

    for txn in transactions:
        if txn.type == TransactionType.INCOME:
            total_income += txn.amount
            income_by_category[_category_key(txn.category)] += txn.amount
        elif txn.type == TransactionType.EXPENSE:
            total_expenses += txn.amount
            expenses_by_category[_category_key(txn.category)] += txn.amount
        elif txn.type == TransactionType.INVESTMENT:
            total_investments += txn.amount

    return FinancialSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        total_investments=total_investments,
        balance=total_income - total_expenses,
        expenses_by_category=dict(expenses_by_category),
        income_by_category=dict(income_by_category),
    )
