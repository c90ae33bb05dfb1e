"""Unit tests for financial summary aggregation"""

from datetime import datetime
from finance_ledger.domain.models import Transaction, TransactionType
from finance_ledger.domain.summary import calculate_financial_summary


def _txn(amount, type, category):
    return Transaction(amount=amount, type=type, category=category, description="", date=datetime(2024, 1, 1))


def test_summary_totals_and_balance():
    summary = calculate_financial_summary(
        [
            _txn(5000, TransactionType.INCOME, "salary"),
            _txn(200, TransactionType.INCOME, "gift"),
            _txn(1500, TransactionType.EXPENSE, "housing"),
            _txn(300, TransactionType.EXPENSE, "food"),
            _txn(100, TransactionType.EXPENSE, "food"),
            _txn(1000, TransactionType.INVESTMENT, "stocks"),
        ]
    )

    assert summary.total_income == 5200
    assert summary.total_expenses == 1900
    assert summary.total_investments == 1000
    assert summary.balance == 3300  # investments do not reduce the balance
    assert summary.expenses_by_category == {"housing": 1500, "food": 400}
    assert summary.income_by_category == {"salary": 5000, "gift": 200}


def test_summary_of_empty_ledger():
    summary = calculate_financial_summary([])

    assert summary.balance == 0
    assert summary.expenses_by_category == {}
    assert summary.income_by_category == {}
