"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class TransactionType(str, Enum):
    """Direction of a money movement"""

    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


class TransactionCategory(str, Enum):
    """Known categories, grouped by the transaction type they are used with"""

    # Income
    SALARY = "salary"
    GIFT = "gift"
    OTHER_INCOME = "other_income"
    # Expense
    FOOD = "food"
    HOUSING = "housing"
    TRANSPORTATION = "transportation"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    SUBSCRIPTION = "subscription"
    SHOPPING = "shopping"
    TRAVEL = "travel"
    WORK = "work"
    OTHER_EXPENSE = "other_expense"
    # Investment
    STOCKS = "stocks"
    BONDS = "bonds"
    REAL_ESTATE = "real_estate"
    CRYPTO = "crypto"
    SAVINGS = "savings"
    RETIREMENT = "retirement"
    OTHER_INVESTMENT = "other_investment"


class Frequency(str, Enum):
    """Billing cadence of a subscription"""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


@dataclass(kw_only=True)
class Transaction:
    """Atomic money movement owned by a single user"""

    amount: float
    type: TransactionType
    category: str
    description: str
    date: datetime
    is_recurring: bool = False
    owner_id: Optional[str] = None
    id: Optional[str] = None
    # Linkage to the entity that produced this record, if any
    subscription_id: Optional[str] = None
    installment_group_id: Optional[str] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    is_installment: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Subscription(Transaction):
    """Recurring obligation; payments are recorded manually"""

    frequency: Frequency
    next_payment_date: datetime
    auto_renew: bool = False
    last_payment_date: Optional[datetime] = None
    last_payment_transaction_id: Optional[str] = None


@dataclass(kw_only=True)
class InstallmentPurchase:
    """Lump purchase amortized over a fixed number of equal payments"""

    description: str
    total_amount: float
    installment_amount: float
    total_installments: int
    start_date: datetime
    next_due_date: datetime
    category: str
    paid_installments: int = 0
    is_completed: bool = False
    transaction_ids: List[str] = field(default_factory=list)
    owner_id: Optional[str] = None
    id: Optional[str] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def remaining_installments(self) -> int:
        return self.total_installments - self.paid_installments


@dataclass
class FinancialSummary:
    """Totals over a set of transactions"""

    total_income: float
    total_expenses: float
    total_investments: float
    balance: float
    expenses_by_category: Dict[str, float]
    income_by_category: Dict[str, float]
