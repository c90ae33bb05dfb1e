"""SQLAlchemy ORM models for ledger collections"""

import uuid
from sqlalchemy import Column, String, Boolean, Float, DateTime, Integer, Text, JSON, Index
from sqlalchemy.orm import declarative_base

from finance_ledger.utils.date_utils import utcnow

Base = declarative_base()

# Composite index backing the owner-scoped, date-ordered transaction query
TRANSACTIONS_ORDERED_INDEX = "ix_transactions_owner_date"


def new_id() -> str:
    return str(uuid.uuid4())


class LedgerEntryMixin:
    """Columns shared by transactions and subscriptions"""

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(Text, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    type = Column(String(20), nullable=False)
    category = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    date = Column(DateTime, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    subscription_id = Column(String(36), nullable=True)
    installment_group_id = Column(String(36), nullable=True, index=True)
    installment_number = Column(Integer, nullable=True)
    total_installments = Column(Integer, nullable=True)
    is_installment = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TransactionRecord(LedgerEntryMixin, Base):
    """Atomic money movement"""

    __tablename__ = "transactions"
    __table_args__ = (Index(TRANSACTIONS_ORDERED_INDEX, "owner_id", "date"),)


class SubscriptionRecord(LedgerEntryMixin, Base):
    """Recurring obligation"""

    __tablename__ = "subscriptions"

    frequency = Column(String(20), nullable=False)
    next_payment_date = Column(DateTime, nullable=False)
    auto_renew = Column(Boolean, nullable=False, default=False)
    last_payment_date = Column(DateTime, nullable=True)
    last_payment_transaction_id = Column(String(36), nullable=True)


class InstallmentPurchaseRecord(Base):
    """Purchase amortized over fixed installments"""

    __tablename__ = "installment_purchases"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    total_amount = Column(Float, nullable=False)
    installment_amount = Column(Float, nullable=False)
    total_installments = Column(Integer, nullable=False)
    paid_installments = Column(Integer, nullable=False, default=0)
    start_date = Column(DateTime, nullable=False)
    next_due_date = Column(DateTime, nullable=False)
    category = Column(Text, nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    transaction_ids = Column(JSON, nullable=False, default=list)
    # Optimistic-concurrency token, bumped on every write
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
