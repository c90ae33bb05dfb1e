"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Dict, List, Optional

from finance_ledger.domain.models import Frequency, TransactionType


class TransactionCreate(BaseModel):
    """Request body for POST /v1/transactions"""

    amount: float = Field(..., gt=0, description="Amount moved, always positive")
    type: TransactionType
    category: str = Field(..., min_length=1)
    description: str = ""
    date: datetime
    is_recurring: bool = False


class TransactionUpdate(BaseModel):
    """Request body for PATCH /v1/transactions/{id}; only set fields are applied"""

    amount: Optional[float] = Field(None, gt=0)
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    date: Optional[datetime] = None
    is_recurring: Optional[bool] = None


class TransactionResponse(BaseModel):
    """Stored transaction"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    amount: float
    type: TransactionType
    category: str
    description: str
    date: datetime
    is_recurring: bool
    subscription_id: Optional[str] = None
    installment_group_id: Optional[str] = None
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    is_installment: bool = False
    created_at: datetime
    updated_at: datetime


class SubscriptionCreate(TransactionCreate):
    """Request body for POST /v1/subscriptions"""

    type: TransactionType = TransactionType.EXPENSE
    category: str = "subscription"
    is_recurring: bool = True
    frequency: Frequency
    next_payment_date: datetime
    auto_renew: bool = False


class SubscriptionUpdate(TransactionUpdate):
    """Request body for PATCH /v1/subscriptions/{id}"""

    frequency: Optional[Frequency] = None
    next_payment_date: Optional[datetime] = None
    auto_renew: Optional[bool] = None


class SubscriptionResponse(TransactionResponse):
    """Stored subscription"""

    frequency: Frequency
    next_payment_date: datetime
    auto_renew: bool
    last_payment_date: Optional[datetime] = None
    last_payment_transaction_id: Optional[str] = None


class InstallmentPurchaseCreate(BaseModel):
    """Request body for POST /v1/installments"""

    description: str = Field(..., min_length=1)
    total_amount: float = Field(..., gt=0)
    total_installments: int = Field(..., ge=1)
    start_date: datetime
    category: str = Field(..., min_length=1)
    next_due_date: Optional[datetime] = Field(None, description="Defaults to one month after start_date")
    installment_amount: Optional[float] = Field(None, gt=0, description="Defaults to total_amount / total_installments")
    create_first_installment: bool = True


class InstallmentPurchaseUpdate(BaseModel):
    """Request body for PATCH /v1/installments/{id}"""

    description: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    start_date: Optional[datetime] = None
    next_due_date: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, gt=0)
    installment_amount: Optional[float] = Field(None, gt=0)


class InstallmentPaymentRequest(BaseModel):
    """Request body for POST /v1/installments/{id}/payments"""

    installment_number: int = Field(..., ge=1)
    payment_date: Optional[datetime] = None


class InstallmentPurchaseResponse(BaseModel):
    """Stored installment purchase with payment progress"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    description: str
    total_amount: float
    installment_amount: float
    total_installments: int
    paid_installments: int
    start_date: datetime
    next_due_date: datetime
    category: str
    is_completed: bool
    transaction_ids: List[str]
    version: int
    created_at: datetime
    updated_at: datetime


class SummaryResponse(BaseModel):
    """Response for GET /v1/transactions/summary"""

    model_config = ConfigDict(from_attributes=True)

    total_income: float
    total_expenses: float
    total_investments: float
    balance: float
    expenses_by_category: Dict[str, float]
    income_by_category: Dict[str, float]
