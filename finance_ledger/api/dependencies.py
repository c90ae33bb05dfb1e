"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finance_ledger.infrastructure.database.session import get_session_factory
from finance_ledger.services.base import require_owner
from finance_ledger.services.installments import InstallmentService
from finance_ledger.services.subscriptions import SubscriptionService
from finance_ledger.services.transactions import TransactionService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity from the X-User-ID header; missing means unauthenticated"""
    return require_owner(x_user_id)


def get_transaction_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> TransactionService:
    return TransactionService(session_factory)


def get_subscription_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SubscriptionService:
    return SubscriptionService(session_factory)


def get_installment_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> InstallmentService:
    return InstallmentService(session_factory)
