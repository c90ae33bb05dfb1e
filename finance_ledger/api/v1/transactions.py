"""/v1/transactions - ledger entries, ranged listing and summary"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from finance_ledger.api.dependencies import get_owner_id, get_transaction_service
from finance_ledger.api.v1.schemas import (
    SummaryResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
)
from finance_ledger.domain.models import Transaction
from finance_ledger.services.transactions import TransactionService

router = APIRouter()


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    body: TransactionCreate,
    owner_id: str = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    transaction = await service.create_transaction(owner_id, Transaction(**body.model_dump()))
    return TransactionResponse.model_validate(transaction)


@router.get("/transactions", response_model=List[TransactionResponse])
async def list_transactions(
    start_date: Optional[date] = Query(None, description="Include transactions from this day"),
    end_date: Optional[date] = Query(None, description="Include transactions through the end of this day"),
    owner_id: str = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    """
    List the caller's transactions, newest first.

    Returns:
        Transactions within the optional date range
    """
    transactions = await service.get_transactions_by_user(owner_id, start_date, end_date)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.get("/transactions/summary", response_model=SummaryResponse)
async def get_summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    owner_id: str = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    summary = await service.get_financial_summary(owner_id, start_date, end_date)
    return SummaryResponse.model_validate(summary)


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    return TransactionResponse.model_validate(await service.get_transaction(owner_id, transaction_id))


@router.patch("/transactions/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: str,
    body: TransactionUpdate,
    owner_id: str = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    updated = await service.update_transaction(owner_id, transaction_id, body.model_dump(exclude_unset=True))
    return TransactionResponse.model_validate(updated)


@router.delete("/transactions/{transaction_id}", status_code=204)
async def delete_transaction(
    transaction_id: str,
    owner_id: str = Depends(get_owner_id),
    service: TransactionService = Depends(get_transaction_service),
):
    await service.delete_transaction(owner_id, transaction_id)
    return Response(status_code=204)
