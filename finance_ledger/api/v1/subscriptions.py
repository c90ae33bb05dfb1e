"""/v1/subscriptions - recurring obligations and recorded payments"""

from typing import List

from fastapi import APIRouter, Depends, Response

from finance_ledger.api.dependencies import get_owner_id, get_subscription_service
from finance_ledger.api.v1.schemas import (
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
    TransactionResponse,
)
from finance_ledger.domain.models import Subscription
from finance_ledger.services.subscriptions import SubscriptionService

router = APIRouter()


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    body: SubscriptionCreate,
    owner_id: str = Depends(get_owner_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = await service.create_subscription(owner_id, Subscription(**body.model_dump()))
    return SubscriptionResponse.model_validate(subscription)


@router.get("/subscriptions", response_model=List[SubscriptionResponse])
async def list_subscriptions(
    owner_id: str = Depends(get_owner_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Caller's subscriptions, soonest next payment first"""
    subscriptions = await service.get_subscriptions_by_user(owner_id)
    return [SubscriptionResponse.model_validate(s) for s in subscriptions]


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: str,
    owner_id: str = Depends(get_owner_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return SubscriptionResponse.model_validate(await service.get_subscription(owner_id, subscription_id))


@router.patch("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: str,
    body: SubscriptionUpdate,
    owner_id: str = Depends(get_owner_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    updated = await service.update_subscription(owner_id, subscription_id, body.model_dump(exclude_unset=True))
    return SubscriptionResponse.model_validate(updated)


@router.delete("/subscriptions/{subscription_id}", status_code=204)
async def delete_subscription(
    subscription_id: str,
    owner_id: str = Depends(get_owner_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    await service.delete_subscription(owner_id, subscription_id)
    return Response(status_code=204)


@router.post("/subscriptions/{subscription_id}/payments", response_model=TransactionResponse, status_code=201)
async def record_subscription_payment(
    subscription_id: str,
    owner_id: str = Depends(get_owner_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """
    Record a payment of the subscription dated now.

    Returns:
        The expense transaction created for the payment
    """
    transaction = await service.create_transaction_from_subscription(owner_id, subscription_id)
    return TransactionResponse.model_validate(transaction)
