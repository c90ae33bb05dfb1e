"""/v1/installments - installment purchases and their payments"""

from typing import List

from fastapi import APIRouter, Depends, Response

from finance_ledger.api.dependencies import get_installment_service, get_owner_id
from finance_ledger.api.v1.schemas import (
    InstallmentPaymentRequest,
    InstallmentPurchaseCreate,
    InstallmentPurchaseResponse,
    InstallmentPurchaseUpdate,
)
from finance_ledger.domain.installments import calculate_installment_amount
from finance_ledger.domain.models import InstallmentPurchase
from finance_ledger.services.installments import InstallmentService
from finance_ledger.utils.date_utils import add_months, to_storage_datetime

router = APIRouter()


@router.post("/installments", response_model=InstallmentPurchaseResponse, status_code=201)
async def create_installment_purchase(
    body: InstallmentPurchaseCreate,
    owner_id: str = Depends(get_owner_id),
    service: InstallmentService = Depends(get_installment_service),
):
    """
    Create an installment purchase.

    The amount per installment and the first due date are filled in here when
    the caller leaves them out; the engine stores whatever it receives.
    """
    start_date = to_storage_datetime(body.start_date)
    purchase = InstallmentPurchase(
        description=body.description,
        total_amount=body.total_amount,
        installment_amount=(
            body.installment_amount
            if body.installment_amount is not None
            else calculate_installment_amount(body.total_amount, body.total_installments)
        ),
        total_installments=body.total_installments,
        start_date=start_date,
        next_due_date=body.next_due_date if body.next_due_date is not None else add_months(start_date, 1),
        category=body.category,
    )
    created = await service.create_installment_purchase(owner_id, purchase, body.create_first_installment)
    return InstallmentPurchaseResponse.model_validate(created)


@router.get("/installments", response_model=List[InstallmentPurchaseResponse])
async def list_installment_purchases(
    owner_id: str = Depends(get_owner_id),
    service: InstallmentService = Depends(get_installment_service),
):
    purchases = await service.get_installment_purchases_by_user(owner_id)
    return [InstallmentPurchaseResponse.model_validate(p) for p in purchases]


@router.get("/installments/{purchase_id}", response_model=InstallmentPurchaseResponse)
async def get_installment_purchase(
    purchase_id: str,
    owner_id: str = Depends(get_owner_id),
    service: InstallmentService = Depends(get_installment_service),
):
    return InstallmentPurchaseResponse.model_validate(await service.get_installment_purchase(owner_id, purchase_id))


@router.patch("/installments/{purchase_id}", response_model=InstallmentPurchaseResponse)
async def update_installment_purchase(
    purchase_id: str,
    body: InstallmentPurchaseUpdate,
    owner_id: str = Depends(get_owner_id),
    service: InstallmentService = Depends(get_installment_service),
):
    updated = await service.update_installment_purchase(owner_id, purchase_id, body.model_dump(exclude_unset=True))
    return InstallmentPurchaseResponse.model_validate(updated)


@router.delete("/installments/{purchase_id}", status_code=204)
async def delete_installment_purchase(
    purchase_id: str,
    owner_id: str = Depends(get_owner_id),
    service: InstallmentService = Depends(get_installment_service),
):
    """Delete the purchase; its installment transactions remain in the ledger"""
    await service.delete_installment_purchase(owner_id, purchase_id)
    return Response(status_code=204)


@router.post("/installments/{purchase_id}/payments", response_model=InstallmentPurchaseResponse)
async def add_installment_payment(
    purchase_id: str,
    body: InstallmentPaymentRequest,
    owner_id: str = Depends(get_owner_id),
    service: InstallmentService = Depends(get_installment_service),
):
    """
    Pay one installment.

    Returns:
        Purchase with updated progress; 409 if the installment is already
        paid, out of range, or another payment landed first
    """
    updated = await service.add_installment_payment(
        owner_id, purchase_id, body.installment_number, body.payment_date
    )
    return InstallmentPurchaseResponse.model_validate(updated)
