"""Installment purchase engine: creation, forward-only payments, rollover"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from finance_ledger.domain.exceptions import ConcurrentModificationError, InvalidStateError
from finance_ledger.domain.installments import (
    apply_payment,
    build_installment_transaction,
    check_invariants,
    validate_payment,
)
from finance_ledger.domain.models import InstallmentPurchase
from finance_ledger.infrastructure.database.repositories import (
    InstallmentPurchaseRepository,
    TransactionRepository,
)
from finance_ledger.infrastructure.observability.logging import log_installment_payment
from finance_ledger.infrastructure.observability.metrics import (
    installment_completed_counter,
    record_installment_payment,
    transactions_created_counter,
)
from finance_ledger.services.base import LedgerService, normalize_date, normalize_fields, require_owner
from finance_ledger.utils.date_utils import DateLike

logger = logging.getLogger(__name__)

PURCHASE_DATE_FIELDS = {"start_date", "next_due_date"}


class InstallmentService(LedgerService):
    """
    Amortize purchases into fixed installments and record their payments.

    A purchase is Active while paid_installments < total_installments and
    Completed once they are equal. Payments only move it forward.
    """

    async def create_installment_purchase(
        self,
        owner_id: str,
        purchase: InstallmentPurchase,
        create_first_installment: bool = True,
    ) -> InstallmentPurchase:
        """
        Persist a new purchase, optionally paying installment #1 at once.

        installment_amount is taken as given (see calculate_installment_amount).
        The first installment is dated start_date and does not move
        next_due_date.

        Raises:
            InvalidStateError: If total_installments < 1 or a date is invalid
        """
        owner_id = require_owner(owner_id)
        if purchase.total_installments < 1:
            raise InvalidStateError("total_installments must be at least 1")

        pending = replace(
            purchase,
            owner_id=owner_id,
            start_date=normalize_date(purchase.start_date, "start_date"),
            next_due_date=normalize_date(purchase.next_due_date, "next_due_date"),
            paid_installments=0,
            is_completed=False,
            transaction_ids=[],
        )

        async with self._unit_of_work() as session:
            purchases = InstallmentPurchaseRepository(session)
            created = await purchases.add(pending)

            if create_first_installment:
                first = await TransactionRepository(session).add(
                    build_installment_transaction(created, 1, created.start_date)
                )
                progressed = apply_payment(created, first.id, advance_due_date=False)
                check_invariants(progressed)
                created = await purchases.save_progress(progressed, expected_version=created.version)

        if create_first_installment:
            transactions_created_counter.labels(source="installment").inc()
        if created.is_completed:
            installment_completed_counter.inc()
        logger.info(
            "Installment purchase created",
            extra={
                "owner_id": owner_id,
                "purchase_id": created.id,
                "total_installments": created.total_installments,
                "paid_installments": created.paid_installments,
            },
        )
        return created

    async def get_installment_purchase(self, owner_id: str, purchase_id: str) -> InstallmentPurchase:
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            return await InstallmentPurchaseRepository(session).get(owner_id, purchase_id)

    async def get_installment_purchases_by_user(self, owner_id: str) -> List[InstallmentPurchase]:
        """Owner's purchases, nearest due date first (sorted in memory)"""
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            purchases = await InstallmentPurchaseRepository(session).list_by_owner(owner_id)

        purchases.sort(key=lambda p: p.next_due_date)
        return purchases

    async def add_installment_payment(
        self,
        owner_id: str,
        purchase_id: str,
        installment_number: int,
        payment_date: Optional[DateLike] = None,
    ) -> InstallmentPurchase:
        """
        Pay one installment of a purchase.

        Flow:
        1. Load the purchase and its version token
        2. Reject already-paid or out-of-range installment numbers
        3. Create the linked expense transaction
        4. Advance progress; next_due_date moves one calendar month from its
           previous value unless this payment completes the purchase
        5. Conditionally write the purchase against the version read in 1

        Steps 3-5 share one database transaction, so a rejected or conflicting
        write leaves no transaction behind.

        Raises:
            InvalidStateError: If the installment is already paid or out of range
            ConcurrentModificationError: If another payment landed first
            NotFoundError / PermissionDeniedError: If the purchase is not the owner's
        """
        owner_id = require_owner(owner_id)
        paid_on = normalize_date(payment_date, "payment_date") if payment_date is not None else self.clock()

        try:
            async with self._unit_of_work() as session:
                purchases = InstallmentPurchaseRepository(session)
                purchase = await purchases.get(owner_id, purchase_id)
                validate_payment(purchase, installment_number)

                transaction = await TransactionRepository(session).add(
                    build_installment_transaction(purchase, installment_number, paid_on)
                )
                progressed = apply_payment(purchase, transaction.id)
                check_invariants(progressed)
                updated = await purchases.save_progress(progressed, expected_version=purchase.version)
        except ConcurrentModificationError:
            record_installment_payment("conflict")
            logger.warning(
                "Installment payment lost a concurrent update",
                extra={"owner_id": owner_id, "purchase_id": purchase_id, "installment_number": installment_number},
            )
            raise
        except InvalidStateError as e:
            record_installment_payment("rejected")
            logger.info(
                "Installment payment rejected",
                extra={"owner_id": owner_id, "purchase_id": purchase_id, "reason": str(e)},
            )
            raise

        record_installment_payment("applied", completed=updated.is_completed)
        transactions_created_counter.labels(source="installment").inc()
        log_installment_payment(
            owner_id,
            purchase_id,
            installment_number,
            updated.paid_installments,
            updated.total_installments,
            updated.is_completed,
        )
        return updated

    async def update_installment_purchase(
        self,
        owner_id: str,
        purchase_id: str,
        fields: Dict[str, Any],
    ) -> InstallmentPurchase:
        """
        Partial update of descriptive fields and dates.

        Counters, completion and linked transaction ids only change through
        add_installment_payment; attempts to set them raise InvalidStateError.
        """
        owner_id = require_owner(owner_id)
        changes = normalize_fields(fields, PURCHASE_DATE_FIELDS)
        async with self._unit_of_work() as session:
            updated = await InstallmentPurchaseRepository(session).update(owner_id, purchase_id, changes)

        logger.info(
            "Installment purchase updated",
            extra={"owner_id": owner_id, "purchase_id": purchase_id, "fields": sorted(changes)},
        )
        return updated

    async def delete_installment_purchase(self, owner_id: str, purchase_id: str) -> None:
        """Hard delete. Linked transactions stay as standalone history."""
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            await InstallmentPurchaseRepository(session).delete(owner_id, purchase_id)

        logger.info("Installment purchase deleted", extra={"owner_id": owner_id, "purchase_id": purchase_id})
