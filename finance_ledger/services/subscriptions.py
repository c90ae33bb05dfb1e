"""Recurring obligations and manually recorded subscription payments"""

import logging
from dataclasses import replace
from typing import Any, Dict, List

from finance_ledger.domain.models import Subscription, Transaction, TransactionType
from finance_ledger.infrastructure.database.repositories import SubscriptionRepository, TransactionRepository
from finance_ledger.infrastructure.observability.metrics import transactions_created_counter
from finance_ledger.services.base import LedgerService, normalize_date, normalize_fields, require_owner

logger = logging.getLogger(__name__)

SUBSCRIPTION_DATE_FIELDS = {"date", "next_payment_date", "last_payment_date"}


class SubscriptionService(LedgerService):
    """
    Track subscriptions and record their payments on request.

    Nothing here runs on a schedule: next_payment_date is never advanced and
    auto_renew is stored without being acted upon.
    """

    async def get_subscriptions_by_user(self, owner_id: str) -> List[Subscription]:
        """Owner's subscriptions, soonest next payment first (sorted in memory)"""
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            subscriptions = await SubscriptionRepository(session).list_by_owner(owner_id)

        subscriptions.sort(key=lambda s: s.next_payment_date)
        return subscriptions

    async def get_subscription(self, owner_id: str, subscription_id: str) -> Subscription:
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            return await SubscriptionRepository(session).get(owner_id, subscription_id)

    async def create_subscription(self, owner_id: str, subscription: Subscription) -> Subscription:
        owner_id = require_owner(owner_id)
        pending = replace(
            subscription,
            owner_id=owner_id,
            date=normalize_date(subscription.date),
            next_payment_date=normalize_date(subscription.next_payment_date, "next_payment_date"),
            last_payment_date=(
                normalize_date(subscription.last_payment_date, "last_payment_date")
                if subscription.last_payment_date is not None
                else None
            ),
        )

        async with self._unit_of_work() as session:
            created = await SubscriptionRepository(session).add(pending)

        logger.info(
            "Subscription created",
            extra={"owner_id": owner_id, "subscription_id": created.id, "frequency": created.frequency.value},
        )
        return created

    async def update_subscription(self, owner_id: str, subscription_id: str, fields: Dict[str, Any]) -> Subscription:
        owner_id = require_owner(owner_id)
        changes = normalize_fields(fields, SUBSCRIPTION_DATE_FIELDS)
        async with self._unit_of_work() as session:
            updated = await SubscriptionRepository(session).update(owner_id, subscription_id, changes)

        logger.info(
            "Subscription updated",
            extra={"owner_id": owner_id, "subscription_id": subscription_id, "fields": sorted(changes)},
        )
        return updated

    async def delete_subscription(self, owner_id: str, subscription_id: str) -> None:
        """Hard delete. Payment transactions already recorded are kept."""
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            await SubscriptionRepository(session).delete(owner_id, subscription_id)

        logger.info("Subscription deleted", extra={"owner_id": owner_id, "subscription_id": subscription_id})

    async def create_transaction_from_subscription(self, owner_id: str, subscription_id: str) -> Transaction:
        """
        Record one payment of a subscription.

        Creates an expense dated now and tagged with the subscription id, then
        stores it as the subscription's last payment. Both writes commit
        together. next_payment_date is left as it was.
        """
        owner_id = require_owner(owner_id)
        now = self.clock()

        async with self._unit_of_work() as session:
            subscriptions = SubscriptionRepository(session)
            subscription = await subscriptions.get(owner_id, subscription_id)

            transaction = await TransactionRepository(session).add(
                Transaction(
                    owner_id=owner_id,
                    amount=subscription.amount,
                    type=TransactionType.EXPENSE,
                    category=subscription.category,
                    description=subscription.description,
                    date=now,
                    is_recurring=True,
                    subscription_id=subscription.id,
                )
            )
            await subscriptions.update(
                owner_id,
                subscription.id,
                {"last_payment_date": now, "last_payment_transaction_id": transaction.id},
            )

        transactions_created_counter.labels(source="subscription").inc()
        logger.info(
            "Subscription payment recorded",
            extra={
                "owner_id": owner_id,
                "subscription_id": subscription_id,
                "transaction_id": transaction.id,
                "step": "subscription_paid",
            },
        )
        return transaction
