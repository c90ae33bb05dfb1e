"""Integration tests for the subscription manager"""

import pytest
from dataclasses import replace
from datetime import datetime

from conftest import FIXED_NOW, OTHER_OWNER, OWNER
from finance_ledger.domain.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from finance_ledger.domain.models import Frequency, Subscription, TransactionType
from finance_ledger.services.subscriptions import SubscriptionService
from finance_ledger.services.transactions import TransactionService


@pytest.mark.integration
class TestSubscriptionCrud:
    async def test_create_normalizes_dates(self, subscription_service: SubscriptionService, netflix: Subscription):
        created = await subscription_service.create_subscription(
            OWNER, replace(netflix, next_payment_date="2024-04-10T00:00:00Z")
        )

        assert created.id is not None
        assert created.owner_id == OWNER
        assert created.next_payment_date == datetime(2024, 4, 10)
        assert created.frequency == Frequency.MONTHLY
        assert created.auto_renew is True
        assert created.last_payment_date is None

    async def test_list_sorted_by_next_payment_ascending(self, subscription_service, netflix):
        for description, day in (("Spotify", 25), ("Netflix", 10), ("Gym", 2)):
            await subscription_service.create_subscription(
                OWNER, replace(netflix, description=description, next_payment_date=datetime(2024, 4, day))
            )
        await subscription_service.create_subscription(OTHER_OWNER, netflix)

        subscriptions = await subscription_service.get_subscriptions_by_user(OWNER)

        assert [s.description for s in subscriptions] == ["Gym", "Netflix", "Spotify"]

    async def test_update(self, subscription_service, netflix):
        created = await subscription_service.create_subscription(OWNER, netflix)

        updated = await subscription_service.update_subscription(
            OWNER,
            created.id,
            {"amount": 22.90, "frequency": Frequency.YEARLY, "next_payment_date": "2025-04-10"},
        )

        assert updated.amount == 22.90
        assert updated.frequency == Frequency.YEARLY
        assert updated.next_payment_date == datetime(2025, 4, 10)

    async def test_update_rejects_unknown_field(self, subscription_service, netflix):
        created = await subscription_service.create_subscription(OWNER, netflix)
        with pytest.raises(InvalidStateError):
            await subscription_service.update_subscription(OWNER, created.id, {"paid": True})

    async def test_update_rejects_unknown_frequency(self, subscription_service, netflix):
        created = await subscription_service.create_subscription(OWNER, netflix)

        with pytest.raises(InvalidStateError):
            await subscription_service.update_subscription(OWNER, created.id, {"frequency": "weekly"})

        unchanged = await subscription_service.get_subscription(OWNER, created.id)
        assert unchanged.frequency == Frequency.MONTHLY

    async def test_delete_checks_ownership(self, subscription_service, netflix):
        created = await subscription_service.create_subscription(OWNER, netflix)

        with pytest.raises(PermissionDeniedError):
            await subscription_service.delete_subscription(OTHER_OWNER, created.id)

        await subscription_service.delete_subscription(OWNER, created.id)
        assert await subscription_service.get_subscriptions_by_user(OWNER) == []


@pytest.mark.integration
class TestSubscriptionPayments:
    async def test_payment_creates_linked_expense(
        self, subscription_service, transaction_service: TransactionService, netflix
    ):
        created = await subscription_service.create_subscription(OWNER, netflix)

        transaction = await subscription_service.create_transaction_from_subscription(OWNER, created.id)

        assert transaction.subscription_id == created.id
        assert transaction.type == TransactionType.EXPENSE
        assert transaction.amount == 19.90
        assert transaction.description == "Netflix"
        assert transaction.category == "subscription"
        assert transaction.date == FIXED_NOW
        assert transaction.is_recurring is True

        ledger = await transaction_service.get_transactions_by_user(OWNER)
        assert [t.id for t in ledger] == [transaction.id]

    async def test_payment_records_last_payment_but_keeps_next_date(self, subscription_service, netflix):
        created = await subscription_service.create_subscription(OWNER, netflix)

        transaction = await subscription_service.create_transaction_from_subscription(OWNER, created.id)
        refreshed = await subscription_service.get_subscription(OWNER, created.id)

        assert refreshed.last_payment_date == FIXED_NOW
        assert refreshed.last_payment_transaction_id == transaction.id
        assert refreshed.next_payment_date == created.next_payment_date

    async def test_payment_for_other_owner_creates_nothing(
        self, subscription_service, transaction_service, netflix
    ):
        created = await subscription_service.create_subscription(OWNER, netflix)

        with pytest.raises(PermissionDeniedError):
            await subscription_service.create_transaction_from_subscription(OTHER_OWNER, created.id)

        assert await transaction_service.get_transactions_by_user(OTHER_OWNER) == []

    async def test_payment_for_missing_subscription(self, subscription_service):
        with pytest.raises(NotFoundError):
            await subscription_service.create_transaction_from_subscription(OWNER, "missing-id")

    async def test_deleting_payment_transaction_leaves_dangling_reference(
        self, subscription_service, transaction_service, netflix
    ):
        created = await subscription_service.create_subscription(OWNER, netflix)
        transaction = await subscription_service.create_transaction_from_subscription(OWNER, created.id)

        await transaction_service.delete_transaction(OWNER, transaction.id)

        refreshed = await subscription_service.get_subscription(OWNER, created.id)
        assert refreshed.last_payment_transaction_id == transaction.id
