"""Transaction store and owner-scoped range queries"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from finance_ledger.domain.exceptions import IndexMissingError
from finance_ledger.domain.models import FinancialSummary, Transaction
from finance_ledger.domain.summary import calculate_financial_summary
from finance_ledger.infrastructure.database.repositories import TransactionRepository
from finance_ledger.infrastructure.observability.metrics import index_fallback_counter, transactions_created_counter
from finance_ledger.services.base import LedgerService, normalize_date, normalize_fields, require_owner
from finance_ledger.utils.date_utils import DateLike, end_of_day

logger = logging.getLogger(__name__)


def filter_by_date_range(
    transactions: List[Transaction],
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
) -> List[Transaction]:
    """
    Keep transactions with start_date <= date <= end_of_day(end_date).

    The start bound is the exact instant given; a plain date means midnight.
    The end bound is inclusive through 23:59:59.999. Each bound is optional.
    """
    lower = normalize_date(start_date, "start_date") if start_date is not None else None
    upper = end_of_day(normalize_date(end_date, "end_date")) if end_date is not None else None

    return [
        txn
        for txn in transactions
        if (lower is None or txn.date >= lower) and (upper is None or txn.date <= upper)
    ]


class TransactionService(LedgerService):
    """Create, update, delete and query an owner's transactions"""

    async def create_transaction(self, owner_id: str, transaction: Transaction) -> Transaction:
        """
        Record a money movement.

        The amount is stored as given; positivity is the caller's concern.

        Raises:
            NotAuthenticatedError: If owner_id is missing
            InvalidStateError: If the date cannot be parsed
            PersistenceUnavailableError: If the write fails
        """
        owner_id = require_owner(owner_id)
        pending = replace(transaction, owner_id=owner_id, date=normalize_date(transaction.date))

        async with self._unit_of_work() as session:
            created = await TransactionRepository(session).add(pending)

        transactions_created_counter.labels(source="manual").inc()
        logger.info(
            "Transaction created",
            extra={"owner_id": owner_id, "transaction_id": created.id, "step": "transaction_created"},
        )
        return created

    async def get_transaction(self, owner_id: str, transaction_id: str) -> Transaction:
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            return await TransactionRepository(session).get(owner_id, transaction_id)

    async def update_transaction(self, owner_id: str, transaction_id: str, fields: Dict[str, Any]) -> Transaction:
        """Partial update of a transaction the owner holds"""
        owner_id = require_owner(owner_id)
        changes = normalize_fields(fields, {"date"})
        async with self._unit_of_work() as session:
            updated = await TransactionRepository(session).update(owner_id, transaction_id, changes)

        logger.info(
            "Transaction updated",
            extra={"owner_id": owner_id, "transaction_id": transaction_id, "fields": sorted(changes)},
        )
        return updated

    async def delete_transaction(self, owner_id: str, transaction_id: str) -> None:
        """Hard delete. Subscriptions and purchases that reference it keep the id."""
        owner_id = require_owner(owner_id)
        async with self._unit_of_work() as session:
            await TransactionRepository(session).delete(owner_id, transaction_id)

        logger.info("Transaction deleted", extra={"owner_id": owner_id, "transaction_id": transaction_id})

    async def get_transactions_by_user(
        self,
        owner_id: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
    ) -> List[Transaction]:
        """
        Fetch an owner's transactions, newest first, optionally within a date range.

        Flow:
        1. Ask the database for the owner's transactions ordered by date descending
        2. If that query needs the (owner_id, date) index and it is missing,
           fetch the same rows unordered and sort them here
        3. Apply the date range in memory, end date inclusive through 23:59:59.999

        The fallback scans every transaction the owner has; it keeps the ledger
        readable on databases deployed without the composite index.
        """
        owner_id = require_owner(owner_id)

        async with self._unit_of_work() as session:
            repo = TransactionRepository(session, enforce_indexes=self.enforce_indexes)
            try:
                transactions = await repo.list_by_owner(owner_id, ordered=True)
            except IndexMissingError as e:
                index_fallback_counter.labels(collection=e.collection).inc()
                logger.warning(
                    "Index missing, sorting transactions in memory",
                    extra={"owner_id": owner_id, "index": e.index_name, "step": "index_fallback"},
                )
                transactions = await repo.list_by_owner(owner_id, ordered=False)
                transactions.sort(key=lambda t: t.date, reverse=True)

        return filter_by_date_range(transactions, start_date, end_date)

    async def get_financial_summary(
        self,
        owner_id: str,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
    ) -> FinancialSummary:
        """Income, expense and investment totals over the selected range"""
        transactions = await self.get_transactions_by_user(owner_id, start_date, end_date)
        return calculate_financial_summary(transactions)
