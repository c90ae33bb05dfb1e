"""Data access layer for ledger entities"""

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finance_ledger.config import settings
from finance_ledger.domain.exceptions import (
    ConcurrentModificationError,
    IndexMissingError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from finance_ledger.domain.models import (
    Frequency,
    InstallmentPurchase,
    Subscription,
    Transaction,
    TransactionType,
)
from finance_ledger.infrastructure.database.models import (
    TRANSACTIONS_ORDERED_INDEX,
    InstallmentPurchaseRecord,
    SubscriptionRecord,
    TransactionRecord,
)
from finance_ledger.utils.date_utils import to_storage_datetime, utcnow

LEDGER_ENTRY_FIELDS = (
    "amount",
    "type",
    "category",
    "description",
    "date",
    "is_recurring",
    "subscription_id",
    "installment_group_id",
    "installment_number",
    "total_installments",
    "is_installment",
)
SUBSCRIPTION_FIELDS = LEDGER_ENTRY_FIELDS + (
    "frequency",
    "next_payment_date",
    "auto_renew",
    "last_payment_date",
    "last_payment_transaction_id",
)
PURCHASE_FIELDS = (
    "description",
    "category",
    "start_date",
    "next_due_date",
    "total_amount",
    "installment_amount",
)
DATE_FIELDS = {"date", "next_payment_date", "last_payment_date", "start_date", "next_due_date"}
ENUM_FIELDS = {"type": TransactionType, "frequency": Frequency}


def _db_value(name: str, value: Any) -> Any:
    """Convert a domain value to its column representation"""
    if value is None:
        return None
    if name in DATE_FIELDS:
        return to_storage_datetime(value)
    if name in ENUM_FIELDS:
        try:
            return ENUM_FIELDS[name](value).value
        except ValueError as e:
            raise InvalidStateError(f"Invalid {name}: {value!r}") from e
    return getattr(value, "value", value)


def _transaction_from_record(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        owner_id=record.owner_id,
        amount=record.amount,
        type=TransactionType(record.type),
        category=record.category,
        description=record.description,
        date=record.date,
        is_recurring=record.is_recurring,
        subscription_id=record.subscription_id,
        installment_group_id=record.installment_group_id,
        installment_number=record.installment_number,
        total_installments=record.total_installments,
        is_installment=record.is_installment,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _subscription_from_record(record: SubscriptionRecord) -> Subscription:
    return Subscription(
        id=record.id,
        owner_id=record.owner_id,
        amount=record.amount,
        type=TransactionType(record.type),
        category=record.category,
        description=record.description,
        date=record.date,
        is_recurring=record.is_recurring,
        subscription_id=record.subscription_id,
        installment_group_id=record.installment_group_id,
        installment_number=record.installment_number,
        total_installments=record.total_installments,
        is_installment=record.is_installment,
        frequency=Frequency(record.frequency),
        next_payment_date=record.next_payment_date,
        auto_renew=record.auto_renew,
        last_payment_date=record.last_payment_date,
        last_payment_transaction_id=record.last_payment_transaction_id,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _purchase_from_record(record: InstallmentPurchaseRecord) -> InstallmentPurchase:
    return InstallmentPurchase(
        id=record.id,
        owner_id=record.owner_id,
        description=record.description,
        total_amount=record.total_amount,
        installment_amount=record.installment_amount,
        total_installments=record.total_installments,
        paid_installments=record.paid_installments,
        start_date=record.start_date,
        next_due_date=record.next_due_date,
        category=record.category,
        is_completed=record.is_completed,
        transaction_ids=list(record.transaction_ids or []),
        version=record.version,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class OwnedRepository:
    """Base repository for records scoped to a single owner"""

    record_cls: Any = None
    mutable_fields: Iterable[str] = ()

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_owned_record(self, owner_id: str, record_id: str):
        """
        Load a record and check it belongs to owner_id.

        Raises:
            NotFoundError: If no record has this id
            PermissionDeniedError: If the record belongs to another owner
        """
        record = await self.db.get(self.record_cls, record_id)
        if record is None:
            raise NotFoundError(f"{self.record_cls.__tablename__}/{record_id} not found")
        if record.owner_id != owner_id:
            raise PermissionDeniedError(
                f"{self.record_cls.__tablename__}/{record_id} does not belong to this owner"
            )
        return record

    async def _list_records(self, owner_id: str, order_by=None) -> list:
        stmt = select(self.record_cls).where(self.record_cls.owner_id == owner_id)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def _apply_fields(self, record, fields: Dict[str, Any]) -> None:
        """Apply a partial update; unknown or protected fields are rejected"""
        rejected = set(fields) - set(self.mutable_fields)
        if rejected:
            raise InvalidStateError(f"Fields cannot be updated: {', '.join(sorted(rejected))}")
        for name, value in fields.items():
            setattr(record, name, _db_value(name, value))
        record.updated_at = utcnow()

    async def delete(self, owner_id: str, record_id: str) -> None:
        record = await self._get_owned_record(owner_id, record_id)
        await self.db.delete(record)
        await self.db.flush()


class TransactionRepository(OwnedRepository):
    """Repository for transactions"""

    record_cls = TransactionRecord
    mutable_fields = LEDGER_ENTRY_FIELDS

    def __init__(self, db: AsyncSession, enforce_indexes: Optional[bool] = None):
        super().__init__(db)
        self.enforce_indexes = settings.enforce_query_indexes if enforce_indexes is None else enforce_indexes

    async def add(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction; id and timestamps are generated"""
        record = TransactionRecord(
            owner_id=transaction.owner_id,
            **{name: _db_value(name, getattr(transaction, name)) for name in LEDGER_ENTRY_FIELDS},
        )
        self.db.add(record)
        await self.db.flush()
        return _transaction_from_record(record)

    async def get(self, owner_id: str, transaction_id: str) -> Transaction:
        return _transaction_from_record(await self._get_owned_record(owner_id, transaction_id))

    async def update(self, owner_id: str, transaction_id: str, fields: Dict[str, Any]) -> Transaction:
        record = await self._get_owned_record(owner_id, transaction_id)
        self._apply_fields(record, fields)
        await self.db.flush()
        return _transaction_from_record(record)

    async def list_by_owner(self, owner_id: str, ordered: bool = True) -> List[Transaction]:
        """
        Fetch all transactions of an owner.

        Args:
            owner_id: Owner identity
            ordered: Ask the database for date-descending order. This needs the
                (owner_id, date) composite index.

        Raises:
            IndexMissingError: If ordered and the index is not declared while
                index enforcement is on
        """
        order_by = None
        if ordered:
            await self._require_index(TRANSACTIONS_ORDERED_INDEX)
            order_by = TransactionRecord.date.desc()
        records = await self._list_records(owner_id, order_by=order_by)
        return [_transaction_from_record(r) for r in records]

    async def _require_index(self, index_name: str) -> None:
        if not self.enforce_indexes:
            return
        table = self.record_cls.__tablename__
        declared = await self.db.run_sync(
            lambda sync_session: {ix["name"] for ix in inspect(sync_session.connection()).get_indexes(table)}
        )
        if index_name not in declared:
            raise IndexMissingError(table, index_name)


class SubscriptionRepository(OwnedRepository):
    """Repository for subscriptions"""

    record_cls = SubscriptionRecord
    mutable_fields = SUBSCRIPTION_FIELDS

    async def add(self, subscription: Subscription) -> Subscription:
        record = SubscriptionRecord(
            owner_id=subscription.owner_id,
            **{name: _db_value(name, getattr(subscription, name)) for name in SUBSCRIPTION_FIELDS},
        )
        self.db.add(record)
        await self.db.flush()
        return _subscription_from_record(record)

    async def get(self, owner_id: str, subscription_id: str) -> Subscription:
        return _subscription_from_record(await self._get_owned_record(owner_id, subscription_id))

    async def update(self, owner_id: str, subscription_id: str, fields: Dict[str, Any]) -> Subscription:
        record = await self._get_owned_record(owner_id, subscription_id)
        self._apply_fields(record, fields)
        await self.db.flush()
        return _subscription_from_record(record)

    async def list_by_owner(self, owner_id: str) -> List[Subscription]:
        """Unordered fetch; callers sort in memory"""
        return [_subscription_from_record(r) for r in await self._list_records(owner_id)]


class InstallmentPurchaseRepository(OwnedRepository):
    """Repository for installment purchases"""

    record_cls = InstallmentPurchaseRecord
    mutable_fields = PURCHASE_FIELDS

    async def add(self, purchase: InstallmentPurchase) -> InstallmentPurchase:
        record = InstallmentPurchaseRecord(
            owner_id=purchase.owner_id,
            description=purchase.description,
            total_amount=purchase.total_amount,
            installment_amount=purchase.installment_amount,
            total_installments=purchase.total_installments,
            paid_installments=purchase.paid_installments,
            start_date=to_storage_datetime(purchase.start_date),
            next_due_date=to_storage_datetime(purchase.next_due_date),
            category=_db_value("category", purchase.category),
            is_completed=purchase.is_completed,
            transaction_ids=list(purchase.transaction_ids),
        )
        self.db.add(record)
        await self.db.flush()
        return _purchase_from_record(record)

    async def get(self, owner_id: str, purchase_id: str) -> InstallmentPurchase:
        return _purchase_from_record(await self._get_owned_record(owner_id, purchase_id))

    async def list_by_owner(self, owner_id: str) -> List[InstallmentPurchase]:
        return [_purchase_from_record(r) for r in await self._list_records(owner_id)]

    async def update(self, owner_id: str, purchase_id: str, fields: Dict[str, Any]) -> InstallmentPurchase:
        record = await self._get_owned_record(owner_id, purchase_id)
        self._apply_fields(record, fields)
        record.version = record.version + 1
        await self.db.flush()
        return _purchase_from_record(record)

    async def save_progress(self, purchase: InstallmentPurchase, expected_version: int) -> InstallmentPurchase:
        """
        Write payment progress with a conditional update on the version token.

        Raises:
            ConcurrentModificationError: If another writer changed the purchase
                after expected_version was read
        """
        now = utcnow()
        stmt = (
            update(InstallmentPurchaseRecord)
            .where(
                InstallmentPurchaseRecord.id == purchase.id,
                InstallmentPurchaseRecord.version == expected_version,
            )
            .values(
                paid_installments=purchase.paid_installments,
                is_completed=purchase.is_completed,
                transaction_ids=list(purchase.transaction_ids),
                next_due_date=to_storage_datetime(purchase.next_due_date),
                version=expected_version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"installment_purchases/{purchase.id} changed since version {expected_version}"
            )

        return replace(purchase, version=expected_version + 1, updated_at=now)
