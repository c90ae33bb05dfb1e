"""Shared plumbing for ledger services"""

from typing import Any, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from finance_ledger.config import settings
from finance_ledger.domain.exceptions import InvalidStateError, NotAuthenticatedError
from finance_ledger.infrastructure.database.session import unit_of_work
from finance_ledger.utils.date_utils import DateLike, to_storage_datetime, utcnow


def require_owner(owner_id: Optional[str]) -> str:
    """Return the owner id or raise NotAuthenticatedError when it is missing"""
    if not owner_id or not owner_id.strip():
        raise NotAuthenticatedError("An owner id is required for ledger operations")
    return owner_id


def normalize_date(value: DateLike, field: str = "date"):
    """Storage datetime for a caller-supplied value, as InvalidStateError on bad input"""
    try:
        return to_storage_datetime(value)
    except (TypeError, ValueError) as e:
        raise InvalidStateError(f"Invalid {field}: {value!r}") from e


def normalize_fields(fields: Dict[str, Any], date_fields) -> Dict[str, Any]:
    """Copy of a partial update with its date fields normalized"""
    return {
        name: normalize_date(value, name) if name in date_fields and value is not None else value
        for name, value in fields.items()
    }


class LedgerService:
    """
    Base class for services that run each operation as one unit of work.

    Args:
        session_factory: Async session factory bound to the ledger database
        clock: Returns "now" in the storage representation
        enforce_indexes: Override settings.enforce_query_indexes
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], Any] = utcnow,
        enforce_indexes: Optional[bool] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.enforce_indexes = settings.enforce_query_indexes if enforce_indexes is None else enforce_indexes

    def _unit_of_work(self):
        return unit_of_work(self.session_factory)
