"""Domain-specific exceptions"""


class LedgerError(Exception):
    """Base exception for the ledger core"""

    pass


class NotAuthenticatedError(LedgerError):
    """No owner identity was supplied for the operation"""

    pass


class PermissionDeniedError(LedgerError):
    """Record exists but belongs to another owner"""

    pass


class NotFoundError(LedgerError):
    """Requested record does not exist"""

    pass


class InvalidStateError(LedgerError):
    """Operation would violate an entity invariant or lifecycle rule"""

    pass


class ConcurrentModificationError(InvalidStateError):
    """Record changed between read and conditional write"""

    pass


class IndexMissingError(LedgerError):
    """Ordered query requires a composite index the database does not declare"""

    def __init__(self, collection: str, index_name: str):
        super().__init__(f"Query on '{collection}' requires index '{index_name}'")
        self.collection = collection
        self.index_name = index_name


class PersistenceUnavailableError(LedgerError):
    """Database rejected the call or could not be reached"""

    pass
