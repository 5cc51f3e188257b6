class SyncError(Exception):
    """Base class for inventory sync exceptions."""

class EntityNotFoundError(SyncError):
    """Raised when an id is not present in the local collection."""
    def __init__(self, entity_id: str, collection: str = ""):
        where = f" in {collection}" if collection else ""
        super().__init__(f"Entity {entity_id!r} not found{where}")
        self.entity_id = entity_id

class ValidationError(SyncError):
    """Raised when validation fails; include details in message."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

class RemoteError(SyncError):
    """Raised by a remote collection when an operation fails."""

class RemoteUnavailableError(RemoteError):
    """Network failure or timeout talking to the document store."""

class RemoteRejectedError(RemoteError):
    """The document store refused the operation (business rule, permission, not found)."""

class OfflineQueueError(SyncError):
    """Raised when the offline queue cannot be used."""

class InsufficientStockError(SyncError):
    """Raised when a POS sale asks for more than is on hand."""
    def __init__(self, item_name: str, available: int):
        super().__init__(f"Insufficient stock for {item_name}. Available: {available}")
        self.item_name = item_name
        self.available = available
