from typing import Any, Optional


class StoreError(Exception):
    """Base class for errors raised by the blood bank store."""


class ValidationError(StoreError):
    """A required field is missing or has the wrong type."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"Missing required field: {field}")


class InvalidIdentifierError(StoreError):
    """An identifier could not be parsed into a record key."""

    def __init__(self, identifier: Any):
        self.identifier = identifier
        super().__init__(f"Invalid identifier format: {identifier!r}")


class DuplicateRecordError(StoreError):
    """A unique key already exists in the target collection."""

    def __init__(self, collection: str, field: str):
        self.collection = collection
        self.field = field
        super().__init__(f"Duplicate {field} in {collection}")


class ConnectivityFailure(StoreError):
    """The primary document store could not be reached."""


class PersistenceFailure(StoreError):
    """The fallback store could not be written to disk."""
