from typing import Any, Mapping, Sequence, TYPE_CHECKING
from datetime import datetime
from bson import ObjectId
from bson.errors import InvalidId

from ..core.exceptions import InvalidIdentifierError, ValidationError
from ..models.records import BloodType
from ..store.base import RecordBackend
from ..utils.monitoring import track_store_operation

if TYPE_CHECKING:
    from .facade import BloodBankStore


def require_fields(data: Any, fields: Sequence[str]) -> None:
    """
    Check that ``data`` is a mapping carrying every field in ``fields``.

    Raises:
        ValidationError: Naming the first field that is absent or empty
    """
    if not isinstance(data, Mapping):
        raise ValidationError("data", "Invalid record data: expected a mapping")
    for field in fields:
        if not data.get(field):
            raise ValidationError(field)


def require_blood_type(value: Any, field: str = "bloodType") -> str:
    """Return the canonical blood type string or raise ValidationError."""
    try:
        return BloodType(value).value
    except ValueError:
        raise ValidationError(field, f"Invalid blood type: {value!r}")


def parse_id(identifier: Any) -> ObjectId:
    """
    Parse an identifier into an ObjectId.

    Both backends key records by ObjectId, so the same format check applies
    whichever one is active.
    """
    if isinstance(identifier, ObjectId):
        return identifier
    if not identifier or not isinstance(identifier, str):
        raise InvalidIdentifierError(identifier)
    try:
        return ObjectId(identifier)
    except InvalidId:
        raise InvalidIdentifierError(identifier)


def require_datetime(value: Any, field: str) -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError(field, f"{field} must be a datetime")
    return value


class OperationSet:
    """Common plumbing for the per-entity operation sets."""

    collection: str = ""

    def __init__(self, store: "BloodBankStore"):
        self._store = store

    def _backend(self, operation: str) -> RecordBackend:
        backend = self._store.backend
        track_store_operation(self.collection, operation, backend.name)
        return backend

    def _now(self) -> datetime:
        return self._store.clock()

    async def get_by_id(self, record_id: Any):
        """Return the record or None; raises InvalidIdentifierError on a malformed id."""
        object_id = parse_id(record_id)
        return await self._backend("get_by_id").find_by_id(self.collection, object_id)
