from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional
from bson import ObjectId

from ..models.records import Collections
from .query import Criteria, SortSpec

Record = Dict[str, Any]

# Natural keys that must be unique within their collection
UNIQUE_KEYS: Dict[str, str] = {
    Collections.DONORS: "email",
    Collections.INVENTORY: "bloodType",
    Collections.USERS: "email",
}


class RecordBackend(ABC):
    """
    Capability set shared by the primary and fallback backends.

    Records handed back to callers always carry ``_id`` as a hex string,
    whatever the backend stores natively.
    """

    name: str = "backend"

    @abstractmethod
    async def insert_one(self, collection: str, record: Record) -> str:
        """Insert ``record`` (which already carries an ObjectId ``_id``) and return its id."""

    @abstractmethod
    async def find_by_id(self, collection: str, record_id: ObjectId) -> Optional[Record]:
        """Return the record with ``record_id`` or None."""

    @abstractmethod
    async def find_one(self, collection: str, criteria: Criteria) -> Optional[Record]:
        """Return the first record matching ``criteria`` or None."""

    @abstractmethod
    async def find_many(
        self,
        collection: str,
        criteria: Optional[Criteria] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Record]:
        """Return every record matching ``criteria``, ordered by ``sort``."""

    @abstractmethod
    async def update_by_id(
        self,
        collection: str,
        record_id: ObjectId,
        fields: Optional[Mapping[str, Any]] = None,
        increments: Optional[Mapping[str, int]] = None,
        criteria: Optional[Criteria] = None,
    ) -> int:
        """
        Set ``fields`` and add ``increments`` on one record.

        ``criteria`` further restricts the match. Returns the number of
        records modified (0 or 1).
        """

    @abstractmethod
    async def upsert_increment(
        self,
        collection: str,
        key: Mapping[str, Any],
        increments: Mapping[str, int],
    ) -> int:
        """Atomically add ``increments`` to the record matching ``key``, creating it if needed."""
