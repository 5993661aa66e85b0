from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional
from bson import ObjectId
import asyncio
import copy
import json
import os
import time
import structlog

from ..core.config import settings
from ..core.exceptions import DuplicateRecordError, PersistenceFailure
from ..models.records import Collections, TIMESTAMP_FIELDS
from ..utils.monitoring import track_fallback_flush
from ..utils.timestamps import encode_timestamp, parse_timestamp
from .base import Record, RecordBackend, UNIQUE_KEYS
from .query import Criteria, SortSpec, matches, sort_records

logger = structlog.get_logger()

State = Dict[str, List[Record]]


def empty_state() -> State:
    return {name: [] for name in Collections.ALL}


def load_state(path: str) -> State:
    """
    Read the fallback file.

    A missing, empty or malformed file yields empty collections; the error is
    logged and never raised.
    """
    state = empty_state()
    if not os.path.exists(path):
        return state

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return state
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("top level must be an object")
    except (OSError, ValueError) as e:
        logger.error("Error reading fallback store file", path=path, error=str(e))
        return state

    for name in Collections.ALL:
        records = data.get(name) or []
        state[name] = [
            {
                field: parse_timestamp(value) if field in TIMESTAMP_FIELDS else value
                for field, value in record.items()
            }
            for record in records
            if isinstance(record, dict)
        ]
    return state


def save_state(path: str, state: State) -> None:
    """Rewrite the whole fallback file; replaces the old one atomically."""
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2, default=encode_timestamp)
    os.replace(tmp_path, path)


class JsonFileBackend(RecordBackend):
    """
    In-memory collections mirrored to a JSON file.

    Every mutation runs under one lock: mutate, flush the full store, and
    roll the in-memory state back if the flush fails.
    """

    name = "fallback"

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.FALLBACK_DB_FILE
        self._state = load_state(self.path)
        self._lock = asyncio.Lock()
        logger.info(
            "Fallback store loaded",
            path=self.path,
            records={name: len(records) for name, records in self._state.items()},
        )

    def snapshot(self) -> State:
        """Deep copy of every collection."""
        return copy.deepcopy(self._state)

    def _flush(self) -> None:
        start_time = time.time()
        try:
            save_state(self.path, self._state)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving fallback store", path=self.path, error=str(e))
            raise PersistenceFailure(f"Could not write {self.path}: {e}") from e
        finally:
            track_fallback_flush(time.time() - start_time)

    @asynccontextmanager
    async def _mutation(self) -> AsyncIterator[State]:
        async with self._lock:
            before = copy.deepcopy(self._state)
            try:
                yield self._state
                self._flush()
            except BaseException:
                self._state = before
                raise

    def _find(self, collection: str, record_id: str) -> Optional[Record]:
        for record in self._state[collection]:
            if record.get("_id") == record_id:
                return record
        return None

    def _check_unique(self, collection: str, record: Mapping[str, Any]) -> None:
        field = UNIQUE_KEYS.get(collection)
        if field is None or record.get(field) is None:
            return
        if any(r.get(field) == record[field] for r in self._state[collection]):
            raise DuplicateRecordError(collection, field)

    async def insert_one(self, collection: str, record: Record) -> str:
        logger.warning("Using fallback store for insert", collection=collection)
        new_record = copy.deepcopy(dict(record))
        new_record["_id"] = str(record["_id"])
        async with self._mutation() as state:
            self._check_unique(collection, new_record)
            state[collection].append(new_record)
        return new_record["_id"]

    async def find_by_id(self, collection: str, record_id: ObjectId) -> Optional[Record]:
        record = self._find(collection, str(record_id))
        return copy.deepcopy(record)

    async def find_one(self, collection: str, criteria: Criteria) -> Optional[Record]:
        for record in self._state[collection]:
            if matches(record, criteria):
                return copy.deepcopy(record)
        return None

    async def find_many(
        self,
        collection: str,
        criteria: Optional[Criteria] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Record]:
        records = [
            copy.deepcopy(record)
            for record in self._state[collection]
            if matches(record, criteria or {})
        ]
        if sort:
            sort_records(records, sort)
        return records

    async def update_by_id(
        self,
        collection: str,
        record_id: ObjectId,
        fields: Optional[Mapping[str, Any]] = None,
        increments: Optional[Mapping[str, int]] = None,
        criteria: Optional[Criteria] = None,
    ) -> int:
        if self._find(collection, str(record_id)) is None:
            return 0

        async with self._mutation():
            record = self._find(collection, str(record_id))
            if record is None or not matches(record, criteria or {}):
                return 0
            record.update(fields or {})
            for field, amount in (increments or {}).items():
                record[field] = (record.get(field) or 0) + amount
        return 1

    async def upsert_increment(
        self,
        collection: str,
        key: Mapping[str, Any],
        increments: Mapping[str, int],
    ) -> int:
        async with self._mutation() as state:
            record = next((r for r in state[collection] if matches(r, key)), None)
            if record is None:
                record = {"_id": str(ObjectId()), **copy.deepcopy(dict(key))}
                record.update({field: 0 for field in increments})
                state[collection].append(record)
            for field, amount in increments.items():
                record[field] = (record.get(field) or 0) + amount
        return 1
