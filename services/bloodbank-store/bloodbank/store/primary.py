from pymongo import AsyncMongoClient, ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError
from typing import Any, Awaitable, Callable, List, Mapping, Optional
from bson import ObjectId
import structlog

from ..core.config import settings
from ..core.exceptions import ConnectivityFailure, DuplicateRecordError
from ..models.records import Collections
from .base import Record, RecordBackend, UNIQUE_KEYS
from .query import Criteria, SortSpec, to_mongo_filter

logger = structlog.get_logger()


def _normalize(document: Optional[Mapping[str, Any]]) -> Optional[Record]:
    if document is None:
        return None
    record = dict(document)
    record["_id"] = str(record["_id"])
    return record


class MongoBackend(RecordBackend):
    """MongoDB backend; inserts and upserts run inside transactions."""

    name = "primary"

    def __init__(
        self,
        uri: Optional[str] = None,
        database: Optional[str] = None,
        server_selection_timeout_ms: Optional[int] = None,
        connect_timeout_ms: Optional[int] = None,
    ):
        self.uri = uri or settings.MONGODB_URI
        self.database_name = database or settings.MONGODB_DATABASE
        self.server_selection_timeout_ms = (
            server_selection_timeout_ms or settings.SERVER_SELECTION_TIMEOUT_MS
        )
        self.connect_timeout_ms = connect_timeout_ms or settings.CONNECT_TIMEOUT_MS
        self.client: Optional[AsyncMongoClient] = None
        self.db = None

    async def connect(self) -> None:
        """
        Open the client, verify the server answers and create indexes.

        Raises:
            ConnectivityFailure: If the server is unreachable within the
                configured timeouts or index creation fails
        """
        client = None
        try:
            client = AsyncMongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                connectTimeoutMS=self.connect_timeout_ms,
                retryWrites=True,
                retryReads=True,
                tz_aware=True,
            )
            await client.admin.command("ping")
            db = client.get_default_database(default=self.database_name)
            await self._create_indexes(db)
        except PyMongoError as e:
            if client is not None:
                await self._close_quietly(client)
            raise ConnectivityFailure(str(e)) from e

        self.client = client
        self.db = db
        logger.info("Connected to MongoDB", database=db.name)

    async def _create_indexes(self, db) -> None:
        for collection, field in UNIQUE_KEYS.items():
            await db[collection].create_index([(field, ASCENDING)], unique=True)
        await db[Collections.REQUESTS].create_index(
            [("bloodType", ASCENDING), ("urgency", ASCENDING)]
        )

    async def _close_quietly(self, client: AsyncMongoClient) -> None:
        try:
            await client.close()
        except PyMongoError as e:
            logger.warning("Failed to close MongoDB client", error=str(e))

    async def close(self) -> None:
        """Close the client if one is held."""
        if self.client is None:
            return
        client, self.client, self.db = self.client, None, None
        await client.close()
        logger.info("MongoDB connection closed")

    async def _in_transaction(self, operation: Callable[[Any], Awaitable[Any]]) -> Any:
        async with self.client.start_session() as session:
            return await session.with_transaction(operation)

    async def insert_one(self, collection: str, record: Record) -> str:
        async def insert(session):
            return await self.db[collection].insert_one(record, session=session)

        try:
            result = await self._in_transaction(insert)
        except DuplicateKeyError as e:
            raise DuplicateRecordError(collection, UNIQUE_KEYS.get(collection, "_id")) from e
        return str(result.inserted_id)

    async def find_by_id(self, collection: str, record_id: ObjectId) -> Optional[Record]:
        document = await self.db[collection].find_one({"_id": record_id})
        return _normalize(document)

    async def find_one(self, collection: str, criteria: Criteria) -> Optional[Record]:
        document = await self.db[collection].find_one(to_mongo_filter(criteria))
        return _normalize(document)

    async def find_many(
        self,
        collection: str,
        criteria: Optional[Criteria] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Record]:
        cursor = self.db[collection].find(to_mongo_filter(criteria or {}))
        if sort:
            cursor = cursor.sort(list(sort))
        documents = await cursor.to_list()
        return [_normalize(document) for document in documents]

    async def update_by_id(
        self,
        collection: str,
        record_id: ObjectId,
        fields: Optional[Mapping[str, Any]] = None,
        increments: Optional[Mapping[str, int]] = None,
        criteria: Optional[Criteria] = None,
    ) -> int:
        query = to_mongo_filter(criteria or {})
        query["_id"] = record_id

        update = {}
        if fields:
            update["$set"] = dict(fields)
        if increments:
            update["$inc"] = dict(increments)

        result = await self.db[collection].update_one(query, update)
        return result.modified_count

    async def upsert_increment(
        self,
        collection: str,
        key: Mapping[str, Any],
        increments: Mapping[str, int],
    ) -> int:
        async def apply(session):
            return await self.db[collection].update_one(
                dict(key),
                {"$inc": dict(increments)},
                upsert=True,
                session=session,
            )

        result = await self._in_transaction(apply)
        # A zero increment modifies nothing but still counts as applied
        return 1 if result.matched_count or result.upserted_id is not None else 0
