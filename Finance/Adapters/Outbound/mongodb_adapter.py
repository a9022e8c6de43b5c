"""Adapter that backs the document store port with MongoDB."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from Finance.Domain.errors import CacheError, ConfigurationError
from Finance.Domain.models import DATABASE_NAME
from Finance.Ports.Outbound.document_store_interface import DocumentStore

logger = logging.getLogger(__name__)


def normalize_connection_string(connection_string: str) -> str:
    if connection_string.startswith(("mongodb://", "mongodb+srv://")):
        return connection_string
    return f"mongodb://{connection_string}"


def _stringify_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def _object_id(record_id: str) -> ObjectId:
    try:
        return ObjectId(record_id)
    except (InvalidId, TypeError) as e:
        raise CacheError(f"Invalid ObjectId: {record_id}") from e


class MongoDBAdapter(DocumentStore):
    """
    Concrete DocumentStore over one MongoDB database. Partitions are
    collections. The driver is synchronous, so every call runs in a worker
    thread.
    """

    connection_string: Optional[str] = None
    database: str = DATABASE_NAME
    server_selection_timeout_ms: int = 5000

    _client: MongoClient | None = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> MongoClient:
        if self._client is not None:
            return self._client

        if not self.connection_string:
            raise ConfigurationError("MONGODB_CONNECTION_STRING environment variable is not defined")

        uri = normalize_connection_string(self.connection_string)
        try:
            client = MongoClient(uri, serverSelectionTimeoutMS=self.server_selection_timeout_ms)
            await asyncio.to_thread(client.admin.command, "ping")
        except PyMongoError as e:
            raise CacheError(f"Failed to connect to MongoDB: {e}") from e

        self._client = client
        logger.info(f"Connected to MongoDB database '{self.database}'")
        return client

    async def disconnect(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await asyncio.to_thread(client.close)
        logger.info("Disconnected from MongoDB")

    def _db(self) -> Database:
        if self._client is None:
            raise CacheError("Not connected to MongoDB. Call connect() first.")
        return self._client[self.database]

    async def _run(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except PyMongoError as e:
            raise CacheError(f"MongoDB operation failed: {e}") from e

    # ------------------------------------------------------------------
    # Port
    # ------------------------------------------------------------------

    async def find(
        self,
        partition: str,
        filter: Dict[str, Any],
        sort: Optional[Dict[str, int]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        collection = self._db()[partition]

        def _query() -> List[Dict[str, Any]]:
            cursor = collection.find(filter)
            if sort:
                cursor = cursor.sort(list(sort.items()))
            if limit:
                cursor = cursor.limit(limit)
            return [_stringify_id(doc) for doc in cursor]

        return await self._run(_query)

    async def upsert(self, partition: str, filter: Dict[str, Any], record: Dict[str, Any]) -> bool:
        collection = self._db()[partition]
        result = await self._run(collection.replace_one, filter, dict(record), upsert=True)
        return bool(result.acknowledged)

    # ------------------------------------------------------------------
    # Collection / document maintenance
    # ------------------------------------------------------------------

    async def list_partitions(self) -> List[str]:
        return await self._run(self._db().list_collection_names)

    async def create_partition(self, partition: str) -> None:
        if partition in await self.list_partitions():
            raise CacheError(f"Collection '{partition}' already exists in database '{self.database}'")
        await self._run(self._db().create_collection, partition)

    async def drop_partition(self, partition: str) -> bool:
        """Returns False when the collection did not exist."""
        if partition not in await self.list_partitions():
            return False
        await self._run(self._db()[partition].drop)
        return True

    async def list_records(self, partition: str) -> List[Dict[str, Any]]:
        return await self.find(partition, {})

    async def create_record(self, partition: str, record: Dict[str, Any]) -> str:
        result = await self._run(self._db()[partition].insert_one, dict(record))
        return str(result.inserted_id)

    async def update_record(self, partition: str, record_id: str, fields: Dict[str, Any]) -> bool:
        """Partial ``$set`` update. True when a document was modified."""
        oid = _object_id(record_id)
        result = await self._run(self._db()[partition].update_one, {"_id": oid}, {"$set": fields})
        return result.modified_count > 0

    async def delete_record(self, partition: str, record_id: str) -> bool:
        oid = _object_id(record_id)
        result = await self._run(self._db()[partition].delete_one, {"_id": oid})
        return result.deleted_count > 0
