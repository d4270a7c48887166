import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import ConnectionFailure, PyMongoError
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from autoincrement.core.modules.counter.models import CounterKey, CounterRecord
from autoincrement.errors import CounterNotFoundError, DuplicateKeyError, StoreError, StoreUnavailableError


class CounterStore(ABC):
    """Table of (model, field) -> count with atomic single-document updates."""

    @abstractmethod
    async def ensure_schema(self) -> None:
        """Create the backing table and its unique (model, field) constraint if absent."""

    @abstractmethod
    async def find_counter(self, key: CounterKey) -> CounterRecord | None:
        """Point lookup without side effects."""

    @abstractmethod
    async def create_counter(self, key: CounterKey, initial_count: int) -> CounterRecord:
        """Insert a new counter. Raises DuplicateKeyError if one already exists."""

    @abstractmethod
    async def increment_and_fetch(self, key: CounterKey, delta: int) -> CounterRecord:
        """Atomically add delta to count and return the updated counter."""

    @abstractmethod
    async def conditional_raise_to(self, key: CounterKey, value: int) -> bool:
        """Atomically set count to value if count < value. Returns True if the counter changed."""

    @abstractmethod
    async def reset_to(self, key: CounterKey, count: int) -> CounterRecord:
        """Atomically set count, creating the counter if needed, and return it."""


@asynccontextmanager
async def _translate_errors() -> AsyncGenerator[None]:
    try:
        yield
    except MongoDuplicateKeyError as e:
        raise DuplicateKeyError(str(e)) from e
    except ConnectionFailure as e:
        raise StoreUnavailableError(str(e)) from e
    except PyMongoError as e:
        raise StoreError(str(e)) from e
    except ValidationError as e:
        raise StoreError(f"Malformed counter document: {e}") from e


class MongoCounterStore(CounterStore):
    """Counter store backed by a MongoDB collection."""

    def __init__(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        self._collection = collection

    async def ensure_schema(self) -> None:
        # create_index is idempotent, concurrent creators converge on the same index
        async with _translate_errors():
            await self._collection.create_index([("field", 1), ("model", 1)], unique=True)

    async def find_counter(self, key: CounterKey) -> CounterRecord | None:
        async with _translate_errors():
            doc = await self._collection.find_one(key.to_filter())
            if doc is None:
                return None
            return CounterRecord.model_validate(doc)

    async def create_counter(self, key: CounterKey, initial_count: int) -> CounterRecord:
        counter = CounterRecord(collection_name=key.collection_name, field_name=key.field_name, count=initial_count)
        async with _translate_errors():
            await self._collection.insert_one(counter.to_mongo())
        return counter

    async def increment_and_fetch(self, key: CounterKey, delta: int) -> CounterRecord:
        async with _translate_errors():
            doc = await self._collection.find_one_and_update(
                key.to_filter(),
                {"$inc": {"count": delta}},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                raise CounterNotFoundError(f"Counter '{key.collection_name}.{key.field_name}' not found")
            return CounterRecord.model_validate(doc)

    async def conditional_raise_to(self, key: CounterKey, value: int) -> bool:
        async with _translate_errors():
            result = await self._collection.update_one(
                {**key.to_filter(), "count": {"$lt": value}},
                {"$set": {"count": value}},
            )
        return result.modified_count > 0

    async def reset_to(self, key: CounterKey, count: int) -> CounterRecord:
        async with _translate_errors():
            doc = await self._collection.find_one_and_update(
                key.to_filter(),
                {"$set": {"count": count}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
            return CounterRecord.model_validate(doc)


class InMemoryCounterStore(CounterStore):
    """Process-local counter store, for tests and single-process use."""

    def __init__(self) -> None:
        self._counters: dict[CounterKey, int] = {}
        self._lock = asyncio.Lock()

    async def ensure_schema(self) -> None:
        """Uniqueness is implied by the dict key."""

    async def find_counter(self, key: CounterKey) -> CounterRecord | None:
        if key not in self._counters:
            return None
        return self._record(key)

    async def create_counter(self, key: CounterKey, initial_count: int) -> CounterRecord:
        async with self._lock:
            if key in self._counters:
                raise DuplicateKeyError(f"Counter '{key.collection_name}.{key.field_name}' already exists")
            self._counters[key] = initial_count
            return self._record(key)

    async def increment_and_fetch(self, key: CounterKey, delta: int) -> CounterRecord:
        async with self._lock:
            if key not in self._counters:
                raise CounterNotFoundError(f"Counter '{key.collection_name}.{key.field_name}' not found")
            self._counters[key] += delta
            return self._record(key)

    async def conditional_raise_to(self, key: CounterKey, value: int) -> bool:
        async with self._lock:
            if key not in self._counters or self._counters[key] >= value:
                return False
            self._counters[key] = value
            return True

    async def reset_to(self, key: CounterKey, count: int) -> CounterRecord:
        async with self._lock:
            self._counters[key] = count
            return self._record(key)

    def _record(self, key: CounterKey) -> CounterRecord:
        return CounterRecord(collection_name=key.collection_name, field_name=key.field_name, count=self._counters[key])
