"""Shared pytest fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from autoincrement.core.modules.counter.registry import CounterRegistry
from autoincrement.core.modules.counter.store import InMemoryCounterStore
from autoincrement.core.modules.document.models import Document
from autoincrement.core.modules.document.service import DocumentCollection


def make_mongo_collection(name: str = "users") -> MagicMock:
    """Create a mock pymongo AsyncCollection that accepts every write."""
    collection = MagicMock()
    collection.name = name
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="generated-id"))
    collection.replace_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def store():
    """Create an empty in-memory counter store."""
    return InMemoryCounterStore()


@pytest_asyncio.fixture
async def registry(store):
    """Create a started counter registry over the in-memory store."""
    registry = CounterRegistry(store, retry_interval=0.001)
    await registry.on_start()
    yield registry
    await registry.on_stop()


@pytest.fixture
def user_class():
    """Create a fresh document class, so bound helpers do not leak between tests."""

    class User(Document):
        name: str = ""

    return User


@pytest.fixture
def mongo_users():
    return make_mongo_collection("users")


@pytest.fixture
def users(mongo_users, user_class):
    """Create a user collection over a mock MongoDB collection."""
    return DocumentCollection(mongo_users, user_class)
