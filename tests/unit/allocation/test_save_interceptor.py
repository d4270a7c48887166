"""Tests for the pre-insert allocation hook."""

from fractions import Fraction

import pytest
from bson.int64 import Int64

from autoincrement.core.modules.allocation.interceptor import SaveInterceptor, explicit_value
from autoincrement.core.modules.counter.registry import CounterRegistry
from autoincrement.core.modules.counter.store import InMemoryCounterStore
from autoincrement.errors import AllocationFailedError, StoreError


class TestExplicitValue:
    """Tests for detecting caller-supplied values."""

    def test_integers_are_explicit(self):
        assert explicit_value(0) == 0
        assert explicit_value(10) == 10
        assert explicit_value(-3) == -3

    def test_integral_numbers_are_explicit(self):
        assert explicit_value(10.0) == 10
        assert type(explicit_value(10.0)) is int
        assert explicit_value(Int64(12)) == 12
        assert explicit_value(Fraction(8, 2)) == 4

    def test_non_numbers_are_absent(self):
        assert explicit_value(None) is None
        assert explicit_value("10") is None
        assert explicit_value(True) is None

    def test_fractional_numbers_are_rejected(self):
        with pytest.raises(AllocationFailedError, match="not an integer"):
            explicit_value(1.5)
        with pytest.raises(AllocationFailedError):
            explicit_value(float("nan"))
        with pytest.raises(AllocationFailedError):
            explicit_value(float("inf"))


class TestSaveInterceptor:
    """Tests for filling the sequenced field of new documents."""

    @pytest.mark.asyncio
    async def test_allocates_identity_field(self, registry, user_class):
        interceptor = SaveInterceptor(registry.bind("User"))
        first, second = user_class(name="a"), user_class(name="b")

        await interceptor(first)
        await interceptor(second)

        assert first.id == 0
        assert second.id == 1

    @pytest.mark.asyncio
    async def test_allocates_secondary_field(self, registry, user_class):
        interceptor = SaveInterceptor(registry.bind({"model": "User", "field": "userId", "incrementBy": 5}))
        doc = user_class(name="a")

        await interceptor(doc)

        assert doc.get_field("userId") == 0
        assert doc.id is None

    @pytest.mark.asyncio
    async def test_keeps_explicit_value(self, registry, user_class):
        interceptor = SaveInterceptor(registry.bind("User"))
        explicit = user_class(id=10)
        automatic = user_class()

        await interceptor(explicit)
        await interceptor(automatic)

        assert explicit.id == 10
        assert automatic.id == 11

    @pytest.mark.asyncio
    async def test_replaces_non_numeric_value(self, registry, user_class):
        interceptor = SaveInterceptor(registry.bind({"model": "User", "field": "userId"}))
        doc = user_class(userId="pending")

        await interceptor(doc)

        assert doc.get_field("userId") == 0

    @pytest.mark.asyncio
    async def test_skips_persisted_documents(self, registry, user_class):
        service = registry.bind("User")
        interceptor = SaveInterceptor(service)
        doc = user_class.from_mongo({"_id": 5, "name": "a"})

        await interceptor(doc)

        assert doc.id == 5
        assert await service.peek_next() == 0

    @pytest.mark.asyncio
    async def test_failure_leaves_document_untouched(self, user_class):
        class FailingStore(InMemoryCounterStore):
            async def increment_and_fetch(self, key, delta):
                raise StoreError("write conflict")

        registry = CounterRegistry(FailingStore())
        await registry.on_start()
        interceptor = SaveInterceptor(registry.bind("User"))
        doc = user_class()

        with pytest.raises(AllocationFailedError):
            await interceptor(doc)
        assert doc.id is None
        await registry.on_stop()
