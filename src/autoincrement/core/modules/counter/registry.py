from collections.abc import Mapping
from typing import Any

import structlog

from autoincrement.core.modules.allocation.interceptor import SaveInterceptor
from autoincrement.core.modules.allocation.models import AllocationConfig
from autoincrement.core.modules.allocation.service import AllocationService
from autoincrement.core.modules.counter.models import CounterKey
from autoincrement.core.modules.counter.store import CounterStore
from autoincrement.core.modules.document.service import DocumentCollection
from autoincrement.errors import ConfigurationError, NotInitializedError

logger = structlog.get_logger(__name__)


class CounterRegistry:
    """Process-scoped owner of the counter store and its allocation services.

    on_start prepares the counter schema; only then can fields be bound.
    Exactly one AllocationService exists per (model, field) pair, shared by
    every binding of that pair.
    """

    def __init__(self, store: CounterStore, retry_interval: float = 0.1) -> None:
        self.store = store
        self._retry_interval = retry_interval
        self._initialized = False
        self._services: dict[CounterKey, AllocationService] = {}

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def ensure_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError

    async def on_start(self) -> None:
        """Create the counter schema on startup."""
        await self.ensure_schema()

    async def on_stop(self) -> None:
        """Stop pending bootstraps and forget all bound services."""
        for service in self._services.values():
            await service.stop()
        self._services.clear()
        self._initialized = False

    async def ensure_schema(self) -> None:
        """Idempotent, safe to run from several processes at once."""
        await self.store.ensure_schema()
        self._initialized = True
        logger.debug("counter_schema_ready")

    def get_service(self, collection_name: str, field_name: str = "_id") -> AllocationService:
        key = CounterKey(collection_name, field_name)
        if key not in self._services:
            raise ConfigurationError(f"No counter bound for '{collection_name}.{field_name}'")
        return self._services[key]

    def bind(self, options: str | Mapping[str, Any]) -> AllocationService:
        """Get or create the AllocationService for the given options and start its bootstrap.

        Bootstrap starts immediately when called inside a running event loop,
        otherwise on first use.
        """
        self.ensure_initialized()
        config = AllocationConfig.parse(options)

        service = self._services.get(config.key)
        if service is not None:
            if service.config != config:
                raise ConfigurationError(
                    f"Counter '{config.collection_name}.{config.field_name}' is already bound with different options"
                )
            return service

        service = AllocationService(self, self.store, config, retry_interval=self._retry_interval)
        self._services[config.key] = service
        try:
            service.start()
        except RuntimeError:
            logger.debug("counter_bootstrap_deferred", model=config.collection_name, field=config.field_name)
        return service

    def plugin(self, collection: DocumentCollection[Any], options: str | Mapping[str, Any]) -> AllocationService:
        """Sequence a field of the collection's documents.

        New documents get the next value on insert, and the document class
        gains next_count() and reset_count(), callable on the class or on any
        instance.
        """
        service = self.bind(options)
        config = service.config

        collection.pre_insert.append(SaveInterceptor(service))
        if config.enforce_unique_field:
            collection.add_unique_index(config.field_name)

        document_class = collection.document_class
        document_class.next_count = staticmethod(service.peek_next)  # type: ignore[attr-defined]
        document_class.reset_count = staticmethod(service.reset_to_start)  # type: ignore[attr-defined]
        return service
