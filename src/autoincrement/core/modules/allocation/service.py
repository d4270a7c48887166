from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from autoincrement.core.modules.allocation.models import AllocationConfig
from autoincrement.core.modules.counter.store import CounterStore
from autoincrement.errors import AllocationFailedError, DuplicateKeyError, StoreError, StoreUnavailableError

if TYPE_CHECKING:
    from autoincrement.core.modules.counter.registry import CounterRegistry

logger = structlog.get_logger(__name__)


class AllocationService:
    """Allocates values for one (model, field) sequence.

    The service starts NotReady and becomes Ready once its counter is known to
    exist, either found or created by the bootstrap task. Every operation waits
    for readiness first. Readiness is process-local: concurrent processes each
    bootstrap on their own and the store's unique index arbitrates creation.
    """

    def __init__(
        self,
        registry: CounterRegistry,
        store: CounterStore,
        config: AllocationConfig,
        retry_interval: float = 0.1,
    ) -> None:
        self.config = config
        self._registry = registry
        self._store = store
        self._retry_interval = retry_interval
        self._bootstrap_task: asyncio.Task[None] | None = None

    @property
    def is_ready(self) -> bool:
        task = self._bootstrap_task
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    def start(self) -> asyncio.Task[None]:
        """Schedule the bootstrap task once. Requires a running event loop."""
        if self._bootstrap_task is None:
            self._bootstrap_task = asyncio.get_running_loop().create_task(self._bootstrap())
        return self._bootstrap_task

    async def stop(self) -> None:
        """Cancel a bootstrap that has not finished yet."""
        task = self._bootstrap_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._bootstrap_task = None

    async def wait_ready(self) -> None:
        """Suspend the caller until the counter exists.

        All waiters share the single bootstrap task. There is no timeout: while
        the store is unreachable the bootstrap keeps retrying, so callers that
        need a deadline should wrap this in asyncio.timeout().
        """
        self._registry.ensure_initialized()
        await asyncio.shield(self.start())

    async def peek_next(self) -> int:
        """Return the value the next allocation would yield, without reserving it.

        A concurrent allocation may consume the previewed value first.
        """
        await self.wait_ready()
        try:
            counter = await self._store.find_counter(self.config.key)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            raise AllocationFailedError(f"Failed to read counter '{self._label}': {e}") from e
        if counter is None:
            return self.config.start_at
        return counter.count + self.config.increment_by

    async def reset_to_start(self) -> int:
        """Rewind the sequence so the next allocation yields start_at. Returns start_at."""
        await self.wait_ready()
        try:
            await self._store.reset_to(self.config.key, self.config.initial_count)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            raise AllocationFailedError(f"Failed to reset counter '{self._label}': {e}") from e
        logger.info("counter_reset", model=self.config.collection_name, field=self.config.field_name)
        return self.config.start_at

    async def allocate_or_reconcile(self, candidate: int | None = None) -> int:
        """Allocate the next value, or honor an explicitly supplied one.

        With a candidate, the stored count is raised to it if lower, so later
        allocations move past it, and the candidate is returned unchanged. A
        candidate equal to the stored count leaves the counter untouched.
        Without a candidate, the counter is incremented atomically and the new
        count is returned.
        """
        await self.wait_ready()
        key = self.config.key
        try:
            if candidate is not None:
                raised = await self._store.conditional_raise_to(key, candidate)
                logger.debug(
                    "counter_reconciled", model=key.collection_name, field=key.field_name, value=candidate, raised=raised
                )
                return candidate

            counter = await self._store.increment_and_fetch(key, self.config.increment_by)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            raise AllocationFailedError(f"Failed to allocate from counter '{self._label}': {e}") from e

        logger.debug("counter_allocated", model=key.collection_name, field=key.field_name, value=counter.count)
        return counter.count

    async def _bootstrap(self) -> None:
        key = self.config.key
        while True:
            try:
                if await self._store.find_counter(key) is None:
                    await self._store.create_counter(key, self.config.initial_count)
                    logger.info(
                        "counter_created", model=key.collection_name, field=key.field_name, count=self.config.initial_count
                    )
            except DuplicateKeyError:
                logger.debug("counter_created_concurrently", model=key.collection_name, field=key.field_name)
            except StoreError as e:
                logger.warning("counter_bootstrap_retry", model=key.collection_name, field=key.field_name, error=str(e))
                await asyncio.sleep(self._retry_interval)
                continue
            return

    @property
    def _label(self) -> str:
        return f"{self.config.collection_name}.{self.config.field_name}"
