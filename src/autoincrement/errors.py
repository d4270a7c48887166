class AutoIncrementError(Exception):
    """Base class for all counter allocation errors."""


class NotInitializedError(AutoIncrementError):
    """Raised when a counter is bound or used before the registry has prepared the counter schema."""

    def __init__(self, message: str = "Counter registry has not been initialized") -> None:
        super().__init__(message)


class ConfigurationError(AutoIncrementError):
    """Raised at bind time when the counter options are invalid."""


class StoreError(AutoIncrementError):
    """Raised when the counter store fails to execute an operation."""


class DuplicateKeyError(StoreError):
    """Raised when a counter for the same (model, field) pair already exists."""


class CounterNotFoundError(StoreError):
    """Raised when an atomic update targets a counter that does not exist."""


class AllocationFailedError(AutoIncrementError):
    """Raised when a value could not be allocated or reconciled.

    The record that triggered the allocation must not be persisted.
    """


class StoreUnavailableError(AllocationFailedError, StoreError):
    """Raised when the counter store cannot be reached."""
