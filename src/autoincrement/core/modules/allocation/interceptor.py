import numbers
from typing import Any

from autoincrement.core.modules.allocation.service import AllocationService
from autoincrement.core.modules.document.models import Document
from autoincrement.errors import AllocationFailedError


def explicit_value(value: Any) -> int | None:
    """Return the integer the caller set explicitly, or None if the field holds no number.

    Integral numbers of any type (int, bson.Int64, numpy integers, 10.0) are
    converted to int. A number with a fractional part, or NaN/infinity, raises
    AllocationFailedError since it can never be a sequence value.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    try:
        integral = int(value)
    except (ValueError, OverflowError) as e:
        raise AllocationFailedError(f"Explicit value {value!r} is not an integer") from e
    if integral != value:
        raise AllocationFailedError(f"Explicit value {value!r} is not an integer")
    return integral


class SaveInterceptor:
    """pre_insert hook that fills the sequenced field of a new document.

    Waits for the counter to be ready, then either allocates the next value or
    reconciles the counter with a value the caller set explicitly. Any error
    propagates and the document is not inserted. Only attached to inserts:
    re-saving a persisted document never allocates.
    """

    def __init__(self, service: AllocationService) -> None:
        self.service = service

    @property
    def field_name(self) -> str:
        return self.service.config.field_name

    async def __call__(self, doc: Document) -> None:
        if not doc.is_new:
            return
        candidate = explicit_value(doc.get_field(self.field_name))
        await self.service.wait_ready()
        value = await self.service.allocate_or_reconcile(candidate)
        doc.set_field(self.field_name, value)
