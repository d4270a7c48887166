"""Persistent counters backing auto-incremented fields."""

from typing import Any, NamedTuple

from pydantic import Field

from autoincrement.core.db import MongoModel


class CounterKey(NamedTuple):
    """Identifies one sequence: the owning model and the tracked field."""

    collection_name: str
    field_name: str

    def to_filter(self) -> dict[str, Any]:
        """Build the MongoDB filter matching this counter."""
        return {"model": self.collection_name, "field": self.field_name}


class CounterRecord(MongoModel):
    """Last allocated value for one (model, field) pair.

    Stored as {model, field, count}. Indexed on (field, model) - unique.
    """

    collection_name: str = Field(alias="model")
    field_name: str = Field(alias="field")
    count: int = 0  # Last allocated value; next allocation is count + increment_by

    @property
    def key(self) -> CounterKey:
        return CounterKey(self.collection_name, self.field_name)
