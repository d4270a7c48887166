"""Bind-time configuration of an auto-incremented field."""

from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from autoincrement.core.modules.counter.models import CounterKey
from autoincrement.core.modules.document.models import IDENTITY_FIELD
from autoincrement.errors import ConfigurationError


class AllocationConfig(BaseModel):
    """Settings for one sequenced field.

    Accepts both the camelCase option names (startAt, incrementBy) and their
    snake_case equivalents.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    collection_name: str = Field(alias="model", min_length=1)
    field_name: str = Field(default=IDENTITY_FIELD, alias="field", min_length=1)
    start_at: int = Field(default=0, alias="startAt")
    increment_by: int = Field(default=1, alias="incrementBy")
    unique: bool = True  # Only applies to secondary fields; the identity field is always unique

    @field_validator("increment_by")
    @classmethod
    def _validate_increment_by(cls, value: int) -> int:
        if value == 0:
            raise ValueError("incrementBy must be non-zero")
        return value

    @classmethod
    def parse(cls, options: str | Mapping[str, Any]) -> Self:
        """Build a config from a model name shorthand or an options mapping.

        Raises ConfigurationError if the model is missing or any option is invalid.
        """
        if isinstance(options, str):
            options = {"model": options}
        if not isinstance(options, Mapping):
            raise ConfigurationError("model must be set")
        if options.get("model") is None and options.get("collection_name") is None:
            raise ConfigurationError("model must be set")
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid counter options: {e}") from e

    @property
    def key(self) -> CounterKey:
        return CounterKey(self.collection_name, self.field_name)

    @property
    def initial_count(self) -> int:
        """Stored count that makes the next allocation yield exactly start_at."""
        return self.start_at - self.increment_by

    @property
    def enforce_unique_field(self) -> bool:
        return self.unique and self.field_name != IDENTITY_FIELD
