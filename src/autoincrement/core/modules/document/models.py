"""Documents persisted through a DocumentCollection."""

from typing import Any, Self

from pydantic import ConfigDict, Field, PrivateAttr

from autoincrement.core.db import MongoModel

IDENTITY_FIELD = "_id"


class Document(MongoModel):
    """Base class for stored documents.

    Extra fields are allowed so a sequenced field does not have to be declared
    on the subclass. Fields are addressed by their stored name, so "_id" refers
    to the `id` attribute.
    """

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True, extra="allow")

    id: Any = Field(default=None, alias=IDENTITY_FIELD)

    _is_new: bool = PrivateAttr(default=True)

    @property
    def is_new(self) -> bool:
        """True until the document has been inserted or was loaded from the database."""
        return self._is_new

    def mark_persisted(self) -> None:
        self._is_new = False

    def get_field(self, name: str) -> Any:
        if name == IDENTITY_FIELD:
            return self.id
        return getattr(self, name, None)

    def set_field(self, name: str, value: Any) -> None:
        if name == IDENTITY_FIELD:
            self.id = value
        else:
            setattr(self, name, value)

    def to_mongo(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True)
        if data.get(IDENTITY_FIELD) is None:
            data.pop(IDENTITY_FIELD, None)  # Let MongoDB assign an ObjectId
        return data

    @classmethod
    def from_mongo(cls, data: dict[str, Any]) -> Self:
        doc = cls.model_validate(data)
        doc.mark_persisted()
        return doc
