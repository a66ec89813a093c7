"""Base model for the storefront offers client."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class StorefrontModel(BaseModel):
    """Base for documents exchanged with the storefront backend.

    Fields use snake_case in Python and carry the backend's camelCase (or
    ``_id``) names as aliases. Either spelling is accepted on input;
    ``to_dict`` emits the backend spelling, so a dumped document validates
    back into an equal model. Unknown backend fields are ignored.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    def to_dict(self) -> dict[str, Any]:
        """Dump to a JSON-ready dict keyed by backend field names."""
        return self.model_dump(mode="json", exclude_none=True, by_alias=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StorefrontModel":
        """Validate a backend document (or a ``to_dict`` result)."""
        return cls.model_validate(data)
