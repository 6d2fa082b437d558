"""Shared base model for API-facing data."""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model exchanging camelCase JSON with the web frontend.

    Python code uses snake_case attributes; requests may use either form.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape sent to clients and stores."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
