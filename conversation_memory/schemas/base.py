"""Shared pydantic base for stored records and API payloads."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> str:
    """Current time as an ISO8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    """Model serialized with camelCase keys, accepting snake_case on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        """Serialize for storage (camelCase keys, unset optionals dropped)."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
