"""Base classes and shared types for Headwind contracts.

Unit conventions (all contracts):
- **Distances**: meters, documented per field
- **Speeds**: meters per second (m/s)
- **Angles / bearings**: degrees, clockwise from true north
- **Wind direction**: meteorological convention (direction the wind blows FROM)
- **Temperatures**: degrees Celsius
- **Precipitation**: millimeters
- **Times**: epoch seconds (UTC) for weather samples, epoch milliseconds for stats
- **Coordinates**: WGS84 decimal degrees

Provider clients may request data in the user's preferred units, but must
convert to the above before returning a contract.
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class HeadwindModel(BaseModel):
    """Base model with key-value-store friendly serialization.

    - Enums serialize as string values.
    - ``to_store()`` produces a JSON-safe dict.
    - ``from_store()`` hydrates from a stored dict.
    - ``to_json_bytes()`` / ``from_json_bytes()`` are the raw store format.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_store(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_store(cls, data: dict[str, Any]) -> Self:
        """Create model instance from a stored dict."""
        return cls.model_validate(data)

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")

    @classmethod
    def from_json_bytes(cls, raw: bytes) -> Self:
        return cls.model_validate_json(raw)
