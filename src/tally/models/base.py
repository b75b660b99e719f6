"""Shared pydantic base for persisted (wire) models.

Persisted documents use camelCase keys while Python code uses
snake_case attributes. Dumps keep only the fields that were actually
set, so optional keys that were absent on disk stay absent and
explicit nulls survive a round trip.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model for every shape written to storage."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready dict for this model (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class OpenWireModel(WireModel):
    """Wire model that keeps unknown fields for forward compatibility."""

    model_config = {"extra": "allow"}
