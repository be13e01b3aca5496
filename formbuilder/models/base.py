"""Shared pydantic base for wire models.

Wire field names are camelCase; snake_case names are accepted on input so
Python callers can construct models naturally.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


__all__ = ["WireModel"]
