# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
from __future__ import annotations

import datetime
import enum
from typing import Any, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound="SchemaModel")


class SchemaModel(BaseModel):
    """
    Canonical base for schema models (Pydantic v2).

    - Frozen: evidence and results are value objects, never mutated in place.
    - Ignores extra fields so stored payloads from older versions still load.
    - Provides `to_dict()` / `from_dict()` for consistent serialization.
    """

    model_config = {"extra": "ignore", "frozen": True}

    def to_dict(self) -> dict[str, Any]:
        return dump_schema(self)

    @classmethod
    def from_dict(cls: type[T], data: dict[str, Any]) -> T:
        if not isinstance(data, dict):
            raise TypeError(f"Schema input must be a dict, got: {type(data)!r}")
        return cls.model_validate(data)


def dump_schema(model: Any) -> dict[str, Any]:
    """
    Dump a schema model to a JSON-safe dict.

    Pydantic models use `model_dump(mode="json")`; plain dicts are walked.
    """
    if isinstance(model, BaseModel):
        return model.model_dump(mode="json", exclude_none=True)
    if isinstance(model, dict):
        return _json_safe(model)
    raise TypeError(f"Unsupported schema type for dump: {type(model)!r}")


def _json_safe(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value
