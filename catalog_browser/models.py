"""Validation for items submitted through the API."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

NAME_REQUIRED = "Item name is required"
INVALID_PRICE = "Price must be a valid positive number"


class InvalidItemError(ValueError):
    """Raised when a submitted item fails validation."""


class NewItem(BaseModel):
    """Incoming item payload; strings are trimmed and prices coerced to numbers."""

    name: Any = Field(default=None, validate_default=True)
    price: Any = Field(default=None, validate_default=True)
    category: str | None = None
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(NAME_REQUIRED)
        return value.strip()

    @field_validator("price", mode="before")
    @classmethod
    def _check_price(cls, value: Any) -> float | int:
        if isinstance(value, bool) or value is None:
            raise ValueError(INVALID_PRICE)
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                raise ValueError(INVALID_PRICE) from None
        if isinstance(value, int) and not -(2**63) <= value < 2**63:
            # orjson stores 64-bit integers only
            try:
                value = float(value)
            except OverflowError:
                raise ValueError(INVALID_PRICE) from None
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            raise ValueError(INVALID_PRICE)
        return value

    @field_validator("category", "description", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("Category and description must be strings")
        return value.strip()


def _first_error_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    original = (error.get("ctx") or {}).get("error")
    return str(original) if original is not None else error["msg"]


def parse_new_item(payload: Any) -> NewItem:
    if not isinstance(payload, dict):
        raise InvalidItemError(NAME_REQUIRED)
    try:
        return NewItem.model_validate(payload)
    except ValidationError as exc:
        raise InvalidItemError(_first_error_message(exc)) from exc


def build_item(new_item: NewItem, now: datetime | None = None) -> dict[str, Any]:
    """Return the stored representation: id is the creation time in epoch ms."""
    created = now or datetime.now(timezone.utc)
    item: dict[str, Any] = {
        "id": round(created.timestamp() * 1000),
        "name": new_item.name,
        "price": new_item.price,
    }
    if new_item.category is not None:
        item["category"] = new_item.category
    if new_item.description is not None:
        item["description"] = new_item.description
    item["createdAt"] = to_iso8601(created)
    return item


def to_iso8601(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
