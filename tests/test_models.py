from __future__ import annotations

from datetime import datetime, timezone

import pytest

from catalog_browser.models import (
    INVALID_PRICE,
    NAME_REQUIRED,
    InvalidItemError,
    build_item,
    parse_new_item,
    to_iso8601,
)


def test_parse_new_item_trims_and_coerces() -> None:
    item = parse_new_item(
        {"name": "  Test Item  ", "price": "25.99", "category": " Books ", "description": " Nice "}
    )
    assert item.name == "Test Item"
    assert item.price == 25.99
    assert item.category == "Books"
    assert item.description == "Nice"


@pytest.mark.parametrize(
    "payload",
    [{"price": 10}, {"name": "", "price": 10}, {"name": "   ", "price": 10}, {"name": None, "price": 10}, {}, [], None],
)
def test_missing_name_is_rejected(payload) -> None:
    with pytest.raises(InvalidItemError) as excinfo:
        parse_new_item(payload)
    assert str(excinfo.value) == NAME_REQUIRED


@pytest.mark.parametrize("price", [-10, "abc", None, True, "", float("inf"), [1]])
def test_invalid_price_is_rejected(price) -> None:
    with pytest.raises(InvalidItemError) as excinfo:
        parse_new_item({"name": "Lamp", "price": price})
    assert str(excinfo.value) == INVALID_PRICE


def test_zero_price_is_allowed() -> None:
    assert parse_new_item({"name": "Freebie", "price": 0}).price == 0


def test_build_item_uses_creation_time() -> None:
    now = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    item = build_item(parse_new_item({"name": "Lamp", "price": 12.5}), now=now)
    assert item == {
        "id": round(now.timestamp() * 1000),
        "name": "Lamp",
        "price": 12.5,
        "createdAt": "2024-01-02T03:04:05.678Z",
    }


def test_build_item_keeps_optional_fields() -> None:
    item = build_item(parse_new_item({"name": "Lamp", "price": 1, "category": "Furniture", "description": ""}))
    assert item["category"] == "Furniture"
    assert item["description"] == ""
    assert item["createdAt"].endswith("Z")


def test_to_iso8601_formats_utc_with_milliseconds() -> None:
    assert to_iso8601(datetime(2023, 5, 6, tzinfo=timezone.utc)) == "2023-05-06T00:00:00.000Z"


def test_huge_integer_price_is_stored_as_float() -> None:
    assert parse_new_item({"name": "Yacht", "price": 10**30}).price == 1e30


def test_integer_price_beyond_float_range_is_rejected() -> None:
    with pytest.raises(InvalidItemError) as excinfo:
        parse_new_item({"name": "Galaxy", "price": 10**400})
    assert str(excinfo.value) == INVALID_PRICE
