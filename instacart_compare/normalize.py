from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import BackendError, ParseError
from .models import ItemRecord


@dataclass(frozen=True)
class CategoryPage:
    """First page of a shop's "your items" category plus every item id in it."""

    items: list[dict[str, Any]]
    item_ids: list[str]


def product_id_from_item_id(item_id: str) -> str | None:
    """``items_1576-17315438`` -> ``17315438``. None when not derivable."""
    head, sep, tail = item_id.partition("-")
    if not sep or not head or not tail:
        return None
    # Anything after a second dash is not part of the product id.
    return tail.split("-", 1)[0] or None


def item_record_from_raw(raw: Any) -> ItemRecord:
    """Normalize one raw ``Item`` node from the GraphQL API.

    The tracking properties carry the identity fields and are required.
    Price and image are optional and come back as None when absent.
    """
    if not isinstance(raw, dict):
        raise ParseError(f"Item payload is not an object: {type(raw).__name__}")

    view = raw.get("viewSection")
    if not isinstance(view, dict):
        raise ParseError("Item payload has no viewSection")
    tracking = view.get("trackingProperties")
    if not isinstance(tracking, dict):
        raise ParseError("Item payload has no viewSection.trackingProperties")

    product_id = tracking.get("product_id")
    if product_id in (None, ""):
        raise ParseError("Item payload has no product_id")

    details = _dig(raw, "price", "viewSection", "itemDetails") or {}
    image = view.get("itemImage")

    return ItemRecord(
        category=tracking.get("product_category_name") or None,
        item_name=tracking.get("item_name") or None,
        product_id=str(product_id),
        price_string=details.get("priceString"),
        pricing_unit_string=details.get("pricingUnitString"),
        item_id=tracking.get("item_id") or raw.get("id"),
        item_image=image if isinstance(image, dict) else None,
    )


def raise_for_errors(doc: Any) -> dict[str, Any]:
    """Check a GraphQL response envelope and return its ``data`` object."""
    if not isinstance(doc, dict):
        raise ParseError(f"Response is not a JSON object: {type(doc).__name__}")

    errors = doc.get("errors")
    if errors:
        first = errors[0] if isinstance(errors, list) else errors
        msg = first.get("message") if isinstance(first, dict) else str(first)
        raise BackendError(msg or "Unknown backend error")

    data = doc.get("data")
    if not isinstance(data, dict):
        raise ParseError("Response has no data object")
    return data


def parse_category_response(doc: Any) -> CategoryPage:
    data = raise_for_errors(doc)
    category = data.get("yourItemsCategory")
    if category is None:
        return CategoryPage(items=[], item_ids=[])
    if not isinstance(category, dict):
        raise ParseError("yourItemsCategory is not an object")

    items = category.get("items") or []
    item_ids = category.get("itemIds") or []
    if not isinstance(items, list) or not isinstance(item_ids, list):
        raise ParseError("yourItemsCategory.items / itemIds are not lists")
    return CategoryPage(items=items, item_ids=[str(i) for i in item_ids])


def parse_items_response(doc: Any) -> list[dict[str, Any]]:
    data = raise_for_errors(doc)
    items = data.get("items") or []
    if not isinstance(items, list):
        raise ParseError("data.items is not a list")
    return items


def _dig(d: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(d, dict):
            return None
        d = d.get(key)
    return d
