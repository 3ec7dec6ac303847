from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Shop:
    """One retailer storefront reachable through the shared backend."""

    id: str
    retailer: str
    service_type: str
    retailer_inventory_session_token: str


@dataclass(frozen=True)
class ItemRecord:
    category: str | None
    item_name: str | None

    # Dedup key across fetches and across retailers.
    product_id: str

    price_string: str | None = None        # e.g. "$3.47"
    pricing_unit_string: str | None = None  # e.g. "$0.29/oz"
    item_id: str | None = None              # e.g. "items_1576-17315438"
    item_image: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "itemName": self.item_name,
            "productId": self.product_id,
            "priceString": self.price_string,
            "pricingUnitString": self.pricing_unit_string,
            "itemId": self.item_id,
            "itemImage": self.item_image,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ItemRecord":
        return ItemRecord(
            category=data.get("category"),
            item_name=data.get("itemName"),
            product_id=str(data["productId"]),
            price_string=data.get("priceString"),
            pricing_unit_string=data.get("pricingUnitString"),
            item_id=data.get("itemId"),
            item_image=data.get("itemImage"),
        )


@dataclass
class ShopResult:
    shop_id: str
    retailer: str
    items: list[ItemRecord] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "shopId": self.shop_id,
            "retailer": self.retailer,
            "items": [it.to_dict() for it in self.items],
            "error": self.error,
        }


@dataclass(frozen=True)
class PriceInfo:
    price_string: str | None
    pricing_unit_string: str | None = None


@dataclass
class GroupedItem:
    """One product across every retailer that lists it."""

    product_id: str
    item_name: str
    item_image: dict[str, Any] | None = None
    prices: dict[str, PriceInfo] = field(default_factory=dict)
    price_difference: float = 0.0
    lowest_price: float = float("inf")

    @property
    def comparable(self) -> bool:
        return self.price_difference > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "itemName": self.item_name,
            "itemImage": self.item_image,
            "prices": {
                retailer: {
                    "priceString": p.price_string,
                    "pricingUnitString": p.pricing_unit_string,
                }
                for retailer, p in self.prices.items()
            },
            "priceDifference": self.price_difference,
            # inf is not valid JSON
            "lowestPrice": None if self.lowest_price == float("inf") else self.lowest_price,
        }
