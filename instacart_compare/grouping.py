from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .models import GroupedItem, PriceInfo, ShopResult

# lowest_price when nothing on the item parsed as a number
NO_COMPARISON = math.inf

_PRICE_RE = re.compile(r"^[^\d.+-]*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")


def parse_price(text: str | None) -> float | None:
    """Leading number of a price string: "$3.47" -> 3.47, "$1,299.00 each" -> 1299.0."""
    if not isinstance(text, str):
        return None
    m = _PRICE_RE.match(text.strip().replace(",", ""))
    if not m:
        return None
    val = float(m.group(1))
    if math.isnan(val) or math.isinf(val):
        return None
    return val


@dataclass
class ComparisonView:
    retailers: list[str]
    items_by_category: dict[str, dict[str, GroupedItem]]
    category_winners: dict[str, str | None] = field(default_factory=dict)
    shop_results: list[ShopResult] = field(default_factory=list)

    def sorted_categories(self) -> list[str]:
        return sorted(self.items_by_category)

    def sorted_items(self, category: str) -> list[GroupedItem]:
        items = list(self.items_by_category.get(category, {}).values())
        items.sort(key=lambda it: (-it.price_difference, it.item_name))
        return items

    def winner_tally(self) -> dict[str, int]:
        """Number of categories each retailer won outright."""
        tally = Counter(w for w in self.category_winners.values() if w is not None)
        return dict(sorted(tally.items(), key=lambda kv: (-kv[1], kv[0])))

    def to_dict(self) -> dict[str, Any]:
        return {
            "retailers": list(self.retailers),
            "itemsByCategory": {
                cat: [it.to_dict() for it in self.sorted_items(cat)]
                for cat in self.sorted_categories()
            },
            "categoryWinners": dict(self.category_winners),
            "shopResults": [r.to_dict() for r in self.shop_results],
        }


def group_shop_items(results: list[ShopResult]) -> ComparisonView:
    """Merge every shop's items by category and product id and compare prices.

    Pure: the same input always yields an equal view and nothing in
    ``results`` is modified.
    """
    retailers = sorted({r.retailer for r in results if r.items})

    by_category: dict[str, dict[str, GroupedItem]] = {}
    for result in results:
        for item in result.items:
            if not item.category or not item.item_name:
                continue

            products = by_category.setdefault(item.category, {})
            grouped = products.get(item.product_id)
            if grouped is None:
                grouped = GroupedItem(
                    product_id=item.product_id,
                    item_name=item.item_name,
                    item_image=item.item_image,
                )
                products[item.product_id] = grouped
            elif grouped.item_image is None and item.item_image:
                grouped.item_image = item.item_image

            grouped.prices[result.retailer] = PriceInfo(
                price_string=item.price_string,
                pricing_unit_string=item.pricing_unit_string,
            )

    for products in by_category.values():
        for grouped in products.values():
            _compute_price_spread(grouped)

    winners = {cat: _category_winner(products) for cat, products in by_category.items()}

    return ComparisonView(
        retailers=retailers,
        items_by_category=by_category,
        category_winners=winners,
        shop_results=list(results),
    )


def _compute_price_spread(item: GroupedItem) -> None:
    prices = [p for p in (parse_price(info.price_string) for info in item.prices.values()) if p is not None]
    if len(prices) > 1:
        item.price_difference = round(max(prices) - min(prices), 2)
        item.lowest_price = min(prices)
    else:
        item.price_difference = 0.0
        item.lowest_price = prices[0] if prices else NO_COMPARISON


def unique_cheapest(item: GroupedItem) -> str | None:
    """The single retailer at the lowest price, or None if there is no real comparison."""
    if item.price_difference <= 0:
        return None
    cheapest = [
        retailer
        for retailer, info in item.prices.items()
        if parse_price(info.price_string) == item.lowest_price
    ]
    return cheapest[0] if len(cheapest) == 1 else None


def _category_winner(products: dict[str, GroupedItem]) -> str | None:
    # Ties get no winner rather than an arbitrary pick.
    counts = Counter(r for r in (unique_cheapest(it) for it in products.values()) if r is not None)
    if not counts:
        return None
    best = max(counts.values())
    leaders = [r for r, c in counts.items() if c == best]
    return leaders[0] if len(leaders) == 1 else None
