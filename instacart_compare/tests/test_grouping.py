import math

from instacart_compare.grouping import NO_COMPARISON, group_shop_items, parse_price, unique_cheapest
from instacart_compare.models import ItemRecord, ShopResult


def _item(pid="p1", price="$1.00", category="Dairy", name=None, image=None, unit=None):
    return ItemRecord(
        category=category,
        item_name=name if name is not None else f"Item {pid}",
        product_id=pid,
        price_string=price,
        pricing_unit_string=unit,
        item_image=image,
    )


def _shop(retailer, *items, error=None):
    return ShopResult(shop_id=f"shop-{retailer}", retailer=retailer, items=list(items), error=error)


def test_parse_price():
    assert parse_price("$3.47") == 3.47
    assert parse_price("3") == 3.0
    assert parse_price("$1,299.00") == 1299.0
    assert parse_price("$2.50/lb") == 2.5


def test_parse_price_unparseable():
    assert parse_price(None) is None
    assert parse_price("") is None
    assert parse_price("See price in cart") is None


def test_two_retailers_same_product():
    view = group_shop_items([
        _shop("A", _item("p1", "$3.00")),
        _shop("B", _item("p1", "$2.50")),
    ])

    assert view.retailers == ["A", "B"]
    grouped = view.items_by_category["Dairy"]["p1"]
    assert grouped.prices["A"].price_string == "$3.00"
    assert grouped.prices["B"].price_string == "$2.50"
    assert math.isclose(grouped.price_difference, 0.50)
    assert grouped.lowest_price == 2.50
    assert unique_cheapest(grouped) == "B"


def test_retailers_exclude_empty_and_failed_shops():
    view = group_shop_items([
        _shop("Kroger", _item()),
        _shop("ALDI"),
        _shop("H-E-B", error="HTTP error 500"),
        _shop("Costco", _item("p2")),
    ])
    assert view.retailers == ["Costco", "Kroger"]


def test_items_without_category_or_name_are_skipped():
    view = group_shop_items([
        _shop("A", _item("p1", category=None), _item("p2", name=""), _item("p3")),
    ])
    assert list(view.items_by_category) == ["Dairy"]
    assert list(view.items_by_category["Dairy"]) == ["p3"]


def test_image_backfilled_from_later_retailer():
    view = group_shop_items([
        _shop("A", _item("p1", name="Milk")),
        _shop("B", _item("p1", name="Milk 2%", image={"url": "https://img/milk.jpg"})),
    ])
    grouped = view.items_by_category["Dairy"]["p1"]
    assert grouped.item_name == "Milk"
    assert grouped.item_image == {"url": "https://img/milk.jpg"}


def test_same_retailer_twice_overwrites_price():
    view = group_shop_items([
        _shop("A", _item("p1", "$3.00")),
        _shop("A", _item("p1", "$2.00")),
    ])
    grouped = view.items_by_category["Dairy"]["p1"]
    assert list(grouped.prices) == ["A"]
    assert grouped.prices["A"].price_string == "$2.00"
    assert grouped.price_difference == 0


def test_single_price_has_no_difference():
    view = group_shop_items([_shop("A", _item("p1", "$4.10"))])
    grouped = view.items_by_category["Dairy"]["p1"]
    assert grouped.price_difference == 0
    assert grouped.lowest_price == 4.10
    assert unique_cheapest(grouped) is None


def test_unparseable_prices_mean_no_comparison():
    view = group_shop_items([
        _shop("A", _item("p1", None)),
        _shop("B", _item("p1", "N/A")),
    ])
    grouped = view.items_by_category["Dairy"]["p1"]
    assert grouped.price_difference == 0
    assert grouped.lowest_price == NO_COMPARISON


def test_unparseable_price_excluded_from_spread():
    view = group_shop_items([
        _shop("A", _item("p1", "$5.00")),
        _shop("B", _item("p1", "N/A")),
        _shop("C", _item("p1", "$4.00")),
    ])
    grouped = view.items_by_category["Dairy"]["p1"]
    assert math.isclose(grouped.price_difference, 1.0)
    assert grouped.lowest_price == 4.0


def test_equal_lowest_prices_have_no_unique_cheapest():
    view = group_shop_items([
        _shop("A", _item("p1", "$2.00")),
        _shop("B", _item("p1", "$2.00")),
        _shop("C", _item("p1", "$3.00")),
    ])
    assert unique_cheapest(view.items_by_category["Dairy"]["p1"]) is None


def test_category_winner():
    view = group_shop_items([
        _shop("A", _item("p1", "$1.00"), _item("p2", "$1.00"), _item("p3", "$5.00")),
        _shop("B", _item("p1", "$2.00"), _item("p2", "$2.00"), _item("p3", "$4.00")),
    ])
    assert view.category_winners == {"Dairy": "A"}
    assert view.winner_tally() == {"A": 1}


def test_category_tie_has_no_winner():
    view = group_shop_items([
        _shop("A", _item("p1", "$1.00"), _item("p2", "$5.00")),
        _shop("B", _item("p1", "$2.00"), _item("p2", "$4.00")),
    ])
    assert view.category_winners == {"Dairy": None}
    assert view.winner_tally() == {}


def test_category_without_comparisons_has_no_winner():
    view = group_shop_items([_shop("A", _item("p1", "$1.00"))])
    assert view.category_winners == {"Dairy": None}


def test_sorting():
    view = group_shop_items([
        _shop("A",
              _item("p1", "$1.00", name="Butter"),
              _item("p2", "$1.00", name="Yogurt"),
              _item("p3", "$1.00", name="Cheese"),
              _item("p4", "$1.00", category="Bakery", name="Bread")),
        _shop("B",
              _item("p1", "$1.50", name="Butter"),
              _item("p2", "$3.00", name="Yogurt"),
              _item("p3", "$1.50", name="Cheese")),
    ])
    assert view.sorted_categories() == ["Bakery", "Dairy"]
    assert [it.item_name for it in view.sorted_items("Dairy")] == ["Yogurt", "Butter", "Cheese"]


def test_grouping_is_repeatable_and_pure():
    results = [
        _shop("A", _item("p1", "$3.00"), _item("p2", "$1.00", category="Bakery")),
        _shop("B", _item("p1", "$2.50", image={"url": "x"})),
    ]
    first = group_shop_items(results)
    second = group_shop_items(results)

    assert first.to_dict() == second.to_dict()
    assert results[0].items[0].item_image is None


def test_to_dict_has_no_infinity():
    view = group_shop_items([_shop("A", _item("p1", None))])
    assert view.to_dict()["itemsByCategory"]["Dairy"][0]["lowestPrice"] is None
