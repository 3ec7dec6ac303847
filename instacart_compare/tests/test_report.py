import json

from instacart_compare.grouping import group_shop_items
from instacart_compare.models import ItemRecord, ShopResult
from instacart_compare.report import build_report


def _item(pid, price, name, category="Dairy"):
    return ItemRecord(category=category, item_name=name, product_id=pid, price_string=price)


def _view():
    return group_shop_items([
        ShopResult("1", "Kroger", [_item("p1", "$3.00", "Milk"), _item("p2", "$2.00", "Eggs")]),
        ShopResult("2", "ALDI", [_item("p1", "$2.50", "Milk"), _item("p2", "$2.75", "Eggs")]),
        ShopResult("3", "H-E-B", error="HTTP error 500"),
    ])


def test_summary_text():
    text = build_report(_view(), postal_code="77077").summary_text()

    assert "Retailers: ALDI, Kroger" in text
    assert "Shop failures: 1" in text
    assert "! H-E-B (3): HTTP error 500" in text
    assert "[Dairy]  winner: none" in text
    assert "ALDI: $2.50*" in text
    assert "Kroger: $2.00*" in text
    assert "(save $0.75)" in text


def test_write_json(tmp_path):
    report = build_report(_view(), postal_code="77077")
    path = report.write_json(str(tmp_path / "out" / "comparison.json"))

    data = json.loads(open(path).read())
    assert data["postalCode"] == "77077"
    assert data["retailers"] == ["ALDI", "Kroger"]
    assert [it["itemName"] for it in data["itemsByCategory"]["Dairy"]] == ["Eggs", "Milk"]
    assert data["shopResults"][2]["error"] == "HTTP error 500"
