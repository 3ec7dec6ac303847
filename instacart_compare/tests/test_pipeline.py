import io
import json
from datetime import date

import pytest

from instacart_compare.cache import SWEEP_SENTINEL_KEY, MemoryCacheStore
from instacart_compare.errors import RunInProgressError
from instacart_compare.fetcher import RatePolicy
from instacart_compare.models import Shop
from instacart_compare.normalize import CategoryPage
from instacart_compare.pipeline import ComparisonPipeline
from instacart_compare.progress import (
    RUN_COMPLETED,
    RUN_STARTED,
    SHOP_COMPLETED,
    JsonLinesListener,
    ProgressReporter,
)

TODAY = date(2024, 5, 1)


def _raw(pid, price):
    return {
        "viewSection": {
            "trackingProperties": {
                "product_id": pid,
                "item_name": f"Item {pid}",
                "product_category_name": "Dairy",
                "item_id": f"items_1-{pid}",
            },
        },
        "price": {"viewSection": {"itemDetails": {"priceString": price}}},
    }


class FakeClient:
    zone_id = "982"
    postal_code = "77077"

    def __init__(self, pages):
        self.pages = pages

    def category_items(self, shop):
        return self.pages[shop.id]

    def items(self, item_ids, **kwargs):
        return []


def _shops():
    return [
        Shop(id="1", retailer="A", service_type="delivery", retailer_inventory_session_token="t1"),
        Shop(id="2", retailer="B", service_type="delivery", retailer_inventory_session_token="t2"),
    ]


def _pipeline(store=None, reporter=None):
    client = FakeClient({
        "1": CategoryPage(items=[_raw("p1", "$3.00")], item_ids=["items_1-p1"]),
        "2": CategoryPage(items=[_raw("p1", "$2.50")], item_ids=["items_1-p1"]),
    })
    return ComparisonPipeline(
        client,
        store if store is not None else MemoryCacheStore(),
        policy=RatePolicy(delay_s=0),
        reporter=reporter,
        today=lambda: TODAY,
    )


def test_end_to_end():
    view = _pipeline().run(_shops())

    assert view.retailers == ["A", "B"]
    grouped = view.items_by_category["Dairy"]["p1"]
    assert grouped.lowest_price == 2.50
    assert view.category_winners == {"Dairy": "B"}


def test_lifecycle_events():
    events = []
    _pipeline(reporter=ProgressReporter([events.append])).run(_shops())

    assert [e.kind for e in events] == [RUN_STARTED, SHOP_COMPLETED, SHOP_COMPLETED, RUN_COMPLETED]
    assert events[0].payload == {"shops": ["A", "B"]}
    assert events[-1].payload["view"]["retailers"] == ["A", "B"]


def test_sweeps_stale_cache_first():
    store = MemoryCacheStore({"instacart-shop-items-1-2024-04-30": {}})
    _pipeline(store).run(_shops())

    keys = set(store.enumerate())
    assert "instacart-shop-items-1-2024-04-30" not in keys
    assert "instacart-shop-items-1-2024-05-01" in keys
    assert store.get(SWEEP_SENTINEL_KEY) == "2024-05-01"


def test_concurrent_run_is_refused():
    pipeline = _pipeline()
    pipeline._lock.acquire()
    try:
        with pytest.raises(RunInProgressError):
            pipeline.run(_shops())
    finally:
        pipeline._lock.release()

    # lock released: the next run goes through
    assert pipeline.run(_shops()).retailers == ["A", "B"]


def test_failing_listener_does_not_break_run():
    def boom(event):
        raise ValueError("listener bug")

    view = _pipeline(reporter=ProgressReporter([boom])).run(_shops())
    assert view.retailers == ["A", "B"]


def test_json_lines_listener():
    out = io.StringIO()
    _pipeline(reporter=ProgressReporter([JsonLinesListener(out)])).run(_shops())

    lines = [json.loads(line) for line in out.getvalue().splitlines()]
    assert [line["kind"] for line in lines] == [RUN_STARTED, SHOP_COMPLETED, SHOP_COMPLETED, RUN_COMPLETED]
    assert lines[1]["payload"] == {"shop": "A", "itemCount": 1}
