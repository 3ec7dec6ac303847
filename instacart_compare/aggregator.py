from __future__ import annotations

import logging

from .client import InstacartClient
from .errors import InstacartError
from .fetcher import ItemFetcher, RatePolicy
from .models import Shop, ShopResult
from .progress import ProgressReporter

logger = logging.getLogger(__name__)


class ShopAggregator:
    """Runs one category query plus item resolution per shop, one shop at a time."""

    def __init__(
        self,
        client: InstacartClient,
        fetcher: ItemFetcher,
        *,
        policy: RatePolicy | None = None,
        reporter: ProgressReporter | None = None,
    ):
        self.client = client
        self.fetcher = fetcher
        self.policy = policy or fetcher.policy
        self.reporter = reporter

    def fetch_all_shop_items(self, shops: list[Shop]) -> list[ShopResult]:
        results: list[ShopResult] = []

        for idx, shop in enumerate(shops):
            if idx > 0:
                self.policy.wait()

            try:
                page = self.client.category_items(shop)
                items = self.fetcher.fetch_item_details(
                    page.item_ids,
                    shop.id,
                    zone_id=self.client.zone_id,
                    postal_code=self.client.postal_code,
                    initial_items=page.items,
                )
                result = ShopResult(shop_id=shop.id, retailer=shop.retailer, items=list(items.values()))
            except InstacartError as e:
                logger.error("Failed to fetch or process data for shop %s (%s): %s", shop.id, shop.retailer, e)
                result = ShopResult(shop_id=shop.id, retailer=shop.retailer, error=str(e))
            except Exception as e:
                logger.exception("Unexpected failure for shop %s (%s)", shop.id, shop.retailer)
                result = ShopResult(shop_id=shop.id, retailer=shop.retailer, error=f"{type(e).__name__}: {e}")

            results.append(result)
            if self.reporter is not None:
                self.reporter.shop_completed(shop.retailer, len(result.items))

        return results
