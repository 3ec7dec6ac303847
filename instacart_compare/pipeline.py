from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable

from .aggregator import ShopAggregator
from .cache import CacheStore, sweep_stale_entries, today_utc
from .client import InstacartClient
from .errors import RunInProgressError
from .fetcher import ItemFetcher, RatePolicy
from .grouping import ComparisonView, group_shop_items
from .models import Shop
from .progress import ProgressReporter

logger = logging.getLogger(__name__)


class ComparisonPipeline:
    """One end-to-end price comparison: sweep, fetch every shop, group.

    A pipeline runs one comparison at a time; starting a second while the
    first is in flight raises RunInProgressError instead of letting both
    write the same day's cache entries.
    """

    def __init__(
        self,
        client: InstacartClient,
        store: CacheStore,
        *,
        policy: RatePolicy | None = None,
        reporter: ProgressReporter | None = None,
        today: Callable[[], date] = today_utc,
    ):
        self.store = store
        self.today = today
        self.reporter = reporter or ProgressReporter()
        policy = policy or RatePolicy()
        self.fetcher = ItemFetcher(client, store, policy=policy, today=today)
        self.aggregator = ShopAggregator(client, self.fetcher, policy=policy, reporter=self.reporter)
        self._lock = threading.Lock()

    def run(self, shops: list[Shop]) -> ComparisonView:
        if not self._lock.acquire(blocking=False):
            raise RunInProgressError("A comparison run is already in progress")
        try:
            sweep_stale_entries(self.store, self.today())
            self.reporter.run_started([s.retailer for s in shops])

            results = self.aggregator.fetch_all_shop_items(shops)
            view = group_shop_items(results)

            failed = sum(1 for r in results if r.error)
            logger.info(
                "Compared %d retailers across %d categories (%d shop failures)",
                len(view.retailers), len(view.items_by_category), failed,
            )
            self.reporter.run_completed(view.to_dict())
            return view
        finally:
            self._lock.release()
