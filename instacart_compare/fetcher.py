from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Iterable

from .cache import CacheStore, load_shop_items, save_shop_items, today_utc
from .client import InstacartClient
from .errors import BackendError, CacheError, ParseError, TransportError
from .models import ItemRecord
from .normalize import item_record_from_raw, product_id_from_item_id

logger = logging.getLogger(__name__)

CHUNK_SIZE = 50
REQUEST_DELAY_S = 0.5


@dataclass(frozen=True)
class RatePolicy:
    """Self-imposed request pacing: how many ids per call, how long between calls."""

    chunk_size: int = CHUNK_SIZE
    delay_s: float = REQUEST_DELAY_S
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if self.delay_s < 0:
            raise ValueError("delay_s must not be negative")

    def wait(self) -> None:
        if self.delay_s > 0:
            self.sleep(self.delay_s)

    def chunks(self, ids: list[str]) -> list[list[str]]:
        return [ids[i : i + self.chunk_size] for i in range(0, len(ids), self.chunk_size)]


class ItemFetcher:
    """Resolves item ids to ItemRecords through the day's cache, then the network."""

    def __init__(
        self,
        client: InstacartClient,
        store: CacheStore,
        *,
        policy: RatePolicy | None = None,
        today: Callable[[], date] = today_utc,
    ):
        self.client = client
        self.store = store
        self.policy = policy or RatePolicy()
        self.today = today

    def fetch_item_details(
        self,
        item_ids: Iterable[str],
        shop_id: str,
        zone_id: str | None = None,
        postal_code: str | None = None,
        initial_items: Iterable[dict[str, Any]] = (),
    ) -> dict[str, ItemRecord]:
        """Return product id -> ItemRecord for every id that could be resolved.

        ``initial_items`` are raw items the caller already holds (the first
        category page); they go into the cache without costing a request.
        Ids that fail to resolve are simply absent from the result.
        """
        day = self.today()
        resolved: dict[str, ItemRecord] = {}
        cache_dirty = False

        try:
            cached = load_shop_items(self.store, shop_id, day)
        except CacheError as e:
            logger.warning("Shop %s: cache unreadable, fetching fresh: %s", shop_id, e)
            cached = {}

        for raw in initial_items:
            try:
                item = item_record_from_raw(raw)
            except ParseError as e:
                logger.warning("Shop %s: skipping malformed initial item: %s", shop_id, e)
                continue
            if item.product_id not in cached:
                cached[item.product_id] = item
                cache_dirty = True
            resolved.setdefault(item.product_id, cached[item.product_id])

        requested = list(dict.fromkeys(item_ids))
        to_fetch: list[str] = []
        for item_id in requested:
            product_id = product_id_from_item_id(item_id)
            if product_id is not None and product_id in cached:
                resolved.setdefault(product_id, cached[product_id])
            else:
                to_fetch.append(item_id)

        if to_fetch:
            logger.info(
                "Shop %s: %d items in cache, fetching remaining %d",
                shop_id, len(requested) - len(to_fetch), len(to_fetch),
            )
            chunks = self.policy.chunks(to_fetch)
            for n, chunk in enumerate(chunks, 1):
                if n > 1:
                    self.policy.wait()
                logger.debug("Shop %s: fetching chunk %d of %d", shop_id, n, len(chunks))
                try:
                    raw_items = self.client.items(
                        chunk, shop_id=shop_id, zone_id=zone_id, postal_code=postal_code,
                    )
                except (TransportError, BackendError, ParseError) as e:
                    logger.error("Shop %s: chunk %d of %d failed: %s", shop_id, n, len(chunks), e)
                    continue

                for raw in raw_items:
                    try:
                        item = item_record_from_raw(raw)
                    except ParseError as e:
                        logger.warning("Shop %s: skipping malformed item: %s", shop_id, e)
                        continue
                    if item.product_id not in cached:
                        cached[item.product_id] = item
                        cache_dirty = True
                    resolved.setdefault(item.product_id, cached[item.product_id])
        elif requested:
            logger.info("Shop %s: all %d items found in cache", shop_id, len(requested))

        if cache_dirty:
            logger.info("Shop %s: updating cache with %d total items", shop_id, len(cached))
            try:
                save_shop_items(self.store, shop_id, day, cached)
            except CacheError as e:
                logger.error("Shop %s: cache write failed: %s", shop_id, e)

        return resolved
