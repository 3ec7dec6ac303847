from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from .errors import CacheError
from .models import ItemRecord

logger = logging.getLogger(__name__)

ITEM_CACHE_PREFIX = "instacart-shop-items"
SWEEP_PREFIX = "instacart-cache-sweep"
SWEEP_SENTINEL_KEY = f"{SWEEP_PREFIX}-last"

KNOWN_PREFIXES = (ITEM_CACHE_PREFIX, SWEEP_PREFIX)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class CacheKey:
    """Structured form of ``<prefix>-<scope>-<YYYY-MM-DD>``."""

    prefix: str
    scope: str
    day: date | None = None

    def format(self) -> str:
        if self.day is None:
            return f"{self.prefix}-{self.scope}"
        return f"{self.prefix}-{self.scope}-{self.day.isoformat()}"

    @staticmethod
    def parse(key: str) -> "CacheKey | None":
        """Decompose a raw key. Returns None for keys we do not own."""
        # Longest prefix first so one known prefix can never shadow another.
        for prefix in sorted(KNOWN_PREFIXES, key=len, reverse=True):
            if key.startswith(prefix + "-"):
                rest = key[len(prefix) + 1:]
                break
        else:
            return None

        # "-YYYY-MM-DD" is exactly 11 characters.
        if len(rest) > 11 and rest[-11] == "-":
            try:
                day = date.fromisoformat(rest[-10:])
            except ValueError:
                day = None
            if day is not None:
                return CacheKey(prefix=prefix, scope=rest[:-11], day=day)

        return CacheKey(prefix=prefix, scope=rest)


def shop_items_key(shop_id: str, day: date) -> str:
    return CacheKey(ITEM_CACHE_PREFIX, shop_id, day).format()


class CacheStore:
    """Key-value store holding JSON-compatible values.

    Operations are atomic per key. There is no cross-key transaction.
    Implementations raise :class:`CacheError` on storage failure.
    """

    def get(self, key: str) -> Any | None:
        raise NotImplementedError

    def set_many(self, entries: dict[str, Any]) -> None:
        raise NotImplementedError

    def remove_many(self, keys: list[str]) -> None:
        raise NotImplementedError

    def enumerate(self) -> dict[str, Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})


class MemoryCacheStore(CacheStore):
    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set_many(self, entries: dict[str, Any]) -> None:
        self._data.update(entries)

    def remove_many(self, keys: list[str]) -> None:
        for k in keys:
            self._data.pop(k, None)

    def enumerate(self) -> dict[str, Any]:
        return dict(self._data)


class JsonFileCacheStore(CacheStore):
    """All keys in one JSON document on disk, rewritten on every mutation."""

    def __init__(self, path: str | Path = "data/cache.json"):
        self.path = Path(path)

    def get(self, key: str) -> Any | None:
        return self._load().get(key)

    def set_many(self, entries: dict[str, Any]) -> None:
        data = self._load()
        data.update(entries)
        self._save(data)

    def remove_many(self, keys: list[str]) -> None:
        data = self._load()
        for k in keys:
            data.pop(k, None)
        self._save(data)

    def enumerate(self) -> dict[str, Any]:
        return self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CacheError(f"Failed to read cache file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise CacheError(f"Cache file {self.path} does not hold a JSON object")
        return data

    def _save(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data), encoding="utf-8")
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheError(f"Failed to write cache file {self.path}: {e}") from e


def sweep_stale_entries(store: CacheStore, today: date | None = None) -> int:
    """Remove cache entries dated before (or after) ``today``.

    Runs at most once per day per store: the sentinel key records the last
    sweep date. Storage errors are logged and the sweep reports 0 removals.
    """
    today = today or today_utc()
    stamp = today.isoformat()

    try:
        if store.get(SWEEP_SENTINEL_KEY) == stamp:
            return 0

        logger.info("Running daily cache cleanup")
        stale: list[str] = []
        for raw_key in store.enumerate():
            key = CacheKey.parse(raw_key)
            if key is None or key.day is None:
                continue
            if key.day != today:
                stale.append(raw_key)

        if stale:
            store.remove_many(stale)
            logger.info("Cleared %d old cache entries", len(stale))

        store.set(SWEEP_SENTINEL_KEY, stamp)
        return len(stale)
    except CacheError as e:
        logger.error("Cache cleanup failed: %s", e)
        return 0


def load_shop_items(store: CacheStore, shop_id: str, day: date) -> dict[str, ItemRecord]:
    """Read one shop's cache entry. Raises CacheError on storage or shape problems."""
    raw = store.get(shop_items_key(shop_id, day))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise CacheError(f"Cache entry for shop {shop_id} is not a mapping")
    out: dict[str, ItemRecord] = {}
    for product_id, value in raw.items():
        try:
            out[product_id] = ItemRecord.from_dict(value)
        except (KeyError, TypeError, AttributeError) as e:
            raise CacheError(f"Corrupt cache entry for shop {shop_id}, product {product_id}: {e}") from e
    return out


def save_shop_items(store: CacheStore, shop_id: str, day: date, items: dict[str, ItemRecord]) -> None:
    store.set(shop_items_key(shop_id, day), {pid: it.to_dict() for pid, it in items.items()})
