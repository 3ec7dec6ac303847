from __future__ import annotations

import json
from typing import Any, Protocol

from .models import Shop
from .normalize import CategoryPage, parse_category_response, parse_items_response


GRAPHQL_PATH = "/graphql"

# Persisted query hashes the web client registers with the backend.
CATEGORY_QUERY_HASH = "829a2e7c0b0d8156926b64dc69afd11f0b3d4097f90679fa84a539059c131eb7"
ITEMS_QUERY_HASH = "6474c319c75c5357b0a4f646e1d3a01dd805c5fd917d7a90906ecb84a1bad8b1"

CATEGORY_PAGE_SIZE = 20


class Transport(Protocol):
    def get_json(self, path: str, *, params: dict[str, str] | None = None) -> Any: ...


def persisted_query_params(operation: str, variables: dict[str, Any], sha256: str) -> dict[str, str]:
    extensions = {"persistedQuery": {"version": 1, "sha256Hash": sha256}}
    return {
        "operationName": operation,
        "variables": json.dumps(variables, separators=(",", ":")),
        "extensions": json.dumps(extensions, separators=(",", ":")),
    }


class InstacartClient:
    """Read-only GraphQL queries against the shared storefront backend.

    Raises TransportError, BackendError or ParseError; callers decide
    how much of a run a failure should cost.
    """

    def __init__(self, transport: Transport, *, postal_code: str, zone_id: str, page_view_id: str = ""):
        self.transport = transport
        self.postal_code = postal_code
        self.zone_id = zone_id
        self.page_view_id = page_view_id

    def category_items(self, shop: Shop) -> CategoryPage:
        variables = {
            "retailerInventorySessionToken": shop.retailer_inventory_session_token,
            "pageViewId": self.page_view_id,
            "orderBy": "MOST_RELEVANT",
            "first": CATEGORY_PAGE_SIZE,
            "pageSource": "your_items",
            "categoryId": "all",
            "shopId": shop.id,
            "postalCode": self.postal_code,
            "zoneId": self.zone_id,
        }
        params = persisted_query_params("Category", variables, CATEGORY_QUERY_HASH)
        doc = self.transport.get_json(GRAPHQL_PATH, params=params)
        return parse_category_response(doc)

    def items(
        self,
        item_ids: list[str],
        *,
        shop_id: str,
        zone_id: str | None = None,
        postal_code: str | None = None,
    ) -> list[dict[str, Any]]:
        variables = {
            "ids": list(item_ids),
            "shopId": shop_id,
            "zoneId": zone_id or self.zone_id,
            "postalCode": postal_code or self.postal_code,
        }
        params = persisted_query_params("Items", variables, ITEMS_QUERY_HASH)
        doc = self.transport.get_json(GRAPHQL_PATH, params=params)
        return parse_items_response(doc)
