from __future__ import annotations

import json
import logging
from typing import Any, Iterable
from urllib.parse import unquote

from .errors import ParseError
from .models import Shop

logger = logging.getLogger(__name__)

DEFAULT_SHOPS_KEY = "Shop:f928c71"
DELIVERY = "delivery"


def load_apollo_state(text: str) -> dict[str, Any]:
    """Parse the page's ``node-apollo-state`` payload, URI-encoded or not."""
    text = text.strip()
    for candidate in (text, unquote(text)):
        try:
            state = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(state, dict):
            return state
    raise ParseError("Session state is not a JSON object")


def parse_shop_directory(state: dict[str, Any], *, shops_key: str = DEFAULT_SHOPS_KEY) -> list[Shop]:
    """Every storefront listed in the session state, in document order."""
    container = state.get(shops_key)
    if container is None:
        # The hash suffix changes between site releases.
        container = next(
            (v for k, v in state.items() if k.startswith("Shop:") and isinstance(v, dict)),
            None,
        )
    if not isinstance(container, dict):
        raise ParseError("No storefront directory found in session state")

    shops: list[Shop] = []
    for key, wrapper in container.items():
        shop = wrapper.get("shop") if isinstance(wrapper, dict) else None
        if not isinstance(shop, dict):
            continue
        retailer = shop.get("retailer") or {}
        shop_id = shop.get("id")
        name = retailer.get("name") if isinstance(retailer, dict) else None
        if not shop_id or not name:
            logger.debug("Skipping storefront %s without id or retailer name", key)
            continue
        shops.append(
            Shop(
                id=str(shop_id),
                retailer=str(name),
                service_type=str(shop.get("serviceType") or ""),
                retailer_inventory_session_token=str(shop.get("retailerInventorySessionToken") or ""),
            )
        )
    return shops


def list_retailers(shops: Iterable[Shop]) -> list[str]:
    return sorted({s.retailer for s in shops})


def select_shops(
    shops: Iterable[Shop],
    retailer_names: Iterable[str],
    *,
    service_type: str = DELIVERY,
) -> list[Shop]:
    wanted = {n.strip().lower() for n in retailer_names if n.strip()}
    return [
        s for s in shops
        if s.service_type == service_type and s.retailer.strip().lower() in wanted
    ]
