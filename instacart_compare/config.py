from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


REQUIRED_KEYS = [
    "INSTACART_POSTAL_CODE",
    "INSTACART_ZONE_ID",
    "INSTACART_RETAILERS",
]

OPTIONAL_KEYS = [
    "INSTACART_BASE_URL",
    "INSTACART_PAGE_VIEW_ID",
    "INSTACART_COOKIE",
    "INSTACART_CDP_URL",
    "INSTACART_CACHE_PATH",
    "INSTACART_SERVICE_TYPE",
]

_PLACEHOLDERS = {"PLACEHOLDER", "CHANGEME", ""}


@dataclass(frozen=True)
class Config:
    postal_code: str
    zone_id: str
    retailers: tuple[str, ...]
    base_url: str = "https://www.instacart.com"
    page_view_id: str = ""
    cookie: str | None = None
    cdp_url: str | None = None
    cache_path: str = "data/cache.json"
    service_type: str = "delivery"

    @staticmethod
    def load_from_env(*, env_file: str | Path | None = ".env") -> "Config":
        # Real environment variables win over the .env file.
        if env_file is not None:
            load_dotenv(env_file, override=False)

        values: dict[str, str] = {}
        for k in REQUIRED_KEYS:
            val = os.environ.get(k)
            if val is None:
                raise RuntimeError(f"Missing config value: {k}")
            if val.strip() in _PLACEHOLDERS:
                raise RuntimeError(f"Config value {k} is still a placeholder")
            values[k] = val.strip()

        retailers = tuple(r.strip() for r in values["INSTACART_RETAILERS"].split(",") if r.strip())
        if not retailers:
            raise RuntimeError("INSTACART_RETAILERS names no retailers")

        return Config(
            postal_code=values["INSTACART_POSTAL_CODE"],
            zone_id=values["INSTACART_ZONE_ID"],
            retailers=retailers,
            base_url=os.environ.get("INSTACART_BASE_URL", "https://www.instacart.com").rstrip("/"),
            page_view_id=os.environ.get("INSTACART_PAGE_VIEW_ID", ""),
            cookie=os.environ.get("INSTACART_COOKIE") or None,
            cdp_url=os.environ.get("INSTACART_CDP_URL") or None,
            cache_path=os.environ.get("INSTACART_CACHE_PATH") or "data/cache.json",
            service_type=os.environ.get("INSTACART_SERVICE_TYPE") or "delivery",
        )


def cache_path_from_env(*, env_file: str | Path | None = ".env") -> str:
    """Cache location alone, for commands that need no other config."""
    if env_file is not None:
        load_dotenv(env_file, override=False)
    return os.environ.get("INSTACART_CACHE_PATH") or "data/cache.json"
