from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import ParseError, TransportError

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


@dataclass
class HttpClient:
    """Plain requests transport. Needs the browser's cookie header to be authorized."""

    base_url: str
    cookie: str | None = None
    timeout_s: float = 30.0
    session: requests.Session = field(default_factory=requests.Session)

    def get_json(self, path: str, *, params: dict[str, str] | None = None) -> Any:
        url = self.base_url.rstrip("/") + "/" + path.lstrip("/")
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.cookie:
            headers["Cookie"] = self.cookie

        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise TransportError(f"GET {path} failed: {e}") from e

        if resp.status_code >= 400:
            raise TransportError(f"HTTP error {resp.status_code} for {path}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise ParseError(f"Failed to decode JSON for {path}: {e}") from e

    def close(self) -> None:
        self.session.close()
