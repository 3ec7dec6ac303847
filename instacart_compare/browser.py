from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlencode

from playwright.sync_api import Browser, Error as PlaywrightError, Page, sync_playwright

from .errors import ParseError, TransportError

DEFAULT_CDP_URL = "http://127.0.0.1:9222"
INSTACART_URL = "https://www.instacart.com"

_FETCH_JS = """
async (url) => {
    const resp = await fetch(url, {credentials: "include", headers: {"Accept": "application/json"}});
    return {status: resp.status, text: await resp.text()};
}
"""

_APOLLO_STATE_JS = """
() => {
    const el = document.getElementById("node-apollo-state");
    return el ? el.textContent : null;
}
"""


class InstacartSession:
    """Persistent CDP connection to the user's own logged-in browser.

    Usage::

        with InstacartSession(cdp_url) as session:
            state = load_apollo_state(session.read_apollo_state())
            client = InstacartClient(session, postal_code=..., zone_id=...)

    Queries run as ``fetch`` inside the Instacart tab so they carry the
    tab's cookies, the same way the site's own scripts call the API.
    """

    def __init__(self, cdp_url: str = DEFAULT_CDP_URL, *, base_url: str = INSTACART_URL):
        self.cdp_url = cdp_url
        self.base_url = base_url.rstrip("/")
        self._pw = None
        self._browser: Browser | None = None
        self.page: Page | None = None

    def __enter__(self) -> "InstacartSession":
        self._pw = sync_playwright().start()
        try:
            self._browser = self._pw.chromium.connect_over_cdp(self.cdp_url)
        except PlaywrightError as e:
            self._pw.stop()
            self._pw = None
            raise TransportError(f"Could not connect to browser at {self.cdp_url}: {e}") from e
        self.page = self._find_instacart_page(self._browser)
        return self

    def __exit__(self, *exc):
        try:
            if self._browser:
                self._browser.close()
        finally:
            if self._pw:
                self._pw.stop()
        self._pw = None
        self._browser = None
        self.page = None

    def _find_instacart_page(self, browser: Browser) -> Page:
        for ctx in browser.contexts:
            for page in ctx.pages:
                if "instacart.com" in (page.url or ""):
                    return page

        # No open tab: reuse the first one and navigate it.
        ctx = browser.contexts[0] if browser.contexts else browser.new_context()
        page = ctx.pages[0] if ctx.pages else ctx.new_page()
        page.goto(self.base_url + "/store", wait_until="domcontentloaded", timeout=45_000)
        return page

    def read_apollo_state(self) -> str:
        """Raw text of the page's ``#node-apollo-state`` element."""
        if self.page is None:
            raise RuntimeError("InstacartSession is not open")
        text = self.page.evaluate(_APOLLO_STATE_JS)
        if not text:
            raise ParseError("node-apollo-state not found on the current page")
        return text

    def get_json(self, path: str, *, params: dict[str, str] | None = None) -> Any:
        if self.page is None:
            raise RuntimeError("InstacartSession is not open")
        url = self.base_url + "/" + path.lstrip("/")
        if params:
            url += "?" + urlencode(params)

        try:
            result = self.page.evaluate(_FETCH_JS, url)
        except PlaywrightError as e:
            raise TransportError(f"In-page fetch of {path} failed: {e}") from e

        status = int(result.get("status", 0))
        text = result.get("text") or ""
        if status >= 400 or status == 0:
            raise TransportError(f"HTTP error {status} for {path}: {text[:200]}")

        try:
            return json.loads(text)
        except ValueError as e:
            raise ParseError(f"Failed to decode JSON for {path}: {e}") from e
