from __future__ import annotations

import logging
from typing import List

from playwright.sync_api import Error as PWError
from playwright.sync_api import TimeoutError as PWTimeoutError
from playwright.sync_api import sync_playwright

from .config import AppConfig
from .errors import FetchError
from .extraction import parse_requests
from .models import Record


logger = logging.getLogger(__name__)

DEFAULT_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120 Safari/537.36"
)


def fetch_page_html(
    url: str,
    *,
    user_agent: str = DEFAULT_UA,
    nav_timeout_ms: int = 60_000,
    hydration_wait_ms: int = 2500,
) -> str:
    """Render the page in headless Chromium and return the hydrated HTML."""
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=True)
        try:
            ctx = browser.new_context(user_agent=user_agent)
            page = ctx.new_page()
            logger.info("Navigating to: %s", url)
            try:
                page.goto(url, wait_until="domcontentloaded", timeout=nav_timeout_ms)
            except PWTimeoutError as e:
                raise FetchError(f"timeout loading {url}") from e
            except PWError as e:
                raise FetchError(f"could not load {url}: {e}") from e
            # The request list is filled in client-side after DOMContentLoaded.
            page.wait_for_timeout(hydration_wait_ms)
            return page.content()
        finally:
            try:
                browser.close()
            except PWError:
                pass


def fetch_records(cfg: AppConfig) -> List[Record]:
    html = fetch_page_html(
        cfg.page_url,
        nav_timeout_ms=cfg.nav_timeout_ms,
        hydration_wait_ms=cfg.hydration_wait_ms,
    )
    records = parse_requests(html, cfg.page_url, max_items=cfg.max_items)

    if cfg.debug:
        logger.debug("Parsed %d trending item(s):", len(records))
        for r in records:
            logger.debug("• %s by %s — %s", r.price, r.user, r.link)

    return records
