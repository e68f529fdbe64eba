"""Browser session management using patchright.

Rules:
  - headed browser only, the host site logs out headless sessions
  - single browser context and a single page per run
  - cookie auth only, no login flow; cookies are written back on exit so a
    resumed run keeps the refreshed session
"""

import json
import logging
from pathlib import Path
from types import TracebackType
from typing import Any

from patchright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from autoapply.core.config import BrowserConfig

logger = logging.getLogger(__name__)


class BrowserSession:
    """Async context manager that owns one patchright browser + context + page.

    Usage::

        async with BrowserSession(config) as session:
            adapter = LinkedInAdapter(session.page)
    """

    def __init__(self, config: BrowserConfig) -> None:
        self._config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page:
        """The single page for this session. Raises if not entered."""
        if self._page is None:
            msg = "BrowserSession not entered, use 'async with'"
            raise RuntimeError(msg)
        return self._page

    async def __aenter__(self) -> "BrowserSession":
        pw = await async_playwright().start()
        self._playwright = pw
        self._browser = await pw.chromium.launch(
            headless=False,
            slow_mo=self._config.slow_mo_ms,
        )

        self._context = await self._browser.new_context(no_viewport=True)
        cookies = _load_cookies(self._config.cookies_path)
        if cookies:
            await self._context.add_cookies(cookies)
            logger.info("Loaded %d cookies from %s", len(cookies), self._config.cookies_path)
        else:
            logger.warning("No cookies loaded, session will be unauthenticated")

        self._context.set_default_timeout(self._config.timeout_ms)
        self._page = await self._context.new_page()
        if self._config.start_url:
            await self._page.goto(self._config.start_url)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._context is not None:
            if self._config.save_cookies_on_exit:
                try:
                    _save_cookies(self._config.cookies_path, await self._context.cookies())
                except Exception:
                    logger.warning("Could not read cookies back from the browser", exc_info=True)
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()


def _load_cookies(path: str) -> list[Any]:
    """Load cookies from a JSON file. Returns empty list on any failure."""
    cookie_path = Path(path)
    if not cookie_path.exists():
        logger.debug("Cookie file not found: %s", path)
        return []
    try:
        data = json.loads(cookie_path.read_text())
        if isinstance(data, list):
            return data
        logger.warning("Cookie file is not a JSON array: %s", path)
        return []
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to load cookies from %s: %s", path, e)
        return []


def _save_cookies(path: str, cookies: list[Any]) -> bool:
    """Write cookies as a JSON array. Returns False if nothing was written."""
    if not cookies:
        return False
    cookie_path = Path(path)
    try:
        cookie_path.parent.mkdir(parents=True, exist_ok=True)
        cookie_path.write_text(json.dumps(list(cookies), indent=2))
    except OSError as e:
        logger.warning("Failed to save cookies to %s: %s", path, e)
        return False
    logger.debug("Saved %d cookies to %s", len(cookies), path)
    return True
