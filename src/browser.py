"""Browser orchestration for a bot-protected target.

BrowserManager owns the Playwright process, the Chromium instance and a
single download-enabled context. Pages handed out by `new_page()` belong
to the caller, who is responsible for closing them; the manager tears
down the context, browser and driver when its context manager exits.

Anti-Bot Measures:
    - Disables the AutomationControlled blink feature
    - Presents a fixed desktop user-agent and a full HD viewport
    - Masks navigator.webdriver and related automation indicators
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Self

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from config.settings import GlobalConfig
from src.exceptions import BrowserInitializationError
from src.logger import get_logger

log = get_logger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=site-per-process",
    "--no-sandbox",
]

STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => undefined,
});

Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
});

window.chrome = {
    runtime: {},
};
"""


class BrowserManager:
    """Manages the Playwright browser lifecycle for one pipeline run.

    Attributes:
        config: GlobalConfig instance for runtime configuration.

    Example:
        async with BrowserManager.create(config) as browser:
            page = await browser.new_page()
            try:
                ...
            finally:
                await page.close()
    """

    def __init__(self, config: GlobalConfig) -> None:
        self.config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @classmethod
    @asynccontextmanager
    async def create(cls, config: GlobalConfig) -> AsyncGenerator[Self, None]:
        """Launch a browser and yield a ready manager, cleaning up on exit.

        Raises:
            BrowserInitializationError: If browser launch fails.
        """
        instance = cls(config)
        try:
            await instance._initialize()
            yield instance
        finally:
            await instance._cleanup()

    async def _initialize(self) -> None:
        mode = "headless" if self.config.headless else "headed"
        log.info("Launching browser", mode=mode)

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=LAUNCH_ARGS,
            )
            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                accept_downloads=True,
            )
            await self._context.add_init_script(STEALTH_JS)

            log.info(
                "Browser initialized successfully",
                user_agent=self.config.user_agent[:50] + "...",
            )

        except Exception as exc:
            await self._cleanup()
            raise BrowserInitializationError(
                reason=str(exc), browser_type="chromium"
            ) from exc

    async def new_page(self) -> Page:
        """Create a new page within the current browser context.

        Raises:
            BrowserInitializationError: If context is not initialized.
        """
        if not self.is_initialized:
            raise BrowserInitializationError(
                reason="Browser context not initialized", browser_type="chromium"
            )

        page = await self._context.new_page()
        page.set_default_navigation_timeout(self.config.navigation_timeout_ms)

        log.debug("New page created")
        return page

    async def _cleanup(self) -> None:
        """Clean up browser resources in reverse initialization order."""
        if self._context is not None:
            try:
                await self._context.close()
            except Exception as exc:
                log.warning("Error closing context", error=str(exc))
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                log.warning("Error closing browser", error=str(exc))
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.warning("Error stopping playwright", error=str(exc))
            self._playwright = None

        log.info("Browser closed")

    @property
    def is_initialized(self) -> bool:
        """Check if browser is fully initialized and ready."""
        return all([
            self._playwright is not None,
            self._browser is not None,
            self._context is not None,
        ])
