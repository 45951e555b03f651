"""Readiness waiter: navigate and wait until the page is worth querying.

"Navigation complete" alone is not enough on the pre-open page because
the table is rendered client-side afterwards. The waiter therefore uses
DOMContentLoaded as the primary signal and a settle policy as the
secondary one; control returns only once both hold.
"""

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.exceptions import NavigationError, NavigationTimeoutError
from src.logger import get_logger
from src.settle import SettlePolicy

log = get_logger(__name__)


class ReadinessWaiter:
    """Brings a fresh page to an interactive state.

    Attributes:
        timeout_ms: Bound on the navigation itself.
        settle_policy: Compensating wait applied after navigation.
        wait_until: Playwright load state treated as navigation complete.
    """

    def __init__(
        self,
        timeout_ms: int,
        settle_policy: SettlePolicy,
        wait_until: str = "domcontentloaded",
    ) -> None:
        self.timeout_ms = timeout_ms
        self.settle_policy = settle_policy
        self.wait_until = wait_until

    async def wait_until_ready(self, page: Page, url: str) -> None:
        """Navigate to url and block until the page has settled.

        Args:
            page: Open Playwright page owned by the caller.
            url: Target page URL.

        Raises:
            NavigationTimeoutError: Navigation exceeded timeout_ms.
            NavigationError: Navigation failed for any other reason.
        """
        log.info("Navigating to target", url=url, timeout_ms=self.timeout_ms)

        try:
            response = await page.goto(url, wait_until=self.wait_until, timeout=self.timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeoutError(url=url, timeout_ms=self.timeout_ms) from exc
        except PlaywrightError as exc:
            raise NavigationError(url=url, reason=str(exc)) from exc

        if response is None:
            log.debug("Navigation returned no response", url=url)
        elif response.status >= 400:
            # Bot-detection often answers with an error status and still renders.
            log.warning("Target answered with error status", url=url, status_code=response.status)
        else:
            log.info("Navigation successful", url=url, status_code=response.status)

        log.info("Waiting for page to settle")
        await self.settle_policy.settle(page)
