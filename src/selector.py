"""Scope control selection on the pre-open page.

The dropdown accepts direct value assignment, so after opening it the
option is set with `select_option` rather than by clicking list entries.
Both the open and the selection are followed by a settle policy because
the page refreshes its table without emitting an observable event.
"""

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.exceptions import ControlNotFoundError, ControlSelectionError
from src.logger import get_logger
from src.settle import SettlePolicy

log = get_logger(__name__)


class ControlSelector:
    """Locates the scope dropdown and applies a scope option.

    Attributes:
        selector: Selector of the dropdown element.
        option_value: Value assigned to the dropdown.
        timeout_ms: Bound on waiting for the dropdown to exist.
        open_settle: Policy applied after the dropdown is opened.
        selection_settle: Policy applied after the option is assigned.
    """

    def __init__(
        self,
        selector: str,
        option_value: str,
        timeout_ms: int,
        open_settle: SettlePolicy,
        selection_settle: SettlePolicy,
    ) -> None:
        self.selector = selector
        self.option_value = option_value
        self.timeout_ms = timeout_ms
        self.open_settle = open_settle
        self.selection_settle = selection_settle

    async def select_scope(self, page: Page) -> list[str]:
        """Open the scope dropdown and select the configured option.

        Returns:
            Option values Playwright reports as selected.

        Raises:
            ControlNotFoundError: The dropdown did not appear in time.
            ControlSelectionError: The option could not be applied.
        """
        log.info("Looking for scope control", selector=self.selector)

        try:
            await page.wait_for_selector(self.selector, timeout=self.timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ControlNotFoundError(selector=self.selector, timeout_ms=self.timeout_ms) from exc

        log.info("Found scope control, opening", selector=self.selector)

        try:
            await page.click(self.selector)
            await self.open_settle.settle(page)
            selected = await page.select_option(self.selector, self.option_value)
        except PlaywrightError as exc:
            raise ControlSelectionError(
                selector=self.selector,
                option=self.option_value,
                reason=str(exc),
            ) from exc

        if self.option_value not in selected:
            raise ControlSelectionError(
                selector=self.selector,
                option=self.option_value,
                reason=f"page reported selection {selected!r}",
            )

        log.info("Selected scope option", option=self.option_value)
        await self.selection_settle.settle(page)
        return selected
