"""Settle policies for targets without an observable "render complete" event.

The pre-open page fills its table client-side after network activity
settles and refreshes it again after every dropdown change. No DOM event
marks either moment, so steps wait through a SettlePolicy instead of
sleeping inline. Swapping a fixed delay for a predicate poll only changes
the policy handed to a step.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from playwright.async_api import Page

from src.logger import get_logger

log = get_logger(__name__)

PagePredicate = Callable[[Page], Awaitable[bool]]


class SettlePolicy(ABC):
    """Strategy deciding how long to wait for a page to settle."""

    @abstractmethod
    async def settle(self, page: Page) -> None:
        """Block until the page is considered settled."""
        ...


class FixedDelaySettle(SettlePolicy):
    """Wait a fixed number of seconds.

    Attributes:
        seconds: Delay applied on every call.
        label: Name used in log lines.
    """

    def __init__(self, seconds: float, label: str = "settle") -> None:
        if seconds < 0:
            raise ValueError("Settle delay cannot be negative")
        self.seconds = seconds
        self.label = label

    async def settle(self, page: Page) -> None:
        log.debug("Settling", policy=self.label, seconds=self.seconds)
        await asyncio.sleep(self.seconds)

    def __repr__(self) -> str:
        return f"FixedDelaySettle(seconds={self.seconds!r}, label={self.label!r})"


class PredicateSettle(SettlePolicy):
    """Poll a page predicate until it holds or a timeout elapses.

    Reaching the timeout is not an error: the caller proceeds and the
    next step decides whether the page is usable.

    Attributes:
        predicate: Async callable returning True once the page is ready.
        interval_sec: Delay between polls.
        timeout_sec: Upper bound on total waiting.
        label: Name used in log lines.
    """

    def __init__(
        self,
        predicate: PagePredicate,
        interval_sec: float = 0.5,
        timeout_sec: float = 10.0,
        label: str = "predicate",
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("Poll interval must be positive")
        if timeout_sec < 0:
            raise ValueError("Timeout cannot be negative")
        self.predicate = predicate
        self.interval_sec = interval_sec
        self.timeout_sec = timeout_sec
        self.label = label

    async def settle(self, page: Page) -> None:
        deadline = time.monotonic() + self.timeout_sec
        polls = 0

        while True:
            polls += 1
            if await self.predicate(page):
                log.debug("Settle predicate satisfied", policy=self.label, polls=polls)
                return
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                log.warning(
                    "Settle predicate not satisfied before timeout",
                    policy=self.label,
                    timeout_sec=self.timeout_sec,
                    polls=polls,
                )
                return
            await asyncio.sleep(min(self.interval_sec, remaining))
