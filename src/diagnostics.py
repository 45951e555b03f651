"""Checkpoint screenshots.

Each checkpoint writes one image to a fixed, checkpoint-named path and
overwrites whatever the previous run left there. Capturing never fails
the run: errors are logged and the recorder returns None.
"""

from pathlib import Path

from playwright.async_api import Page

from src.logger import get_logger
from src.models import Checkpoint

log = get_logger(__name__)


class DiagnosticRecorder:
    """Captures page screenshots at pipeline checkpoints.

    A recorder belongs to one run; each checkpoint is captured at most
    once through it.

    Attributes:
        screenshot_dir: Directory receiving checkpoint images.
        recorded: Image path per checkpoint captured so far.
    """

    def __init__(self, screenshot_dir: Path) -> None:
        self.screenshot_dir = screenshot_dir
        self.recorded: dict[Checkpoint, Path] = {}

    def path_for(self, checkpoint: Checkpoint) -> Path:
        return self.screenshot_dir / f"{checkpoint.value}.png"

    async def record(
        self,
        page: Page,
        checkpoint: Checkpoint,
        full_page: bool = True,
    ) -> Path | None:
        """Capture a screenshot for checkpoint.

        Returns:
            Path of the image, or None if it was already captured this
            run or the capture failed.
        """
        if checkpoint in self.recorded:
            log.debug("Checkpoint already captured", checkpoint=checkpoint.value)
            return None

        path = self.path_for(checkpoint)
        log.info("Taking screenshot", checkpoint=checkpoint.value, path=str(path))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=full_page)
        except Exception as exc:
            log.warning(
                "Could not take screenshot",
                checkpoint=checkpoint.value,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None

        self.recorded[checkpoint] = path
        return path
