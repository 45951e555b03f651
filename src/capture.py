"""Download capture for the CSV export link.

The download listener must be armed before the click: a download that
starts immediately would otherwise be missed. `trigger_and_capture`
is the only way to fire a trigger here, so the order cannot be swapped
by a caller.
"""

from datetime import UTC, datetime
from pathlib import Path
from typing import Awaitable, Callable

from playwright.async_api import Download, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.exceptions import DownloadError, DownloadUnavailableError
from src.logger import get_logger
from src.models import Artifact

log = get_logger(__name__)

TriggerAction = Callable[[], Awaitable[None]]


def synthesize_file_name(now: datetime | None = None) -> str:
    """Build a fallback CSV name unique to the current instant.

    >>> synthesize_file_name(datetime(2024, 9, 24, 9, 7, 1, 250, tzinfo=UTC))
    'pre-open-data-20240924T090701000250Z.csv'
    """
    now = now or datetime.now(UTC)
    return f"pre-open-data-{now:%Y%m%dT%H%M%S%f}Z.csv"


class DownloadCapturer:
    """Finds the download link, fires it and saves the resulting file.

    Attributes:
        trigger_text: Visible label of the download link.
        downloads_dir: Directory receiving saved artifacts.
        timeout_ms: Bound on waiting for the download event.
    """

    def __init__(self, trigger_text: str, downloads_dir: Path, timeout_ms: int) -> None:
        self.trigger_text = trigger_text
        self.downloads_dir = downloads_dir
        self.timeout_ms = timeout_ms

    async def capture(self, page: Page) -> Artifact:
        """Click the visible download link and return the saved artifact.

        Raises:
            DownloadUnavailableError: The link is not visible.
            DownloadError: The download did not resolve or could not be saved.
        """
        log.info("Looking for download trigger", text=self.trigger_text)
        trigger = page.get_by_text(self.trigger_text).first

        if not await trigger.is_visible():
            raise DownloadUnavailableError(trigger_text=self.trigger_text)

        log.info("Found download trigger, clicking")
        return await self.trigger_and_capture(page, trigger.click)

    async def trigger_and_capture(self, page: Page, trigger: TriggerAction) -> Artifact:
        """Arm the download listener, run trigger, then resolve the download.

        Args:
            page: Page on which the download is expected.
            trigger: Action that starts the download.

        Raises:
            DownloadError: No download within timeout_ms, or saving failed.
        """
        try:
            async with page.expect_download(timeout=self.timeout_ms) as download_info:
                await trigger()
            download = await download_info.value
        except PlaywrightTimeoutError as exc:
            raise DownloadError(reason=f"no download within {self.timeout_ms}ms") from exc
        except PlaywrightError as exc:
            raise DownloadError(reason=str(exc)) from exc

        discovered_at = datetime.now(UTC)
        file_name = self._resolve_file_name(download, discovered_at)
        log.info("Download started", file_name=file_name)

        return await self._save(download, file_name, discovered_at)

    @staticmethod
    def _resolve_file_name(download: Download, discovered_at: datetime) -> str:
        suggested = download.suggested_filename
        if suggested:
            # Keep only the final path segment.
            name = Path(suggested).name
            if name not in ("", ".", ".."):
                return name
        fallback = synthesize_file_name(discovered_at)
        log.warning("Download has no suggested name, using fallback", file_name=fallback)
        return fallback

    async def _save(self, download: Download, file_name: str, discovered_at: datetime) -> Artifact:
        target = self.downloads_dir / file_name

        try:
            self.downloads_dir.mkdir(parents=True, exist_ok=True)
            await download.save_as(target)
            size = target.stat().st_size
        except (PlaywrightError, OSError) as exc:
            raise DownloadError(reason=f"could not save: {exc}", file_name=file_name) from exc

        log.info("CSV file downloaded", path=str(target), size_bytes=size)
        return Artifact(
            file_name=file_name,
            local_path=target,
            size_bytes=size,
            discovered_at=discovered_at,
        )
