"""Pipeline orchestration for one extraction-and-archival run.

State machine:
    init -> navigated -> selected -> downloaded -> archived -> done
with `failed` reachable from every step. Transitions are forward-only and
nothing is retried within a run.

Outcome classification:
    - navigation failure                    -> fatal_failure
    - control, selection or download failure -> partial_failure
    - upload failure                        -> partial_failure
    - archival skipped (no credentials)     -> skipped
    - artifact uploaded                     -> completed

The page is the run's session. It is closed exactly once, in a finally
block, whatever state the run ends in.
"""

from datetime import UTC, datetime
from typing import Callable, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from config.settings import GlobalConfig
from src.archiver import Archiver
from src.capture import DownloadCapturer
from src.diagnostics import DiagnosticRecorder
from src.exceptions import ArchiverError, NavigationError, UploadError
from src.logger import get_logger
from src.models import (
    ArchiveStatus,
    Checkpoint,
    RunOutcome,
    RunReport,
    RunState,
)
from src.readiness import ReadinessWaiter
from src.selector import ControlSelector
from src.settle import FixedDelaySettle

log = get_logger(__name__)

_FORWARD = [
    RunState.INIT,
    RunState.NAVIGATED,
    RunState.SELECTED,
    RunState.DOWNLOADED,
    RunState.ARCHIVED,
    RunState.DONE,
]


class PageSource(Protocol):
    async def new_page(self) -> Page: ...


class PipelineOrchestrator:
    """Sequences readiness, selection, download and archival for one page.

    Collaborators are injected so tests can substitute fakes; use
    `from_config` to build the production wiring.

    Attributes:
        config: GlobalConfig for the run.
        browser: Source of the run's page (normally a BrowserManager).
        readiness: Navigates and waits for the page to settle.
        selector: Applies the scope option.
        capturer: Fires and saves the CSV download.
        archiver: Uploads the artifact.
    """

    def __init__(
        self,
        config: GlobalConfig,
        browser: PageSource,
        readiness: ReadinessWaiter,
        selector: ControlSelector,
        capturer: DownloadCapturer,
        archiver: Archiver,
        recorder_factory: Callable[[], DiagnosticRecorder] | None = None,
    ) -> None:
        self.config = config
        self.browser = browser
        self.readiness = readiness
        self.selector = selector
        self.capturer = capturer
        self.archiver = archiver
        self._recorder_factory = recorder_factory or (
            lambda: DiagnosticRecorder(config.screenshot_dir)
        )

    @classmethod
    def from_config(cls, config: GlobalConfig, browser: PageSource) -> "PipelineOrchestrator":
        """Wire every pipeline step from configuration."""
        return cls(
            config=config,
            browser=browser,
            readiness=ReadinessWaiter(
                timeout_ms=config.navigation_timeout_ms,
                settle_policy=FixedDelaySettle(config.page_settle_sec, label="page"),
            ),
            selector=ControlSelector(
                selector=config.scope_control_selector,
                option_value=config.scope_option_value,
                timeout_ms=config.control_timeout_ms,
                open_settle=FixedDelaySettle(config.dropdown_open_settle_sec, label="dropdown-open"),
                selection_settle=FixedDelaySettle(config.selection_settle_sec, label="selection"),
            ),
            capturer=DownloadCapturer(
                trigger_text=config.download_trigger_text,
                downloads_dir=config.downloads_dir,
                timeout_ms=config.download_timeout_ms,
            ),
            archiver=Archiver(config),
        )

    async def run(self) -> RunReport:
        """Execute one run and return its report.

        Step failures are classified into the report. Only exceptions
        raised outside the step boundaries propagate, after the page has
        been closed.
        """
        report = RunReport(started_at=datetime.now(UTC))
        recorder = self._recorder_factory()

        log.info("Pipeline run started", target_url=self.config.target_url)
        page = await self.browser.new_page()

        try:
            await self._execute(page, report, recorder)
        finally:
            report.last_url = self._current_url(page) or report.last_url
            await self._release(page)
            report.checkpoints = dict(recorder.recorded)
            report.finished_at = datetime.now(UTC)
            self._log_summary(report)

        return report

    async def _execute(self, page: Page, report: RunReport, recorder: DiagnosticRecorder) -> None:
        try:
            await self.readiness.wait_until_ready(page, self.config.target_url)
        except NavigationError as exc:
            self._fail(report, RunOutcome.FATAL_FAILURE, exc)
            log.error("Navigation failed", error=exc.message)
            current_url = self._current_url(page)
            if current_url is not None:
                report.last_url = current_url
                log.error("Current URL at error", url=current_url)
                await recorder.record(page, Checkpoint.FATAL_ERROR, full_page=False)
            return

        self._advance(report, RunState.NAVIGATED)
        await recorder.record(page, Checkpoint.INITIAL)
        report.page_title = await self._read_title(page)

        try:
            await self.selector.select_scope(page)
            self._advance(report, RunState.SELECTED)
            artifact = await self.capturer.capture(page)
        except ArchiverError as exc:
            log.warning(
                "Could not select scope or download CSV",
                error_type=type(exc).__name__,
                error=exc.message,
            )
            self._fail(report, RunOutcome.PARTIAL_FAILURE, exc)
            await recorder.record(page, Checkpoint.POST_SELECTION_ERROR)
            return
        except Exception as exc:
            log.exception("Unexpected error during selection or download", error=str(exc))
            self._fail(report, RunOutcome.PARTIAL_FAILURE, exc)
            await recorder.record(page, Checkpoint.POST_SELECTION_ERROR)
            return

        report.artifact = artifact
        self._advance(report, RunState.DOWNLOADED)
        await recorder.record(page, Checkpoint.POST_DOWNLOAD)

        try:
            result = await self.archiver.archive(artifact)
        except UploadError as exc:
            log.error(
                "Failed to upload artifact, local copy kept",
                error=exc.message,
                local_path=str(artifact.local_path),
            )
            self._fail(report, RunOutcome.PARTIAL_FAILURE, exc)
            return

        report.archive = result
        if result.status is ArchiveStatus.UPLOADED:
            self._advance(report, RunState.ARCHIVED)
            report.outcome = RunOutcome.COMPLETED
        else:
            report.outcome = RunOutcome.SKIPPED
        self._advance(report, RunState.DONE)

    @staticmethod
    def _advance(report: RunReport, state: RunState) -> None:
        if report.state is RunState.FAILED:
            raise RuntimeError(f"Cannot leave failed state for {state}")
        if _FORWARD.index(state) <= _FORWARD.index(report.state):
            raise RuntimeError(f"Illegal transition {report.state} -> {state}")
        report.state = state
        report.history.append(state)
        log.debug("Pipeline state changed", state=state.value)

    @staticmethod
    def _fail(report: RunReport, outcome: RunOutcome, exc: Exception) -> None:
        report.state = RunState.FAILED
        report.history.append(RunState.FAILED)
        report.outcome = outcome
        report.failure_reason = exc.message if isinstance(exc, ArchiverError) else str(exc)

    @staticmethod
    def _current_url(page: Page) -> str | None:
        try:
            url = page.url
        except Exception:
            return None
        return url or None

    @staticmethod
    async def _read_title(page: Page) -> str | None:
        try:
            title = await page.title()
        except PlaywrightError as exc:
            log.warning("Could not read page title", error=str(exc))
            return None
        log.info("Page title read", title=title)
        return title

    @staticmethod
    async def _release(page: Page) -> None:
        try:
            await page.close()
        except Exception as exc:
            log.warning("Error closing page", error=str(exc))
        else:
            log.debug("Page closed")

    @staticmethod
    def _log_summary(report: RunReport) -> None:
        outcome = report.outcome.value if report.outcome else "aborted"
        duration = f"{report.duration_sec:.1f}s" if report.duration_sec is not None else None

        if report.outcome in (RunOutcome.COMPLETED, RunOutcome.SKIPPED):
            log.info(
                "Pipeline run finished",
                outcome=outcome,
                duration=duration,
                storage_key=report.storage_key,
                file_name=report.artifact.file_name if report.artifact else None,
            )
            return

        diagnostic = report.diagnostic_path
        log.error(
            "Pipeline run incomplete",
            outcome=outcome,
            duration=duration,
            reason=report.failure_reason,
            last_url=report.last_url,
            diagnostic=str(diagnostic) if diagnostic else None,
        )
