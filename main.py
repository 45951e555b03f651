"""PreOpen-Archiver Entry Point.

Bootstrap and orchestration layer. All functional code resides in /src.

Responsibilities:
    1. Load and validate configuration
    2. Initialize logging infrastructure (fail-fast on error)
    3. Prepare scratch directories
    4. Run the pipeline once and map its outcome to an exit code

Usage:
    python main.py
"""

import asyncio
import sys
from datetime import UTC, datetime
from typing import NoReturn

from loguru import logger

from config.settings import GlobalConfig, get_config
from src.browser import BrowserManager
from src.exceptions import ArchiverError, LoggingInitializationError
from src.logger import configure_logging
from src.models import RunOutcome, RunReport
from src.pipeline import PipelineOrchestrator
from src.reporter import RunReportWriter

EXIT_CODES = {
    RunOutcome.COMPLETED: 0,
    RunOutcome.SKIPPED: 0,
    RunOutcome.FATAL_FAILURE: 2,
    RunOutcome.PARTIAL_FAILURE: 3,
}


def _validate_startup_requirements(config: GlobalConfig) -> None:
    """Create the scratch directories the pipeline writes into.

    Raises:
        SystemExit: If a directory cannot be created.
    """
    for directory in (config.screenshot_dir, config.downloads_dir):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.critical(
                "Failed to create scratch directory",
                directory=str(directory),
                error=str(exc),
            )
            sys.exit(1)

    logger.debug(
        "Startup validation complete",
        screenshot_dir=str(config.screenshot_dir),
        downloads_dir=str(config.downloads_dir),
        storage_enabled=config.has_storage_credentials,
    )


async def _run_pipeline(config: GlobalConfig) -> RunReport:
    """Launch the browser, run the pipeline once and persist its report."""
    async with BrowserManager.create(config) as browser:
        orchestrator = PipelineOrchestrator.from_config(config, browser)
        report = await orchestrator.run()

    if config.write_run_report:
        RunReportWriter(config.report_dir).write(report)

    return report


def _exit_code_for(report: RunReport, config: GlobalConfig) -> int:
    if not config.fail_on_incomplete or report.outcome is None:
        return 0
    return EXIT_CODES[report.outcome]


def _handle_fatal_error(exc: Exception) -> NoReturn:
    """Log an exception that escaped the pipeline and exit non-zero."""
    if isinstance(exc, ArchiverError):
        logger.critical(
            "Fatal application error",
            error_type=type(exc).__name__,
            message=exc.message,
            context=exc.context,
        )
        sys.exit(1)

    logger.exception("Unexpected fatal error", error=str(exc))
    sys.exit(1)


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    try:
        config = get_config()
    except Exception as exc:
        print(f"FATAL: Configuration loading failed: {exc}", file=sys.stderr)
        return 1

    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return 1

    _validate_startup_requirements(config)

    logger.info("Starting pre-open scraper", started_at=datetime.now(UTC).isoformat())

    try:
        report = asyncio.run(_run_pipeline(config))
    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user (Ctrl+C)")
        return 130
    except Exception as exc:
        _handle_fatal_error(exc)

    logger.info(
        "Pre-open scraper finished",
        finished_at=datetime.now(UTC).isoformat(),
        outcome=report.outcome.value if report.outcome else None,
    )
    return _exit_code_for(report, config)


if __name__ == "__main__":
    sys.exit(main())
