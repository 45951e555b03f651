"""Custom exception hierarchy for PreOpen-Archiver.

Every pipeline step raises a specific exception so the orchestrator can
classify the run outcome without inspecting messages. Each exception
carries a context dictionary for structured logging.

Classification:
    - NavigationError (and NavigationTimeoutError): fatal to the run.
    - StepError subclasses: the page was reached but a step failed.
    - UploadError: the artifact is on disk but not in the object store.
"""

from datetime import UTC, datetime
from typing import Any


class ArchiverError(Exception):
    """Base exception for all PreOpen-Archiver errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class BrowserInitializationError(ArchiverError):
    """Raised when the browser instance fails to launch or configure."""

    def __init__(self, reason: str, browser_type: str = "chromium") -> None:
        super().__init__(
            message=f"Failed to initialize {browser_type} browser: {reason}",
            context={"browser_type": browser_type, "reason": reason},
        )


class NavigationError(ArchiverError):
    """Raised when the target page cannot be reached.

    No control or download can exist without the page, so the
    orchestrator treats this as fatal.
    """

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            message=f"Navigation to '{url}' failed: {reason}",
            context={"url": url, "reason": reason},
        )
        self.url = url


class NavigationTimeoutError(NavigationError):
    """Raised when navigation does not complete within its bound."""

    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(url=url, reason=f"Navigation timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class StepError(ArchiverError):
    """Base for non-fatal failures after the page has been reached."""


class ControlNotFoundError(StepError):
    """Raised when the scope control never appears.

    Usually means the site structure changed or access is being gated.
    """

    def __init__(self, selector: str, timeout_ms: int) -> None:
        super().__init__(
            message=f"Control '{selector}' did not appear within {timeout_ms}ms",
            context={"selector": selector, "timeout_ms": timeout_ms},
        )
        self.selector = selector


class ControlSelectionError(StepError):
    """Raised when the control exists but the option cannot be applied."""

    def __init__(self, selector: str, option: str, reason: str) -> None:
        super().__init__(
            message=f"Could not select '{option}' on '{selector}': {reason}",
            context={"selector": selector, "option": option, "reason": reason},
        )


class DownloadUnavailableError(StepError):
    """Raised when the download trigger is not visible on the page."""

    def __init__(self, trigger_text: str) -> None:
        super().__init__(
            message=f"Download trigger '{trigger_text}' is not visible",
            context={"trigger_text": trigger_text},
        )


class DownloadError(StepError):
    """Raised when a triggered download does not resolve or cannot be saved."""

    def __init__(self, reason: str, file_name: str | None = None) -> None:
        super().__init__(
            message=f"Download failed: {reason}",
            context={"reason": reason, "file_name": file_name},
        )


class UploadError(ArchiverError):
    """Raised when the object store rejects or fails an upload.

    The local artifact stays on disk as a fallback copy.
    """

    def __init__(self, key: str, bucket: str, reason: str) -> None:
        super().__init__(
            message=f"Upload of '{key}' to bucket '{bucket}' failed: {reason}",
            context={"key": key, "bucket": bucket, "reason": reason},
        )
        self.key = key


class LoggingInitializationError(ArchiverError):
    """Raised when the logging system fails to initialize.

    This is a startup-blocking error.
    """

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
