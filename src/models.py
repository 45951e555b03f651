"""Data model for a single extraction-and-archival run.

Nothing here survives across runs: every invocation builds a fresh
RunReport and at most one Artifact.
"""

from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field


class Checkpoint(StrEnum):
    """Named points at which a diagnostic screenshot is captured."""

    INITIAL = "initial"
    POST_SELECTION_ERROR = "post-selection-error"
    POST_DOWNLOAD = "post-download"
    FATAL_ERROR = "fatal-error"


class RunState(StrEnum):
    """Forward-only pipeline states; FAILED absorbs from any step."""

    INIT = "init"
    NAVIGATED = "navigated"
    SELECTED = "selected"
    DOWNLOADED = "downloaded"
    ARCHIVED = "archived"
    DONE = "done"
    FAILED = "failed"


class RunOutcome(StrEnum):
    """Terminal classification of a run."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    PARTIAL_FAILURE = "partial_failure"
    FATAL_FAILURE = "fatal_failure"


class ArchiveStatus(StrEnum):
    UPLOADED = "uploaded"
    SKIPPED = "skipped"


class Artifact(BaseModel):
    """A downloaded file saved to the local scratch area.

    Attributes:
        file_name: Suggested (or synthesized) file name.
        local_path: Where the bytes were saved.
        size_bytes: Size of the saved file.
        discovered_at: UTC time the download resolved.
    """

    file_name: str = Field(..., min_length=1)
    local_path: Path
    size_bytes: int = Field(..., ge=0)
    discovered_at: datetime

    def read_bytes(self) -> bytes:
        """Load the payload from disk for a single upload."""
        return self.local_path.read_bytes()


class ArchiveResult(BaseModel):
    status: ArchiveStatus
    key: str | None = None
    bucket: str | None = None


class RunReport(BaseModel):
    """Summary of one run, returned by the orchestrator.

    Attributes:
        outcome: Terminal classification (None until the run ends).
        state: Current or final state.
        history: Every state entered, in order.
        failure_reason: Message of the error that ended the happy path.
        artifact: Downloaded artifact, if any.
        archive: Result of the archival step, if it ran.
        checkpoints: Screenshot path per captured checkpoint.
        last_url: Last URL the page reported.
        page_title: Title read after readiness.
        started_at: UTC start time.
        finished_at: UTC end time.
    """

    outcome: RunOutcome | None = None
    state: RunState = RunState.INIT
    history: list[RunState] = Field(default_factory=lambda: [RunState.INIT])
    failure_reason: str | None = None
    artifact: Artifact | None = None
    archive: ArchiveResult | None = None
    checkpoints: dict[Checkpoint, Path] = Field(default_factory=dict)
    last_url: str | None = None
    page_title: str | None = None
    started_at: datetime
    finished_at: datetime | None = None

    @property
    def duration_sec(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def storage_key(self) -> str | None:
        return self.archive.key if self.archive else None

    @property
    def diagnostic_path(self) -> Path | None:
        """Most relevant screenshot for a failed run, latest step first."""
        for checkpoint in (
            Checkpoint.FATAL_ERROR,
            Checkpoint.POST_SELECTION_ERROR,
            Checkpoint.POST_DOWNLOAD,
            Checkpoint.INITIAL,
        ):
            if checkpoint in self.checkpoints:
                return self.checkpoints[checkpoint]
        return None
