"""JSON run reports for consumers outside the pipeline.

One file per UTC day: a rerun on the same day replaces the earlier
report, matching how artifacts are keyed in the object store.
"""

import json
from pathlib import Path

from src.logger import get_logger
from src.models import RunReport

log = get_logger(__name__)


class RunReportWriter:
    """Persists RunReport instances to disk.

    Attributes:
        report_dir: Directory receiving run report files.
    """

    def __init__(self, report_dir: Path) -> None:
        self.report_dir = report_dir

    def path_for(self, report: RunReport) -> Path:
        return self.report_dir / f"run-{report.started_at.date().isoformat()}.json"

    def write(self, report: RunReport) -> Path | None:
        """Write report as JSON, including derived duration and key.

        Returns:
            Path written, or None when writing failed.
        """
        path = self.path_for(report)
        payload = report.model_dump(mode="json")
        payload["duration_sec"] = report.duration_sec
        payload["storage_key"] = report.storage_key

        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            log.warning("Failed to write run report", path=str(path), error=str(exc))
            return None

        log.info("Run report written", path=str(path))
        return path
