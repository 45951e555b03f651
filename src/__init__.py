"""PreOpen-Archiver core source package.

This package contains the extraction-and-archival pipeline:
- browser: Playwright launch with anti-automation settings
- settle: settle policies for pages without a render-complete event
- readiness, selector, capture: the page steps
- diagnostics: checkpoint screenshots
- archiver: S3-compatible upload of the downloaded artifact
- pipeline: run state machine and outcome classification
- reporter: JSON run reports
- logger, exceptions: logging setup and error hierarchy
"""

__version__ = "1.0.0"
