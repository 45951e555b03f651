"""Global configuration management using pydantic-settings.

This module implements the 12-factor app methodology for configuration,
loading values from environment variables with strict type validation.
The Singleton accessor is only used by the entry point; every pipeline
component receives the validated instance explicitly.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GlobalConfig(BaseSettings):
    """Centralized configuration with environment variable binding.

    All configuration values are loaded from environment variables,
    with defaults targeting the NSE pre-open market page. Storage
    credentials are optional: without them the pipeline still runs
    and skips archival.

    Attributes:
        app_name: Application identifier for logging.
        environment: Deployment environment.
        debug: Enable verbose debugging output.
        headless: Run Chromium without a visible window.
        user_agent: Fixed desktop user-agent presented to the target.
        viewport_width: Browser viewport width in pixels.
        viewport_height: Browser viewport height in pixels.
        log_level: Minimum log level for output filtering.
        log_dir: Directory path for structured JSON log files.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        target_url: Page that renders the pre-open dataset.
        scope_control_selector: Selector of the scope dropdown.
        scope_option_value: Option value chosen in the scope dropdown.
        download_trigger_text: Visible label of the CSV download link.
        navigation_timeout_ms: Bound on the initial page navigation.
        control_timeout_ms: Bound on waiting for the scope dropdown.
        download_timeout_ms: Bound on waiting for the download event.
        page_settle_sec: Settle delay after navigation.
        dropdown_open_settle_sec: Settle delay after opening the dropdown.
        selection_settle_sec: Settle delay after assigning the option.
        screenshot_dir: Directory for checkpoint screenshots.
        downloads_dir: Directory for downloaded artifacts.
        report_dir: Directory for JSON run reports.
        write_run_report: Persist a JSON run report after each run.
        storage_category: First segment of every storage key.
        r2_endpoint: S3-compatible endpoint URL (Cloudflare R2).
        r2_bucket_name: Destination bucket.
        r2_access_key_id: Storage access key id.
        r2_secret_access_key: Storage secret access key.
        fail_on_incomplete: Return non-zero exit codes for failed runs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = Field(default="PreOpen-Archiver", description="Application identifier")
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Browser Configuration
    headless: bool = Field(
        default=False,
        description="Run browser in headless mode (headed passes bot-detection more reliably)",
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        description="Browser user-agent",
    )
    viewport_width: int = Field(default=1920, ge=320, le=7680, description="Viewport width")
    viewport_height: int = Field(default=1080, ge=240, le=4320, description="Viewport height")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Target Configuration
    target_url: str = Field(
        default="https://www.nseindia.com/market-data/pre-open-market-cm-and-emerge-market",
        description="Pre-open market page URL",
    )
    scope_control_selector: str = Field(
        default="#sel-Pre-Open-Market", description="Scope dropdown selector"
    )
    scope_option_value: str = Field(default="ALL", description="Scope option to select")
    download_trigger_text: str = Field(
        default="Download (.csv)", description="Visible text of the download link"
    )

    # Timeouts
    navigation_timeout_ms: int = Field(
        default=30000, ge=1000, le=180000, description="Navigation timeout in milliseconds"
    )
    control_timeout_ms: int = Field(
        default=15000, ge=0, le=120000, description="Scope control wait in milliseconds"
    )
    download_timeout_ms: int = Field(
        default=30000, ge=1000, le=180000, description="Download event timeout in milliseconds"
    )

    # Settle Delays
    page_settle_sec: float = Field(default=8.0, ge=0.0, le=120.0, description="Post-navigation settle")
    dropdown_open_settle_sec: float = Field(
        default=2.0, ge=0.0, le=60.0, description="Post-open dropdown settle"
    )
    selection_settle_sec: float = Field(
        default=3.0, ge=0.0, le=60.0, description="Post-selection data refresh settle"
    )

    # Local Filesystem
    screenshot_dir: Path = Field(default=Path("screenshots"), description="Checkpoint screenshots")
    downloads_dir: Path = Field(default=Path("downloads"), description="Downloaded artifacts")
    report_dir: Path = Field(default=Path("reports"), description="Run report output")
    write_run_report: bool = Field(default=True, description="Persist JSON run reports")

    # Object Storage
    storage_category: str = Field(
        default="pre-open-market", min_length=1, description="Storage key prefix"
    )
    r2_endpoint: str | None = Field(default=None, description="S3-compatible endpoint URL")
    r2_bucket_name: str = Field(default="nse-data", min_length=1, description="Bucket name")
    r2_access_key_id: str | None = Field(default=None, description="Access key id")
    r2_secret_access_key: str | None = Field(default=None, description="Secret access key")

    # Exit Behaviour
    fail_on_incomplete: bool = Field(
        default=False, description="Exit non-zero on partial or fatal run outcomes"
    )

    @field_validator("log_dir", "screenshot_dir", "downloads_dir", "report_dir", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("r2_endpoint", "r2_access_key_id", "r2_secret_access_key", mode="before")
    @classmethod
    def blank_as_none(cls, value: str | None) -> str | None:
        """Treat empty environment values as unset."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("storage_category")
    @classmethod
    def strip_category_slashes(cls, value: str) -> str:
        """Keep the category a single key segment."""
        stripped = value.strip("/")
        if not stripped:
            raise ValueError("storage_category must contain a non-slash character")
        return stripped

    @model_validator(mode="after")
    def require_endpoint_with_credentials(self) -> Self:
        """Credentials without an endpoint would be sent to AWS S3 instead of R2."""
        if self.has_storage_credentials and self.r2_endpoint is None:
            raise ValueError("R2_ENDPOINT must be set when storage credentials are configured")
        return self

    @property
    def has_storage_credentials(self) -> bool:
        """True when at least one storage credential is configured."""
        return bool(self.r2_access_key_id or self.r2_secret_access_key)


@lru_cache(maxsize=1)
def get_config() -> GlobalConfig:
    """Retrieve the singleton GlobalConfig instance.

    Returns:
        GlobalConfig: The validated configuration instance.
    """
    return GlobalConfig()
