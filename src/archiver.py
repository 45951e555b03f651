"""Artifact archival to an S3-compatible object store (Cloudflare R2).

Keys are `{category}/{YYYY-MM-DD}/{file name}` with the UTC date taken at
archival time, so two uploads of the same file name on the same day land
on the same key and the later one wins. There is no locking across runs.

Without any storage credential the archiver skips the upload and says so;
with at least one credential present it always attempts the call and
surfaces store-side failures as UploadError.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import GlobalConfig
from src.exceptions import UploadError
from src.logger import get_logger
from src.models import ArchiveResult, ArchiveStatus, Artifact

log = get_logger(__name__)

SOURCE_MARKER = "nse-scraper"


def build_storage_key(category: str, file_name: str, now: datetime | None = None) -> str:
    """Return the storage key for file_name archived at now (UTC).

    >>> build_storage_key("pre-open-market", "preopen_20240924.csv",
    ...                   datetime(2024, 9, 24, 3, 30, tzinfo=UTC))
    'pre-open-market/2024-09-24/preopen_20240924.csv'
    """
    now = now or datetime.now(UTC)
    day = now.astimezone(UTC).date().isoformat()
    return f"{category}/{day}/{file_name}"


def content_type_for(file_name: str) -> str:
    if file_name.lower().endswith(".csv"):
        return "text/csv"
    return "application/octet-stream"


def create_s3_client(config: GlobalConfig) -> Any:
    """Build a boto3 S3 client for the configured R2 endpoint."""
    return boto3.client(
        "s3",
        endpoint_url=config.r2_endpoint,
        aws_access_key_id=config.r2_access_key_id,
        aws_secret_access_key=config.r2_secret_access_key,
        region_name="auto",
        config=Config(signature_version="s3v4"),
    )


class Archiver:
    """Uploads artifacts under their storage key with provenance metadata.

    Attributes:
        config: GlobalConfig with bucket, category and credentials.
    """

    def __init__(self, config: GlobalConfig, client: Any | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def enabled(self) -> bool:
        return self.config.has_storage_credentials

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = create_s3_client(self.config)
        return self._client

    async def archive(self, artifact: Artifact, now: datetime | None = None) -> ArchiveResult:
        """Upload artifact to the object store.

        Args:
            artifact: Saved download to upload.
            now: Archival time; defaults to the current UTC time.

        Returns:
            ArchiveResult with status UPLOADED, or SKIPPED when no
            storage credential is configured.

        Raises:
            UploadError: The store rejected or failed the upload.
        """
        if not self.enabled:
            log.warning("Storage credentials not found - skipping upload", file_name=artifact.file_name)
            return ArchiveResult(status=ArchiveStatus.SKIPPED)

        now = now or datetime.now(UTC)
        bucket = self.config.r2_bucket_name
        key = build_storage_key(self.config.storage_category, artifact.file_name, now)

        log.info("Uploading artifact", key=key, bucket=bucket)

        try:
            body = artifact.read_bytes()
        except OSError as exc:
            raise UploadError(key=key, bucket=bucket, reason=f"cannot read artifact: {exc}") from exc

        metadata = {
            "source": SOURCE_MARKER,
            "scraped-at": now.isoformat(),
            "file-size": str(len(body)),
        }

        try:
            client = self._get_client()
            await asyncio.to_thread(
                client.put_object,
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=content_type_for(artifact.file_name),
                Metadata=metadata,
            )
        except (ClientError, BotoCoreError) as exc:
            raise UploadError(key=key, bucket=bucket, reason=str(exc)) from exc

        log.info("Successfully uploaded artifact", key=key, bucket=bucket, size_bytes=len(body))
        return ArchiveResult(status=ArchiveStatus.UPLOADED, key=key, bucket=bucket)
