"""Pytest configuration and shared fixtures for the PreOpen-Archiver suite.

Hermetic guarantees:
- No browser is launched and no network request is made (Playwright and
  boto3 are mocked)
- All filesystem writes go under tmp_path
- Settle delays are zero so runs complete instantly
"""

from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_mock import MockerFixture

from config.settings import GlobalConfig

TARGET_URL = "https://test.example.com/market-data/pre-open"
CSV_BYTES = b"SYMBOL,PREV_CLOSE,IEP\nRELIANCE,2950.10,2961.00\n"

STORAGE_ENV = ("R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "R2_ENDPOINT", "R2_BUCKET_NAME")


class FakeExpectDownload:
    """Stands in for the object returned by `page.expect_download()`.

    Records "armed" on entry into `events` so tests can check the
    listener was set up before the trigger ran.
    """

    def __init__(
        self,
        download: MagicMock | None,
        events: list[str],
        error: BaseException | None = None,
    ) -> None:
        self._download = download
        self._events = events
        self._error = error

    async def __aenter__(self) -> "FakeExpectDownload":
        self._events.append("armed")
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False

    @property
    def value(self) -> Any:
        async def _resolve() -> MagicMock | None:
            if self._error is not None:
                raise self._error
            return self._download

        return _resolve()


def make_download(
    suggested_filename: str | None = "preopen_20240924.csv",
    payload: bytes = CSV_BYTES,
) -> MagicMock:
    """Build a mocked Playwright Download that writes payload on save_as."""
    download = MagicMock()
    download.suggested_filename = suggested_filename

    async def _save_as(path: Any) -> None:
        Path(path).write_bytes(payload)

    download.save_as = AsyncMock(side_effect=_save_as)
    return download


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GlobalConfig:
    """Provide isolated GlobalConfig with safe test defaults.

    Storage credentials are removed from the environment; tests that
    need archival enable them with `config.model_copy(update=...)`.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    test_env = {
        "APP_NAME": "PreOpen-Test",
        "ENVIRONMENT": "test",
        "DEBUG": "false",
        "HEADLESS": "true",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "TARGET_URL": TARGET_URL,
        "NAVIGATION_TIMEOUT_MS": "5000",
        "CONTROL_TIMEOUT_MS": "1000",
        "DOWNLOAD_TIMEOUT_MS": "5000",
        "PAGE_SETTLE_SEC": "0",
        "DROPDOWN_OPEN_SETTLE_SEC": "0",
        "SELECTION_SETTLE_SEC": "0",
        "SCREENSHOT_DIR": str(tmp_path / "screenshots"),
        "DOWNLOADS_DIR": str(tmp_path / "downloads"),
        "REPORT_DIR": str(tmp_path / "reports"),
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)
    for key in STORAGE_ENV:
        monkeypatch.delenv(key, raising=False)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture
def storage_config(mock_config: GlobalConfig) -> GlobalConfig:
    """mock_config with both storage credentials present."""
    return mock_config.model_copy(
        update={
            "r2_access_key_id": "test-key",
            "r2_secret_access_key": "test-secret",
            "r2_endpoint": "https://r2.test.example.com",
        }
    )


@pytest.fixture
def page_events() -> list[str]:
    """Ordered log of page interactions recorded by mock_page."""
    return []


@pytest.fixture
def mock_page_factory(
    mocker: MockerFixture, page_events: list[str]
) -> Callable[..., MagicMock]:
    """Factory for mocked Playwright pages wired for the happy path.

    Keyword arguments switch individual behaviours:
        control_present: whether wait_for_selector succeeds.
        trigger_visible: whether the download link is visible.
        download: Download mock resolved by expect_download.
        download_error: exception raised while resolving the download.
        goto_error: exception raised by goto.
        status: HTTP status of the navigation response.
    """

    def _factory(
        control_present: bool = True,
        trigger_visible: bool = True,
        download: MagicMock | None = None,
        download_error: BaseException | None = None,
        goto_error: BaseException | None = None,
        status: int = 200,
    ) -> MagicMock:
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        page = mocker.MagicMock()
        page.url = TARGET_URL

        if goto_error is not None:
            page.goto = mocker.AsyncMock(side_effect=goto_error)
        else:
            page.goto = mocker.AsyncMock(return_value=mocker.MagicMock(status=status))

        if control_present:
            page.wait_for_selector = mocker.AsyncMock()
        else:
            page.wait_for_selector = mocker.AsyncMock(
                side_effect=PlaywrightTimeoutError("Timeout 1000ms exceeded.")
            )

        page.click = mocker.AsyncMock(side_effect=lambda *a, **k: page_events.append("open"))
        page.select_option = mocker.AsyncMock(return_value=["ALL"])
        page.title = mocker.AsyncMock(return_value="NSE - Pre-Open Market")
        page.screenshot = mocker.AsyncMock()
        page.close = mocker.AsyncMock()

        trigger = mocker.MagicMock()
        trigger.is_visible = mocker.AsyncMock(return_value=trigger_visible)
        trigger.click = mocker.AsyncMock(side_effect=lambda *a, **k: page_events.append("clicked"))
        page.trigger = trigger
        page.get_by_text = mocker.MagicMock(return_value=mocker.MagicMock(first=trigger))

        resolved = download if download is not None else make_download()
        page.expect_download = mocker.MagicMock(
            side_effect=lambda **kwargs: FakeExpectDownload(resolved, page_events, download_error)
        )
        return page

    return _factory


@pytest.fixture
def mock_page(mock_page_factory: Callable[..., MagicMock]) -> MagicMock:
    """Happy-path mocked page."""
    return mock_page_factory()


@pytest.fixture
def mock_s3_client(mocker: MockerFixture) -> MagicMock:
    """boto3 S3 client mock whose put_object succeeds."""
    client = mocker.MagicMock()
    client.put_object = mocker.MagicMock(return_value={"ETag": '"abc123"'})
    return client


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests requiring full stack",
    )
