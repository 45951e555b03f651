"""Tests for browser management.

Validates BrowserManager including:
- Launch arguments and headed/headless selection
- Download-enabled context with fixed fingerprint
- Resource cleanup
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_mock import MockerFixture

from config.settings import GlobalConfig
from src.browser import BrowserManager
from src.exceptions import BrowserInitializationError


def create_playwright_mock(mocker: MockerFixture) -> tuple[MagicMock, MagicMock, MagicMock, MagicMock]:
    """Create the async_playwright().start() mock chain.

    Returns:
        Tuple of (async_playwright_instance, playwright_mock, browser_mock, context_mock)
    """
    page_mock = MagicMock()

    context_mock = MagicMock()
    context_mock.add_init_script = AsyncMock()
    context_mock.new_page = AsyncMock(return_value=page_mock)
    context_mock.close = AsyncMock()

    browser_mock = MagicMock()
    browser_mock.new_context = AsyncMock(return_value=context_mock)
    browser_mock.close = AsyncMock()

    playwright_mock = MagicMock()
    playwright_mock.chromium.launch = AsyncMock(return_value=browser_mock)
    playwright_mock.stop = AsyncMock()

    async_playwright_instance = MagicMock()
    async_playwright_instance.start = AsyncMock(return_value=playwright_mock)

    return async_playwright_instance, playwright_mock, browser_mock, context_mock


class TestBrowserManagerInitialization:
    """Test suite for browser initialization."""

    @pytest.mark.asyncio
    async def test_browser_launches_with_anti_detection_flags(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        async with BrowserManager.create(mock_config) as manager:
            assert manager.is_initialized
            call_kwargs = pw_mock.chromium.launch.call_args.kwargs
            assert call_kwargs["headless"] is True
            assert "--disable-blink-features=AutomationControlled" in call_kwargs["args"]
            assert "--no-sandbox" in call_kwargs["args"]

    @pytest.mark.asyncio
    async def test_context_accepts_downloads_with_fixed_fingerprint(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        async with BrowserManager.create(mock_config):
            call_kwargs = browser_mock.new_context.call_args.kwargs
            assert call_kwargs["accept_downloads"] is True
            assert call_kwargs["user_agent"] == mock_config.user_agent
            assert call_kwargs["viewport"] == {"width": 1920, "height": 1080}

    @pytest.mark.asyncio
    async def test_stealth_script_injected(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        async with BrowserManager.create(mock_config):
            script_arg = context_mock.add_init_script.call_args[0][0]
            assert "webdriver" in script_arg

    @pytest.mark.asyncio
    async def test_headed_mode_respects_config(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)
        headed = mock_config.model_copy(update={"headless": False})

        async with BrowserManager.create(headed):
            assert pw_mock.chromium.launch.call_args.kwargs["headless"] is False

    @pytest.mark.asyncio
    async def test_initialization_failure_raises_custom_error(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        pw_mock.chromium.launch = AsyncMock(side_effect=RuntimeError("Browser binary not found"))
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        with pytest.raises(BrowserInitializationError) as exc_info:
            async with BrowserManager.create(mock_config):
                pass

        assert "not found" in str(exc_info.value).lower()
        pw_mock.stop.assert_called_once()


class TestNewPage:
    """Test suite for page creation."""

    @pytest.mark.asyncio
    async def test_new_page_applies_navigation_timeout(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        async with BrowserManager.create(mock_config) as manager:
            page = await manager.new_page()

        page.set_default_navigation_timeout.assert_called_once_with(5000)

    @pytest.mark.asyncio
    async def test_new_page_without_context_raises(self, mock_config: GlobalConfig) -> None:
        manager = BrowserManager(mock_config)

        with pytest.raises(BrowserInitializationError):
            await manager.new_page()

    @pytest.mark.asyncio
    async def test_new_page_after_cleanup_raises(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        async with BrowserManager.create(mock_config) as manager:
            pass

        with pytest.raises(BrowserInitializationError):
            await manager.new_page()
        context_mock.new_page.assert_not_called()


class TestBrowserCleanup:
    """Test suite for resource cleanup."""

    @pytest.mark.asyncio
    async def test_cleanup_closes_all_resources(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        async with BrowserManager.create(mock_config) as manager:
            pass

        context_mock.close.assert_called_once()
        browser_mock.close.assert_called_once()
        pw_mock.stop.assert_called_once()
        assert not manager.is_initialized

    @pytest.mark.asyncio
    async def test_cleanup_handles_exceptions_gracefully(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        context_mock.close = AsyncMock(side_effect=RuntimeError("Close failed"))
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        async with BrowserManager.create(mock_config):
            pass

        browser_mock.close.assert_called_once()
        pw_mock.stop.assert_called_once()

    @pytest.mark.asyncio
    async def test_cleanup_runs_when_body_raises(
        self,
        mock_config: GlobalConfig,
        mocker: MockerFixture,
    ) -> None:
        async_pw, pw_mock, browser_mock, context_mock = create_playwright_mock(mocker)
        mocker.patch("src.browser.async_playwright", return_value=async_pw)

        with pytest.raises(ValueError):
            async with BrowserManager.create(mock_config):
                raise ValueError("boom")

        browser_mock.close.assert_called_once()
