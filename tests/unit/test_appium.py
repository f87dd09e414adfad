"""Tests for the Appium server lifecycle."""

from __future__ import annotations

import signal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import httpx
import pytest

from rn_smoke_harness.automation.appium import AppiumServer


class TestAppiumServer:
    """Tests for AppiumServer."""

    def test_status_url(self) -> None:
        """Should build the status URL from port and base path."""
        server = AppiumServer(port=4724, base_path="/wd/hub/")

        assert server.status_url == "http://127.0.0.1:4724/wd/hub/status"

    @pytest.mark.asyncio
    async def test_start_spawns_with_log(self, tmp_path: Path) -> None:
        """Should spawn appium with the log path and return the handle."""
        from rn_smoke_harness.automation import appium

        server = AppiumServer()
        handle = MagicMock()
        log_path = tmp_path / "logs" / "appium.log"

        with (
            patch.object(appium.sys, "platform", "linux"),
            patch.object(
                appium.ManagedProcess, "spawn", new=AsyncMock(return_value=handle)
            ) as spawn,
        ):
            result = await server.start(log_path)

        assert result is handle
        spawn.assert_awaited_once_with(["appium", "--log", str(log_path), "--port", "4723"])
        assert log_path.parent.is_dir()

    @pytest.mark.asyncio
    async def test_is_ready(self) -> None:
        """Should report readiness from the status endpoint."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/wd/hub/status"
            return httpx.Response(200, json={"value": {"ready": True}})

        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        def client_factory(**kwargs: object) -> httpx.AsyncClient:
            return real_client(transport=transport)

        with patch("rn_smoke_harness.automation.appium.httpx.AsyncClient", client_factory):
            assert await AppiumServer().is_ready() is True

    @pytest.mark.asyncio
    async def test_not_ready_when_connection_refused(self) -> None:
        """Should treat transport errors as not ready."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        transport = httpx.MockTransport(handler)
        real_client = httpx.AsyncClient

        def client_factory(**kwargs: object) -> httpx.AsyncClient:
            return real_client(transport=transport)

        with patch("rn_smoke_harness.automation.appium.httpx.AsyncClient", client_factory):
            assert await AppiumServer().wait_until_ready(timeout=0.1) is False

    @pytest.mark.asyncio
    async def test_terminate_sends_sigint(self) -> None:
        """Should interrupt the server and wait for it to exit."""
        handle = MagicMock()
        type(handle).is_alive = PropertyMock(side_effect=[True, True, False])
        handle.pid = 4242

        result = await AppiumServer().terminate(handle, timeout=2.0, interval=0.05)

        assert result is True
        handle.send_signal.assert_called_once_with(signal.SIGINT)

    @pytest.mark.asyncio
    async def test_terminate_without_handle(self) -> None:
        """Should succeed when nothing is running."""
        assert await AppiumServer().terminate(None) is True

    @pytest.mark.asyncio
    async def test_terminate_timeout(self) -> None:
        """Should return False when the server ignores SIGINT."""
        handle = MagicMock()
        handle.is_alive = True
        handle.pid = 4242

        assert await AppiumServer().terminate(handle, timeout=0.1, interval=0.05) is False
