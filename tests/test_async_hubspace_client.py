"""Tests for AsyncHubspaceApiClient."""
from unittest.mock import AsyncMock, Mock

import pytest

from hubspace_api_sdk import (
    AsyncHubspaceApiClient,
    AsyncHubspaceApiClientConfiguration,
    AsyncSessionManager,
    OtpRequiredError,
)


def _make_client(token: str = "access-1") -> AsyncHubspaceApiClient:
    session_manager = Mock(spec=AsyncSessionManager)
    session_manager.get_token = AsyncMock(return_value=token)

    client = AsyncHubspaceApiClient(session_manager=session_manager)
    client.api_client = Mock()
    client.api_client.get = AsyncMock(return_value={"ok": True})
    client.api_client.put = AsyncMock(return_value={})
    client.api_client.close = AsyncMock()
    return client


class TestAsyncHubspaceApiClient:

    def test_default_configuration(self):
        client = AsyncHubspaceApiClient(session_manager=Mock(spec=AsyncSessionManager))
        assert client.api_client.base_url == "https://api2.afero.net/v1"

    def test_custom_configuration(self):
        config = AsyncHubspaceApiClientConfiguration(base_url="https://example.test/v1/")
        client = AsyncHubspaceApiClient(
            session_manager=Mock(spec=AsyncSessionManager), config=config
        )
        assert client.api_client.base_url == "https://example.test/v1"

    @pytest.mark.asyncio
    async def test_get_attaches_token(self):
        client = _make_client()

        result = await client.get("/accounts/me", params={"expansions": "x"})

        assert result == {"ok": True}
        client.session_manager.get_token.assert_awaited_once()
        client.api_client.set_auth_header.assert_called_once_with("access-1")
        client.api_client.get.assert_awaited_once_with("/accounts/me", params={"expansions": "x"})

    @pytest.mark.asyncio
    async def test_put_attaches_token(self):
        client = _make_client("access-9")

        await client.put("/devices/1/state", json_data={"on": True})

        client.api_client.set_auth_header.assert_called_once_with("access-9")
        client.api_client.put.assert_awaited_once_with(
            "/devices/1/state", json_data={"on": True}
        )

    @pytest.mark.asyncio
    async def test_authentication_failure_skips_request(self):
        client = _make_client()
        client.session_manager.get_token.side_effect = OtpRequiredError("code needed")

        with pytest.raises(OtpRequiredError):
            await client.get("/accounts/me")

        client.api_client.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        client = _make_client()

        async with client:
            pass

        client.api_client.close.assert_awaited_once()
