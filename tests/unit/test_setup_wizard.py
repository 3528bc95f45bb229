"""Tests for the interactive setup helper."""
from unittest.mock import Mock

import pytest

from hubspace_api_sdk.api_client import ApiClient
from hubspace_api_sdk.exceptions import (
    APIError,
    AuthenticationFailedError,
    InvalidCredentialsError,
    InvalidGrantError,
    ServerError,
    TransportError,
)
from hubspace_api_sdk.setup_wizard import SetupWizard
from hubspace_api_sdk.token_store import MemoryTokenStore

_TOKEN_RESPONSE = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 120,
    "refresh_expires_in": 1800,
}


def _otp_required() -> InvalidGrantError:
    return InvalidGrantError(
        "Invalid OTP",
        401,
        {"error": "invalid_grant", "error_description": "Invalid OTP"},
    )


def _bad_credentials() -> InvalidGrantError:
    return InvalidGrantError(
        "Invalid user credentials",
        401,
        {"error": "invalid_grant", "error_description": "Invalid user credentials"},
    )


class TestSetupWizard:

    @pytest.fixture
    def mock_api_client(self):
        client = Mock(spec=ApiClient)
        client.post.return_value = dict(_TOKEN_RESPONSE)
        return client

    @pytest.fixture
    def store(self):
        return MemoryTokenStore()

    @pytest.fixture
    def wizard(self, mock_api_client, store):
        return SetupWizard(store=store, api_client=mock_api_client)

    def test_login_without_2fa_persists_tokens(self, wizard, mock_api_client, store):
        result = wizard.login("user@example.com", "secret")

        assert result.success
        assert not result.requires_2fa
        assert store.record["username"] == "user@example.com"
        assert store.record["refreshToken"] == "refresh-1"

        payload = mock_api_client.post.call_args.kwargs["data"]
        assert payload["grant_type"] == "password"
        assert "totp" not in payload

    def test_login_requiring_otp(self, wizard, mock_api_client, store):
        mock_api_client.post.side_effect = _otp_required()

        result = wizard.login("user@example.com", "secret")

        assert not result.success
        assert result.requires_2fa
        assert result.username == "user@example.com"
        assert "verification code" in result.message
        assert store.record is None

    def test_login_bad_credentials(self, wizard, mock_api_client):
        mock_api_client.post.side_effect = _bad_credentials()

        with pytest.raises(InvalidCredentialsError, match="Invalid username or password"):
            wizard.login("user@example.com", "wrong")

    def test_login_unauthorized_status(self, wizard, mock_api_client, store):
        mock_api_client.post.side_effect = APIError(
            "Unauthorized", 401, {"error": "unauthorized_client"}
        )

        with pytest.raises(InvalidCredentialsError, match="Invalid username or password"):
            wizard.login("user@example.com", "wrong")
        assert store.record is None

    def test_login_server_error(self, wizard, mock_api_client):
        mock_api_client.post.side_effect = ServerError("Bad gateway", 502)

        with pytest.raises(AuthenticationFailedError, match="Authentication failed"):
            wizard.login("user@example.com", "secret")

    def test_login_requires_username_and_password(self, wizard):
        with pytest.raises(ValueError, match="required"):
            wizard.login("", "secret")

    def test_verify_otp_sends_code_but_does_not_store_it(self, wizard, mock_api_client, store):
        result = wizard.verify_otp("user@example.com", "secret", "123456")

        assert result.success
        assert mock_api_client.post.call_args.kwargs["data"]["totp"] == "123456"
        assert "123456" not in store.record.values()
        assert set(store.record) == {
            "username",
            "refreshToken",
            "refreshTokenExpiration",
            "accessToken",
            "accessTokenExpiration",
        }

    def test_verify_otp_wrong_code(self, wizard, mock_api_client):
        mock_api_client.post.side_effect = _otp_required()

        with pytest.raises(InvalidCredentialsError, match="Invalid verification code"):
            wizard.verify_otp("user@example.com", "secret", "000000")

    def test_verify_otp_unauthorized_status(self, wizard, mock_api_client):
        mock_api_client.post.side_effect = APIError("Unauthorized", 401, {})

        with pytest.raises(InvalidCredentialsError, match="Invalid verification code"):
            wizard.verify_otp("user@example.com", "secret", "000000")

    def test_verify_otp_network_failure(self, wizard, mock_api_client):
        mock_api_client.post.side_effect = TransportError("unreachable")

        with pytest.raises(AuthenticationFailedError, match="Verification failed"):
            wizard.verify_otp("user@example.com", "secret", "123456")

    def test_verify_otp_requires_code(self, wizard):
        with pytest.raises(ValueError, match="OTP"):
            wizard.verify_otp("user@example.com", "secret", "")

    def test_malformed_token_response(self, wizard, mock_api_client):
        mock_api_client.post.return_value = {"unexpected": True}

        with pytest.raises(AuthenticationFailedError, match="Malformed"):
            wizard.login("user@example.com", "secret")

    def test_auth_status(self, wizard):
        assert not wizard.auth_status().configured

        wizard.login("user@example.com", "secret")
        status = wizard.auth_status()

        assert status.configured
        assert status.username == "user@example.com"

    def test_auth_status_without_store(self, mock_api_client):
        wizard = SetupWizard(api_client=mock_api_client)
        assert wizard.auth_status().configured is False

    def test_close(self, wizard, mock_api_client):
        wizard.close()
        mock_api_client.close.assert_called_once()
