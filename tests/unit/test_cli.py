"""Unit tests for the command-line interface."""

from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from address_relay.cli import cli
from address_relay.config import EnvVars
from address_relay.webhook.signature import compute_signature


class TestSignCommand:
    """Test the sign command."""

    def test_sign_stdin(self, clean_env):
        """Test stdin is signed byte for byte."""
        body = b'{"webhookId": "wh_1"}\n'
        result = CliRunner().invoke(cli, ["sign", "--signing-key", "secret"], input=body)
        assert result.exit_code == 0
        assert result.output.strip() == compute_signature(body, "secret")

    def test_sign_file(self, clean_env, tmp_path):
        """Test a body file is signed."""
        path = tmp_path / "payload.json"
        path.write_bytes(b"{}")
        result = CliRunner().invoke(cli, ["sign", str(path), "--signing-key", "secret"])
        assert result.exit_code == 0
        assert result.output.strip() == compute_signature(b"{}", "secret")

    def test_key_from_environment(self, clean_env):
        """Test the signing key falls back to the environment."""
        clean_env.setenv(EnvVars.WEBHOOK_SIGNING_KEY, "env-secret")
        result = CliRunner().invoke(cli, ["sign"], input=b"{}")
        assert result.output.strip() == compute_signature(b"{}", "env-secret")

    def test_missing_key(self, clean_env):
        """Test signing without a key fails."""
        result = CliRunner().invoke(cli, ["sign"], input=b"{}")
        assert result.exit_code == 1


class TestWatchAddressCommands:
    """Test the watch-address and unwatch-address commands."""

    ADDRESS = "0x" + "ab" * 20

    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        with patch("address_relay.cli.setup_logging"):
            yield

    def test_watch_address(self, clean_env):
        """Test addresses are added through the notify client."""
        with patch(
            "address_relay.cli.AddressNotifyClient.update_addresses", new_callable=AsyncMock
        ) as update_addresses:
            result = CliRunner().invoke(
                cli,
                ["watch-address", self.ADDRESS, "--notify-webhook-id", "wh_1", "--notify-auth-token", "token"],
            )
        assert result.exit_code == 0, result.output
        update_addresses.assert_awaited_once_with(add=(self.ADDRESS,), remove=())

    def test_unwatch_address(self, clean_env):
        """Test addresses are removed through the notify client."""
        with patch(
            "address_relay.cli.AddressNotifyClient.update_addresses", new_callable=AsyncMock
        ) as update_addresses:
            result = CliRunner().invoke(
                cli,
                ["unwatch-address", self.ADDRESS, "--notify-webhook-id", "wh_1", "--notify-auth-token", "token"],
            )
        assert result.exit_code == 0, result.output
        update_addresses.assert_awaited_once_with(add=(), remove=(self.ADDRESS,))

    def test_missing_credentials(self, clean_env):
        """Test the command fails without a webhook id and token."""
        result = CliRunner().invoke(cli, ["watch-address", self.ADDRESS])
        assert result.exit_code == 1

    def test_invalid_address(self, clean_env):
        """Test malformed addresses fail the command."""
        result = CliRunner().invoke(
            cli, ["watch-address", "0x123", "--notify-webhook-id", "wh_1", "--notify-auth-token", "token"]
        )
        assert result.exit_code == 1
