"""Tests for SSHCommander over a mocked paramiko client."""

import io
from pathlib import Path
from unittest.mock import MagicMock

import paramiko
import pytest

from engine_tls.lib.config import HostConfig
from engine_tls.lib.errors import RemoteCommandError
from engine_tls.lib.ssh_client import SSHCommander, SSHConfig


def _streams(stdout: bytes = b"", stderr: bytes = b"", status: int = 0) -> tuple[MagicMock, MagicMock, MagicMock]:
    stdin = MagicMock()
    out = MagicMock()
    out.read.return_value = stdout
    out.channel.recv_exit_status.return_value = status
    err = MagicMock()
    err.read.return_value = stderr
    return stdin, out, err


@pytest.fixture
def mock_client() -> MagicMock:
    """Return mocked paramiko.SSHClient with a successful empty command."""
    client = MagicMock(spec=paramiko.SSHClient)
    client.exec_command.return_value = _streams()
    return client


@pytest.fixture
def commander(mock_client: MagicMock) -> SSHCommander:
    config = SSHConfig(server="10.0.0.5", user="core", key_file="/keys/id_rsa", port=2222)
    return SSHCommander(config, client_factory=lambda: mock_client)


class TestConnect:
    """Tests for lazy connection handling."""

    def test_connects_with_config(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        commander.run("date")

        mock_client.connect.assert_called_once_with(
            hostname="10.0.0.5",
            port=2222,
            username="core",
            key_filename="/keys/id_rsa",
            timeout=10.0,
        )
        mock_client.set_missing_host_key_policy.assert_called_once()

    def test_reuses_connection(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        commander.run("date")
        commander.run("uptime")

        mock_client.connect.assert_called_once()

    def test_connect_failure_raises_and_retries_next_call(
        self, commander: SSHCommander, mock_client: MagicMock
    ) -> None:
        """A refused connection is reported and the next call connects again."""
        mock_client.connect.side_effect = [OSError("Connection refused"), None]

        with pytest.raises(RemoteCommandError, match="Connection refused"):
            commander.run("date")
        commander.run("date")

        assert mock_client.connect.call_count == 2

    def test_close(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        commander.run("date")
        commander.close()

        mock_client.close.assert_called_once()

    def test_from_host_config(self, tmp_path: Path) -> None:
        host_config = HostConfig(cert_path=tmp_path, user="ubuntu", key_file="/k", port=22)

        config = SSHConfig.from_host_config(host_config, "engine.example")

        assert config == SSHConfig(server="engine.example", user="ubuntu", key_file="/k", port=22)


class TestCommands:
    """Tests for run/copy/load command construction."""

    def test_run_returns_stdout(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        mock_client.exec_command.return_value = _streams(stdout=b"Mon Jan  1\n")

        assert commander.run("date") == "Mon Jan  1\n"
        mock_client.exec_command.assert_called_once_with("date")

    def test_run_nonzero_exit_raises(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        mock_client.exec_command.return_value = _streams(stderr=b"unit docker not found", status=5)

        with pytest.raises(RemoteCommandError) as exc_info:
            commander.run("service docker stop")

        assert exc_info.value.exit_status == 5
        assert "unit docker not found" in str(exc_info.value)

    def test_escalate_wraps_with_sudo(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        commander.escalate()
        commander.run("service docker start")

        mock_client.exec_command.assert_called_once_with("sudo sh -c 'service docker start'")

    def test_copy_streams_data_and_sets_mode(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        stdin, out, err = _streams()
        mock_client.exec_command.return_value = (stdin, out, err)

        commander.copy(b"key-pem", "/etc/docker/server-key.pem", 0o600)

        command = mock_client.exec_command.call_args.args[0]
        assert command == (
            "umask 077 && cat > /etc/docker/server-key.pem && chmod 600 /etc/docker/server-key.pem"
        )
        stdin.write.assert_called_once_with(b"key-pem")
        stdin.channel.shutdown_write.assert_called_once()

    def test_copy_quotes_path(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        commander.copy(b"x", "/tmp/my file", 0o644)

        command = mock_client.exec_command.call_args.args[0]
        assert "cat > '/tmp/my file'" in command
        assert "chmod 644 '/tmp/my file'" in command

    def test_load_writes_buffer(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        mock_client.exec_command.return_value = _streams(stdout=b'{"debug": true}')
        buf = io.BytesIO()

        commander.load("/etc/docker/daemon.json", buf)

        assert buf.getvalue() == b'{"debug": true}'
        mock_client.exec_command.assert_called_once_with("cat /etc/docker/daemon.json")

    def test_transport_error_drops_connection(self, commander: SSHCommander, mock_client: MagicMock) -> None:
        """SSH errors mid-command close the client so the next call reconnects."""
        commander.run("date")
        mock_client.exec_command.side_effect = paramiko.SSHException("channel closed")

        with pytest.raises(RemoteCommandError, match="channel closed"):
            commander.run("date")

        mock_client.close.assert_called_once()

    def test_identity(self, commander: SSHCommander) -> None:
        assert commander.identity() == "10.0.0.5"
