"""SSH remote executor built on paramiko."""

import shlex
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO, Protocol

import paramiko

from .config import DEFAULT_SSH_PORT, HostConfig
from .errors import RemoteCommandError
from .logging_config import LOGGER


class RemoteExecutor(Protocol):
    """Operations the provisioner needs from a session bound to one host."""

    def run(self, command: str) -> str:
        """Run a command and return its stdout; raise RemoteCommandError on failure."""
        ...

    def copy(self, data: bytes, remote_path: str, mode: int) -> None:
        """Write ``data`` to ``remote_path`` with permission bits ``mode``."""
        ...

    def load(self, remote_path: str, buffer: BinaryIO) -> None:
        """Read ``remote_path`` into ``buffer``."""
        ...

    def escalate(self) -> None:
        """Run every later operation with elevated privileges."""
        ...

    def identity(self) -> str:
        """Host label used in log lines and errors."""
        ...

    def close(self) -> None:
        """Release the session."""
        ...


@dataclass(frozen=True)
class SSHConfig:
    """Connection settings for one SSH session."""

    server: str
    user: str | None = None
    key_file: str | None = None
    port: int = DEFAULT_SSH_PORT
    connect_timeout: float = 10.0

    @classmethod
    def from_host_config(cls, host_config: HostConfig, server: str) -> "SSHConfig":
        return cls(
            server=server,
            user=host_config.user,
            key_file=host_config.key_file,
            port=host_config.port,
        )


class SSHCommander:
    """RemoteExecutor over a single paramiko SSH connection.

    The connection is opened on first use. A failed connect leaves the
    commander unconnected so the next call tries again, which is what the
    reachability probe relies on while a fresh VM is still booting.
    """

    def __init__(
        self,
        config: SSHConfig,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ) -> None:
        """Initialize SSH commander.

        Args:
            config: Connection settings
            client_factory: Builds the paramiko client (replaced in tests)
        """
        self.config = config
        self._client_factory = client_factory
        self._client: paramiko.SSHClient | None = None
        self._sudo = False

    def __enter__(self) -> "SSHCommander":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _connect(self) -> paramiko.SSHClient:
        if self._client is not None:
            return self._client

        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=self.config.server,
                port=self.config.port,
                username=self.config.user,
                key_filename=self.config.key_file,
                timeout=self.config.connect_timeout,
            )
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise RemoteCommandError("connect", stderr=str(e)) from e

        LOGGER.info("%s - SSH connected", self.identity())
        self._client = client
        return client

    def _wrap(self, command: str) -> str:
        if self._sudo:
            return f"sudo sh -c {shlex.quote(command)}"
        return command

    def _exec(self, command: str, stdin_data: bytes | None = None) -> bytes:
        client = self._connect()
        try:
            stdin, stdout, stderr = client.exec_command(self._wrap(command))
            if stdin_data is not None:
                stdin.write(stdin_data)
                stdin.channel.shutdown_write()
            output = stdout.read()
            error = stderr.read()
            status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            # Drop the broken transport; the next call reconnects
            self.close()
            raise RemoteCommandError(command, stderr=str(e)) from e

        if status != 0:
            raise RemoteCommandError(command, status, error.decode("utf-8", errors="replace"))
        return output

    def run(self, command: str) -> str:
        return self._exec(command).decode("utf-8", errors="replace")

    def copy(self, data: bytes, remote_path: str, mode: int) -> None:
        path = shlex.quote(remote_path)
        # umask keeps the file private until chmod applies the final mode
        command = f"umask 077 && cat > {path} && chmod {mode:o} {path}"
        self._exec(command, stdin_data=data)

    def load(self, remote_path: str, buffer: BinaryIO) -> None:
        buffer.write(self._exec(f"cat {shlex.quote(remote_path)}"))

    def escalate(self) -> None:
        self._sudo = True

    def identity(self) -> str:
        return self.config.server

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
