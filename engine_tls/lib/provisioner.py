"""Install TLS certificates on a remote Docker Engine and switch it to TLS-verified TCP."""

import io
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Protocol

from .config import HostConfig
from .daemon_config import DaemonConfig
from .errors import (
    CertificateGenerationFailed,
    ConfigLoadFailed,
    ConfigParseFailed,
    ConfigWriteFailed,
    EscalationFailed,
    HostUnreachable,
    OperationCancelled,
    ProvisioningCancelled,
    ProvisioningError,
    ServiceRestartFailed,
    SessionOpenFailed,
    TransferFailed,
)
from .logging_config import LOGGER
from .models import InstallResult, PemBlock, ProvisioningState, ServerCertificate
from .retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY_SECONDS, wait_until_ready
from .ssh_client import RemoteExecutor, SSHCommander, SSHConfig

REMOTE_CERT_DIR = "/etc/docker"
DAEMON_CONFIG_PATH = f"{REMOTE_CERT_DIR}/daemon.json"
ENGINE_TLS_ADDRESS = "tcp://0.0.0.0:2375"

PROBE_COMMAND = "date"
STOP_COMMAND = "service docker stop"
START_COMMAND = "service docker start"

CERT_MODE = 0o644
KEY_MODE = 0o600
CA_MODE = 0o644
DAEMON_CONFIG_MODE = 0o600

FIXED_SUBJECT_NAMES = ("localhost", "127.0.0.1")


class CertificateIssuer(Protocol):
    def generate_server_certificate(
        self, cert_path: Path, organization: str, subject_names: list[str]
    ) -> ServerCertificate: ...


ExecutorFactory = Callable[[HostConfig, str], RemoteExecutor]


def ssh_executor_factory(host_config: HostConfig, host: str) -> RemoteExecutor:
    """Open a fresh SSH session for one run against ``host``."""
    return SSHCommander(SSHConfig.from_host_config(host_config, host))


def build_subject_names(host: str, alt_names: Iterable[str] = ()) -> list[str]:
    """Return SAN list: host, localhost, 127.0.0.1, then alt names as given.

    Duplicates are not removed.
    """
    return [host, *FIXED_SUBJECT_NAMES, *alt_names]


def remote_path(block: PemBlock) -> str:
    return f"{REMOTE_CERT_DIR}/{block.name}"


class EngineProvisioner:
    """Runs the certificate install workflow against one host per call.

    Steps run strictly in order and the first failure raises a
    ProvisioningError subclass. Files written before the failure are left
    on the host.
    """

    def __init__(
        self,
        certificate_authority: CertificateIssuer,
        executor_factory: ExecutorFactory = ssh_executor_factory,
        attempts: int = DEFAULT_ATTEMPTS,
        delay: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], Any] | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        """Initialize provisioner.

        Args:
            certificate_authority: Issues the server certificate for the host
            executor_factory: Opens a RemoteExecutor session for (host_config, host)
            attempts: Reachability probe budget
            delay: Seconds between probe attempts
            sleep: Delay function used between probes; defaults to waiting on
                ``cancel`` when given, else ``time.sleep``
            cancel: Optional event that aborts the run between steps
        """
        self.certificate_authority = certificate_authority
        self.executor_factory = executor_factory
        self.attempts = attempts
        self.delay = delay
        self.sleep = sleep
        self.cancel = cancel

    def install_certificate(
        self,
        host_config: HostConfig,
        host: str,
        alt_names: Iterable[str] = (),
    ) -> InstallResult:
        """Generate, deploy and activate TLS certificates for the engine on ``host``.

        Args:
            host_config: Per-invocation settings (cert path, organization, SSH credentials)
            host: Target host name or address
            alt_names: Extra subject alternative names

        Returns:
            InstallResult in state DONE, or a skipped result when the host is not a Docker Engine

        Raises:
            ProvisioningError: Subclass naming the failed step; ``state`` holds the last state reached
        """
        if not host_config.is_docker:
            LOGGER.info("%s - skipping Docker certificate install", host)
            return InstallResult(host=host, state=ProvisioningState.UNPROBED, skipped=True)

        result = InstallResult(
            host=host,
            state=ProvisioningState.UNPROBED,
            subject_names=build_subject_names(host, alt_names),
        )
        executor: RemoteExecutor | None = None
        try:
            executor = self._open_session(host_config, host)
            self._run(executor, host_config, result)
        except ProvisioningError as e:
            e.state = result.state
            result.state = ProvisioningState.FAILED
            raise
        finally:
            if executor is not None:
                executor.close()

        result.state = ProvisioningState.DONE
        return result

    def _run(self, executor: RemoteExecutor, host_config: HostConfig, result: InstallResult) -> None:
        host = executor.identity()

        LOGGER.info("%s - generate cert for subjects - %s", host, result.subject_names)
        try:
            server_cert = self.certificate_authority.generate_server_certificate(
                host_config.cert_path, host_config.organization, result.subject_names
            )
        except Exception as e:
            raise CertificateGenerationFailed(host, str(e)) from e

        LOGGER.info("%s - configure docker engine", host)
        try:
            executor.escalate()
        except Exception as e:
            raise EscalationFailed(host, str(e)) from e

        self._check_cancelled(host)
        self._wait_reachable(executor, host)
        result.state = ProvisioningState.REACHABLE

        self._check_cancelled(host)
        result.artifacts.extend(self._send_certificates(executor, host, server_cert))
        result.state = ProvisioningState.CERTIFICATES_DEPLOYED

        self._check_cancelled(host)
        self._configure_tls(executor, host, server_cert)
        result.artifacts.append(DAEMON_CONFIG_PATH)
        result.state = ProvisioningState.CONFIG_PATCHED
        LOGGER.info("%s - Configured Docker Engine", host)

        self._check_cancelled(host)
        self._restart_engine(executor, host)
        result.state = ProvisioningState.SERVICE_RESTARTED

    def _open_session(self, host_config: HostConfig, host: str) -> RemoteExecutor:
        try:
            return self.executor_factory(host_config, host)
        except Exception as e:
            raise SessionOpenFailed(host, str(e)) from e

    def _check_cancelled(self, host: str) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise ProvisioningCancelled(host, "run cancelled")

    def _wait_reachable(self, executor: RemoteExecutor, host: str) -> None:
        try:
            ready = wait_until_ready(
                lambda: executor.run(PROBE_COMMAND),
                attempts=self.attempts,
                delay=self.delay,
                sleep=self.sleep,
                cancel=self.cancel,
            )
        except OperationCancelled as e:
            raise ProvisioningCancelled(host, "run cancelled while waiting for host") from e
        if not ready:
            raise HostUnreachable(host, f"unable to contact remote after {self.attempts} attempts")

    def _send_certificates(
        self, executor: RemoteExecutor, host: str, server_cert: ServerCertificate
    ) -> list[str]:
        sent = []
        for block, mode, label in (
            (server_cert.cert, CERT_MODE, "Cert"),
            (server_cert.key, KEY_MODE, "Key"),
            (server_cert.ca, CA_MODE, "CA"),
        ):
            path = remote_path(block)
            try:
                executor.copy(block.content, path, mode)
            except Exception as e:
                raise TransferFailed(host, block.name, path, str(e)) from e
            sent.append(path)
            LOGGER.info("%s - %s sent", host, label)
        return sent

    def _configure_tls(
        self, executor: RemoteExecutor, host: str, server_cert: ServerCertificate
    ) -> None:
        buf = io.BytesIO()
        try:
            executor.load(DAEMON_CONFIG_PATH, buf)
        except Exception as e:
            raise ConfigLoadFailed(host, f"{DAEMON_CONFIG_PATH}: {e}") from e

        try:
            daemon_config = DaemonConfig.parse(buf.getvalue())
        except ValueError as e:
            raise ConfigParseFailed(host, str(e)) from e

        daemon_config.add_host(ENGINE_TLS_ADDRESS)
        daemon_config.tls_verify = True
        daemon_config.tls_ca_cert = remote_path(server_cert.ca)
        daemon_config.tls_cert = remote_path(server_cert.cert)
        daemon_config.tls_key = remote_path(server_cert.key)

        try:
            executor.copy(daemon_config.serialize(), DAEMON_CONFIG_PATH, DAEMON_CONFIG_MODE)
        except Exception as e:
            raise ConfigWriteFailed(host, f"{DAEMON_CONFIG_PATH}: {e}") from e

    def _restart_engine(self, executor: RemoteExecutor, host: str) -> None:
        # Stop is best effort: the engine may already be down
        try:
            executor.run(STOP_COMMAND)
            LOGGER.info("%s - Stopped Docker Engine", host)
        except Exception as e:
            LOGGER.warning("%s - Stopping Docker Engine failed, starting anyway: %s", host, e)

        try:
            executor.run(START_COMMAND)
        except Exception as e:
            raise ServiceRestartFailed(host, str(e)) from e
        LOGGER.info("%s - Started Docker Engine", host)
