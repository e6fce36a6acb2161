"""Exception types raised by the engine TLS provisioning workflow."""

from .models import ProvisioningState


class RemoteCommandError(Exception):
    """Remote command exited non-zero or the SSH transport failed."""

    def __init__(self, command: str, exit_status: int | None = None, stderr: str = "") -> None:
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        if exit_status is None:
            message = f"{command!r} failed: {detail}"
        else:
            message = f"{command!r} exited with status {exit_status}: {detail}"
        super().__init__(message)


class DaemonConfigError(ValueError):
    """daemon.json content is not valid JSON or not a JSON object."""


class ProvisioningError(Exception):
    """Base class for a failed install run.

    Attributes:
        host: Host identity reported by the remote executor
        step: Name of the step that failed
        state: Last state the run reached before failing
    """

    step = "provision"

    def __init__(self, host: str, message: str) -> None:
        self.host = host
        self.state: ProvisioningState | None = None
        super().__init__(f"{host} - {self.step}: {message}")


class HostUnreachable(ProvisioningError):
    step = "probe"


class SessionOpenFailed(ProvisioningError):
    step = "open_session"


class CertificateGenerationFailed(ProvisioningError):
    step = "generate_certificate"


class EscalationFailed(ProvisioningError):
    step = "escalate"


class TransferFailed(ProvisioningError):
    step = "deploy_certificates"

    def __init__(self, host: str, artifact: str, remote_path: str, message: str) -> None:
        self.artifact = artifact
        self.remote_path = remote_path
        super().__init__(host, f"copy {artifact} to {remote_path} failed: {message}")


class ConfigLoadFailed(ProvisioningError):
    step = "load_config"


class ConfigParseFailed(ProvisioningError):
    step = "parse_config"


class ConfigWriteFailed(ProvisioningError):
    step = "write_config"


class ServiceRestartFailed(ProvisioningError):
    step = "restart_service"


class ProvisioningCancelled(ProvisioningError):
    step = "cancelled"


class OperationCancelled(Exception):
    """Raised by wait_until_ready when its cancel event is set."""
