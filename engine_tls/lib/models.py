"""Data models shared by the certificate authority and the provisioner."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class PemRole(Enum):
    """Role of a PEM artifact in the engine TLS setup."""

    CA = "ca"
    CERTIFICATE = "certificate"
    KEY = "key"


@dataclass(frozen=True)
class PemBlock:
    """Named PEM artifact; ``name`` doubles as the remote file name."""

    name: str
    content: bytes
    role: PemRole

    def __len__(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class ServerCertificate:
    """CA, server certificate and server key issued for one engine host."""

    ca: PemBlock
    cert: PemBlock
    key: PemBlock


@dataclass
class BootstrapResult:
    """Result from CA bootstrap.

    Contains file paths for the CA and the client certificate used by the Docker CLI.
    """

    ca_key_path: Path
    ca_cert_path: Path
    client_key_path: Path
    client_cert_path: Path
    ca_created: bool


class ProvisioningState(Enum):
    """Progress of a single certificate install run."""

    UNPROBED = "unprobed"
    REACHABLE = "reachable"
    CERTIFICATES_DEPLOYED = "certificates_deployed"
    CONFIG_PATCHED = "config_patched"
    SERVICE_RESTARTED = "service_restarted"
    DONE = "done"
    FAILED = "failed"


@dataclass
class InstallResult:
    """Outcome of EngineProvisioner.install_certificate.

    ``artifacts`` lists remote paths in the order they were written.
    """

    host: str
    state: ProvisioningState
    skipped: bool = False
    subject_names: list[str] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)
