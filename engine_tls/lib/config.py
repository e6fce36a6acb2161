"""Configuration dataclasses for certificate generation and host access."""

import os
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.x509 import oid

DEFAULT_CERT_PATH = "~/.machine"
DEFAULT_ORGANIZATION = "podd.org"
DEFAULT_SSH_PORT = 22


@dataclass
class CAConfig:
    """Self-signed CA settings used for engine and client certificates."""

    organization: str = DEFAULT_ORGANIZATION
    country: str = "US"
    state: str = ""
    locality: str = ""
    organizational_unit: str = "Engine"
    ca_validity_years: int = 10
    server_validity_days: int = 1095
    client_validity_days: int = 1095
    key_size: int = 2048


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name.

    Empty optional attributes are left out of the encoded name.
    """

    organization: str
    common_name: str
    country: str = ""
    state: str = ""
    locality: str = ""
    organizational_unit: str = ""

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        attributes = [
            (oid.NameOID.COUNTRY_NAME, self.country),
            (oid.NameOID.STATE_OR_PROVINCE_NAME, self.state),
            (oid.NameOID.LOCALITY_NAME, self.locality),
            (oid.NameOID.ORGANIZATION_NAME, self.organization),
            (oid.NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
            (oid.NameOID.COMMON_NAME, self.common_name),
        ]
        return x509.Name([x509.NameAttribute(name_oid, value) for name_oid, value in attributes if value])


@dataclass(frozen=True)
class HostConfig:
    """Per-invocation host settings passed explicitly into the provisioner.

    Attributes:
        cert_path: Local directory holding the CA material
        organization: Organization written into issued certificates
        user: SSH login user
        key_file: Private key used for SSH authentication
        is_docker: Whether the host runs a managed Docker Engine
        port: SSH port
    """

    cert_path: Path
    organization: str = DEFAULT_ORGANIZATION
    user: str | None = None
    key_file: str | None = None
    is_docker: bool = True
    port: int = DEFAULT_SSH_PORT


def resolve_cert_path(cert_path: str | Path) -> Path:
    """Expand ``~``, make absolute and create the certificate directory (0700)."""
    path = Path(cert_path).expanduser().absolute()
    path.mkdir(mode=0o700, parents=True, exist_ok=True)
    return path


def env_default(name: str, default: str | None = None) -> str | None:
    """Return environment override for a CLI flag, or default."""
    value = os.environ.get(name)
    return value if value else default
