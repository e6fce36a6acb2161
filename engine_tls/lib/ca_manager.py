"""Local certificate authority for Docker Engine TLS material."""

from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .cert_utils import (
    deserialize_certificate,
    deserialize_private_key,
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from .certificate_builder import CertificateBuilder
from .config import CAConfig, DistinguishedName
from .logging_config import LOGGER
from .models import BootstrapResult, PemBlock, PemRole, ServerCertificate

CA_CERT_FILE = "ca.pem"
CA_KEY_FILE = "ca-key.pem"
CLIENT_CERT_FILE = "cert.pem"
CLIENT_KEY_FILE = "key.pem"
SERVER_CERT_FILE = "server-cert.pem"
SERVER_KEY_FILE = "server-key.pem"


def _write_file(path: Path, data: bytes, mode: int) -> None:
    path.write_bytes(data)
    path.chmod(mode)


class CertificateAuthority:
    """Self-signed CA kept in a local certificate directory.

    Layout of the directory follows the Docker CLI convention: ``ca.pem``,
    ``ca-key.pem`` and the client pair ``cert.pem``/``key.pem``.
    """

    def __init__(self, config: CAConfig | None = None) -> None:
        """Initialize certificate authority.

        Args:
            config: CA configuration with validity periods and key size
        """
        self.config = config or CAConfig()

    def _dn(self, organization: str, common_name: str) -> DistinguishedName:
        return DistinguishedName(
            organization=organization,
            common_name=common_name,
            country=self.config.country,
            state=self.config.state,
            locality=self.config.locality,
            organizational_unit=self.config.organizational_unit,
        )

    def _csr(
        self, organization: str, common_name: str, key: RSAPrivateKey
    ) -> x509.CertificateSigningRequest:
        return (
            x509.CertificateSigningRequestBuilder()
            .subject_name(self._dn(organization, common_name).to_x509_name())
            .sign(key, hashes.SHA256())
        )

    def load_ca(self, cert_path: Path) -> tuple[RSAPrivateKey, x509.Certificate]:
        """Load CA key and certificate from the certificate directory.

        Raises:
            FileNotFoundError: If CA key or certificate is missing
        """
        ca_cert_path = cert_path / CA_CERT_FILE
        ca_key_path = cert_path / CA_KEY_FILE

        if not ca_cert_path.exists():
            raise FileNotFoundError(f"CA cert not found: {ca_cert_path}")
        if not ca_key_path.exists():
            raise FileNotFoundError(f"CA key not found: {ca_key_path}")

        ca_key = deserialize_private_key(ca_key_path.read_bytes())
        ca_cert = deserialize_certificate(ca_cert_path.read_bytes())
        return ca_key, ca_cert

    def bootstrap(self, cert_path: Path, organization: str | None = None) -> BootstrapResult:
        """Create CA (if absent) and a client certificate in ``cert_path``.

        An existing CA is reused so previously issued engine certificates stay valid.

        Args:
            cert_path: Certificate directory
            organization: Organization for CA and client subjects

        Returns:
            BootstrapResult with file paths and whether a new CA was created
        """
        organization = organization or self.config.organization
        cert_path.mkdir(mode=0o700, parents=True, exist_ok=True)

        ca_cert_path = cert_path / CA_CERT_FILE
        ca_key_path = cert_path / CA_KEY_FILE
        ca_created = not (ca_cert_path.exists() and ca_key_path.exists())

        if ca_created:
            ca_key = generate_private_key(self.config.key_size)
            ca_cert = CertificateBuilder.build_ca(
                subject_dn=self._dn(organization, organization),
                private_key=ca_key,
                validity_years=self.config.ca_validity_years,
            )
            _write_file(ca_key_path, serialize_private_key(ca_key), 0o600)
            _write_file(ca_cert_path, serialize_certificate(ca_cert), 0o644)
            LOGGER.info("Created CA in %s", cert_path)
        else:
            ca_key, ca_cert = self.load_ca(cert_path)
            LOGGER.info("Reusing CA in %s", cert_path)

        client_key = generate_private_key(self.config.key_size)
        client_cert = CertificateBuilder.build_client_certificate(
            csr=self._csr(organization, "client", client_key),
            issuer_cert=ca_cert,
            issuer_key=ca_key,
            validity_days=self.config.client_validity_days,
        )

        client_key_path = cert_path / CLIENT_KEY_FILE
        client_cert_path = cert_path / CLIENT_CERT_FILE
        _write_file(client_key_path, serialize_private_key(client_key), 0o600)
        _write_file(client_cert_path, serialize_certificate(client_cert), 0o644)

        return BootstrapResult(
            ca_key_path=ca_key_path,
            ca_cert_path=ca_cert_path,
            client_key_path=client_key_path,
            client_cert_path=client_cert_path,
            ca_created=ca_created,
        )

    def generate_server_certificate(
        self,
        cert_path: Path,
        organization: str,
        subject_names: list[str],
    ) -> ServerCertificate:
        """Issue a server certificate for an engine host.

        The first subject name becomes the CN; all names go into the SAN extension.

        Args:
            cert_path: Certificate directory holding the CA
            organization: Organization for the certificate subject
            subject_names: Host names and IP literals, in SAN order

        Returns:
            ServerCertificate with CA, certificate and key PEM blocks

        Raises:
            FileNotFoundError: If the CA has not been bootstrapped
            ValueError: If subject_names is empty
        """
        if not subject_names:
            raise ValueError("at least one subject name is required")

        ca_key, ca_cert = self.load_ca(cert_path)

        server_key = generate_private_key(self.config.key_size)
        server_cert = CertificateBuilder.build_server_certificate(
            csr=self._csr(organization, subject_names[0], server_key),
            subject_names=subject_names,
            issuer_cert=ca_cert,
            issuer_key=ca_key,
            validity_days=self.config.server_validity_days,
        )

        return ServerCertificate(
            ca=PemBlock(CA_CERT_FILE, serialize_certificate(ca_cert), PemRole.CA),
            cert=PemBlock(SERVER_CERT_FILE, serialize_certificate(server_cert), PemRole.CERTIFICATE),
            key=PemBlock(SERVER_KEY_FILE, serialize_private_key(server_key), PemRole.KEY),
        )
