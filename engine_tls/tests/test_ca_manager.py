"""Tests for CertificateAuthority."""

import stat
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from engine_tls.lib.ca_manager import CertificateAuthority
from engine_tls.lib.cert_utils import (
    deserialize_certificate,
    deserialize_private_key,
    subject_alt_name_values,
)
from engine_tls.lib.models import PemRole


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestBootstrap:
    """Tests for bootstrap() - CA and client certificate."""

    def test_creates_docker_layout(
        self, temp_output_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        """Bootstrap writes ca.pem, ca-key.pem, cert.pem and key.pem."""
        cert_dir = temp_output_dir / "machine"
        result = certificate_authority.bootstrap(cert_dir)

        assert result.ca_created is True
        for name in ("ca.pem", "ca-key.pem", "cert.pem", "key.pem"):
            assert (cert_dir / name).exists()

    def test_key_files_are_private(
        self, temp_output_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        result = certificate_authority.bootstrap(temp_output_dir)

        assert _mode(result.ca_key_path) == 0o600
        assert _mode(result.client_key_path) == 0o600
        assert _mode(result.ca_cert_path) == 0o644
        assert _mode(result.client_cert_path) == 0o644

    def test_client_cert_signed_by_ca(
        self, temp_output_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        result = certificate_authority.bootstrap(temp_output_dir, "podd.org")

        ca_cert = deserialize_certificate(result.ca_cert_path.read_bytes())
        client_cert = deserialize_certificate(result.client_cert_path.read_bytes())
        client_cert.verify_directly_issued_by(ca_cert)

        eku = client_cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
        assert ExtendedKeyUsageOID.CLIENT_AUTH in eku
        org = client_cert.subject.get_attributes_for_oid(NameOID.ORGANIZATION_NAME)[0].value
        assert org == "podd.org"

    def test_existing_ca_is_reused(
        self, temp_output_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        """A second bootstrap keeps the CA and issues a new client certificate."""
        first = certificate_authority.bootstrap(temp_output_dir)
        ca_pem = first.ca_cert_path.read_bytes()

        second = certificate_authority.bootstrap(temp_output_dir)

        assert second.ca_created is False
        assert second.ca_cert_path.read_bytes() == ca_pem


class TestGenerateServerCertificate:
    """Tests for generate_server_certificate()."""

    def test_returns_named_blocks(
        self, bootstrapped_cert_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        server = certificate_authority.generate_server_certificate(
            bootstrapped_cert_dir, "Test Org", ["engine.example", "localhost", "127.0.0.1"]
        )

        assert (server.ca.name, server.ca.role) == ("ca.pem", PemRole.CA)
        assert (server.cert.name, server.cert.role) == ("server-cert.pem", PemRole.CERTIFICATE)
        assert (server.key.name, server.key.role) == ("server-key.pem", PemRole.KEY)
        assert server.ca.content == (bootstrapped_cert_dir / "ca.pem").read_bytes()

    def test_san_order_and_types(
        self, bootstrapped_cert_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        """IP literals become IPAddress entries and order is kept."""
        names = ["10.0.0.5", "localhost", "127.0.0.1", "db.internal"]
        server = certificate_authority.generate_server_certificate(bootstrapped_cert_dir, "Test Org", names)

        cert = deserialize_certificate(server.cert.content)
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        assert subject_alt_name_values(cert) == names
        assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == ["10.0.0.5", "127.0.0.1"]
        assert san.get_values_for_type(x509.DNSName) == ["localhost", "db.internal"]

    def test_cert_matches_key_and_ca(
        self, bootstrapped_cert_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        server = certificate_authority.generate_server_certificate(
            bootstrapped_cert_dir, "Test Org", ["engine.example"]
        )

        cert = deserialize_certificate(server.cert.content)
        key = deserialize_private_key(server.key.content)
        cert.verify_directly_issued_by(deserialize_certificate(server.ca.content))
        assert cert.public_key().public_numbers() == key.public_key().public_numbers()

        cn = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
        assert cn == "engine.example"
        eku = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
        assert ExtendedKeyUsageOID.SERVER_AUTH in eku

    def test_missing_ca_raises(
        self, temp_output_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        with pytest.raises(FileNotFoundError, match="CA cert not found"):
            certificate_authority.generate_server_certificate(temp_output_dir, "Test Org", ["engine.example"])

    def test_empty_subject_names_raises(
        self, bootstrapped_cert_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        with pytest.raises(ValueError, match="subject name"):
            certificate_authority.generate_server_certificate(bootstrapped_cert_dir, "Test Org", [])

    def test_duplicate_names_are_accepted(
        self, bootstrapped_cert_dir: Path, certificate_authority: CertificateAuthority
    ) -> None:
        names = ["localhost", "localhost", "127.0.0.1"]
        server = certificate_authority.generate_server_certificate(bootstrapped_cert_dir, "Test Org", names)

        assert subject_alt_name_values(deserialize_certificate(server.cert.content)) == names
