"""Certificate builder for the engine CA, server and client certificates."""

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import ExtendedKeyUsageOID

from .cert_utils import build_subject_alt_names, generate_serial_number
from .config import DistinguishedName


def _validate_csr(csr: x509.CertificateSigningRequest) -> rsa.RSAPublicKey:
    """Check CSR self-signature and return its RSA public key.

    Raises:
        ValueError: If signature is invalid or key is not RSA
    """
    if not csr.is_signature_valid:
        raise ValueError("CSR signature validation failed")
    public_key = csr.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ValueError("CSR public key must be RSA type")
    return public_key


def _leaf_key_usage() -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=True,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=False,
        crl_sign=False,
        encipher_only=False,
        decipher_only=False,
    )


class CertificateBuilder:
    """Builds X.509 certificates for the engine CA and its leaf certificates."""

    @staticmethod
    def build_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        validity_years: int,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        Args:
            subject_dn: Distinguished name for certificate subject
            private_key: RSA private key for signing
            validity_years: Certificate validity period in years

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_years * 365)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
        )

        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def build_server_certificate(
        csr: x509.CertificateSigningRequest,
        subject_names: list[str],
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        validity_days: int,
    ) -> x509.Certificate:
        """Build engine server certificate from CSR, signed by the CA.

        Args:
            csr: Certificate signing request for the engine host
            subject_names: SAN entries (host names and IP literals)
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            validity_days: Certificate validity period in days

        Returns:
            X.509 certificate usable for TLS server authentication

        Raises:
            ValueError: If CSR is invalid or no subject names are given
        """
        if not subject_names:
            raise ValueError("server certificate needs at least one subject name")
        public_key = _validate_csr(csr)

        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(_leaf_key_usage(), critical=False)
            .add_extension(
                x509.ExtendedKeyUsage(
                    [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
                ),
                critical=False,
            )
            .add_extension(build_subject_alt_names(subject_names), critical=False)
        )

        return builder.sign(issuer_key, hashes.SHA256())

    @staticmethod
    def build_client_certificate(
        csr: x509.CertificateSigningRequest,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        validity_days: int,
    ) -> x509.Certificate:
        """Build client certificate from CSR, signed by the CA.

        The Docker CLI presents this certificate when talking to a TLS-verified engine.

        Args:
            csr: Certificate signing request from client
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            validity_days: Certificate validity period in days

        Returns:
            X.509 end-entity certificate for TLS client authentication

        Raises:
            ValueError: If CSR signature is invalid
        """
        public_key = _validate_csr(csr)

        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(_leaf_key_usage(), critical=False)
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
        )

        return builder.sign(issuer_key, hashes.SHA256())
