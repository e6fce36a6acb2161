#!/usr/bin/env python3
"""Generate a server certificate signed by the local CA and write it to disk."""

import argparse
import sys
from pathlib import Path

from engine_tls.lib.ca_manager import CertificateAuthority
from engine_tls.lib.config import DEFAULT_CERT_PATH, DEFAULT_ORGANIZATION, CAConfig, resolve_cert_path
from engine_tls.lib.logging_config import LOGGER


def main(argv: list[str] | None = None) -> int:
    """Write server-cert.pem (0644) and server-key.pem (0600) to the output directory.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Generate server certificate with self-signed CA")
    parser.add_argument("--host", required=True, help="Generate certificate for Host")
    parser.add_argument(
        "--altname",
        action="append",
        default=[],
        help="Alternative name for Host (repeatable)",
    )
    parser.add_argument("--certpath", default=DEFAULT_CERT_PATH, help="Certificate path")
    parser.add_argument("--organization", default=DEFAULT_ORGANIZATION, help="Organization for CA")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for server-cert.pem and server-key.pem (default: current directory)",
    )
    args = parser.parse_args(argv)

    try:
        cert_path = resolve_cert_path(args.certpath)
        ca = CertificateAuthority(CAConfig(organization=args.organization))

        subject_names = [args.host, *args.altname]
        LOGGER.info("Generating server certificate for: %s", subject_names)
        server_cert = ca.generate_server_certificate(cert_path, args.organization, subject_names)

        args.output_dir.mkdir(parents=True, exist_ok=True)
        cert_file = args.output_dir / server_cert.cert.name
        key_file = args.output_dir / server_cert.key.name
        cert_file.write_bytes(server_cert.cert.content)
        cert_file.chmod(0o644)
        key_file.write_bytes(server_cert.key.content)
        key_file.chmod(0o600)

        LOGGER.info("Server certificate created:")
        LOGGER.info("  Cert: %s", cert_file)
        LOGGER.info("  Key: %s", key_file)
        return 0

    except FileNotFoundError as e:
        LOGGER.error("CA file not found, run bootstrap first: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Server certificate generation failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
