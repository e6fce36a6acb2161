#!/usr/bin/env python3
"""Bootstrap local CA and Docker CLI client certificate."""

import argparse
import sys

from engine_tls.lib.ca_manager import CertificateAuthority
from engine_tls.lib.config import DEFAULT_CERT_PATH, DEFAULT_ORGANIZATION, CAConfig, resolve_cert_path
from engine_tls.lib.logging_config import LOGGER


def main(argv: list[str] | None = None) -> int:
    """Create CA (if absent) and client certificate in the cert path.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Generate CA and client certificate for TLS")
    parser.add_argument(
        "--certpath",
        default=DEFAULT_CERT_PATH,
        help=f"Certificate path (default: {DEFAULT_CERT_PATH})",
    )
    parser.add_argument(
        "--organization",
        default=DEFAULT_ORGANIZATION,
        help=f"Organization for CA (default: {DEFAULT_ORGANIZATION})",
    )
    args = parser.parse_args(argv)

    try:
        cert_path = resolve_cert_path(args.certpath)
        ca = CertificateAuthority(CAConfig(organization=args.organization))

        LOGGER.info("Bootstrapping TLS material in %s", cert_path)
        result = ca.bootstrap(cert_path, args.organization)

        LOGGER.info("CA %s:", "created" if result.ca_created else "reused")
        LOGGER.info("  Key: %s", result.ca_key_path)
        LOGGER.info("  Cert: %s", result.ca_cert_path)
        LOGGER.info("Client certificate created:")
        LOGGER.info("  Key: %s", result.client_key_path)
        LOGGER.info("  Cert: %s", result.client_cert_path)
        return 0

    except Exception as e:
        LOGGER.error("TLS bootstrap failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
