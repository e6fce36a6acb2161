#!/usr/bin/env python3
"""Generate and install TLS certificates on a remote Docker Engine."""

import argparse
import sys

from engine_tls.lib.ca_manager import CertificateAuthority
from engine_tls.lib.config import (
    DEFAULT_CERT_PATH,
    DEFAULT_ORGANIZATION,
    DEFAULT_SSH_PORT,
    CAConfig,
    HostConfig,
    env_default,
    resolve_cert_path,
)
from engine_tls.lib.errors import ProvisioningError
from engine_tls.lib.logging_config import LOGGER
from engine_tls.lib.provisioner import EngineProvisioner


def build_host_config(args: argparse.Namespace) -> HostConfig:
    """Build the per-invocation HostConfig from parsed arguments."""
    return HostConfig(
        cert_path=resolve_cert_path(args.certpath),
        organization=args.organization,
        user=args.user,
        key_file=args.cert,
        is_docker=True,
        port=args.port,
    )


def main(argv: list[str] | None = None) -> int:
    """Install engine certificates on one host.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Generate and install certificate for Docker Engine")
    parser.add_argument("--host", required=True, help="Generate certificate for Host")
    parser.add_argument(
        "--altname",
        action="append",
        default=[],
        help="Alternative name for Host (repeatable)",
    )
    parser.add_argument(
        "--user",
        default=env_default("MACHINE_USER"),
        help="Run command as user (env: MACHINE_USER)",
    )
    parser.add_argument(
        "--cert",
        default=env_default("MACHINE_CERT_FILE"),
        help="Private key to use in Authentication (env: MACHINE_CERT_FILE)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=env_default("MACHINE_PORT", str(DEFAULT_SSH_PORT)),
        help=f"SSH port (env: MACHINE_PORT, default: {DEFAULT_SSH_PORT})",
    )
    parser.add_argument("--certpath", default=DEFAULT_CERT_PATH, help="Certificate path")
    parser.add_argument("--organization", default=DEFAULT_ORGANIZATION, help="Organization for CA")
    args = parser.parse_args(argv)

    try:
        host_config = build_host_config(args)
        provisioner = EngineProvisioner(CertificateAuthority(CAConfig(organization=args.organization)))

        result = provisioner.install_certificate(host_config, args.host, args.altname)

        LOGGER.info("Docker Engine TLS installed on %s", result.host)
        for path in result.artifacts:
            LOGGER.info("  Wrote: %s", path)
        return 0

    except ProvisioningError as e:
        LOGGER.error("Certificate install failed at %s: %s", e.step, e)
        return 1
    except Exception as e:
        LOGGER.error("Certificate install failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
