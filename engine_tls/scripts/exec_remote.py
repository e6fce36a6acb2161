#!/usr/bin/env python3
"""Run a command or a local script on one or more remote hosts over SSH."""

import argparse
import sys
from collections.abc import Callable, Iterable
from pathlib import Path

from engine_tls.lib.config import DEFAULT_SSH_PORT, env_default
from engine_tls.lib.errors import RemoteCommandError
from engine_tls.lib.logging_config import LOGGER
from engine_tls.lib.ssh_client import RemoteExecutor, SSHCommander, SSHConfig


def run_on_hosts(
    hosts: Iterable[str],
    command: str,
    user: str | None = None,
    key_file: str | None = None,
    port: int = DEFAULT_SSH_PORT,
    sudo: bool = False,
    dry_run: bool = False,
    executor_factory: Callable[[SSHConfig], RemoteExecutor] | None = None,
) -> None:
    """Run ``command`` on each host in turn, stopping at the first failure.

    Each host gets its own session, closed before the next host starts.
    Remote stdout is written to this process's stdout. Sessions are
    SSHCommander instances unless ``executor_factory`` is given.

    Raises:
        RemoteCommandError: If the command fails on a host
    """
    factory = executor_factory or SSHCommander
    for host in hosts:
        if dry_run:
            LOGGER.info("%s - dry run, would execute: %s", host, command)
            continue

        executor = factory(SSHConfig(server=host, user=user, key_file=key_file, port=port))
        try:
            if sudo:
                executor.escalate()
            LOGGER.info("%s - executing command", host)
            output = executor.run(command)
        except RemoteCommandError:
            LOGGER.error("%s - command failed", host)
            raise
        finally:
            executor.close()

        sys.stdout.write(output)


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--host",
        action="append",
        required=True,
        help="Remote host to run command in (repeatable)",
    )
    common.add_argument(
        "--user",
        default=env_default("MACHINE_USER"),
        help="Run command as user (env: MACHINE_USER)",
    )
    common.add_argument(
        "--cert",
        default=env_default("MACHINE_CERT_FILE"),
        help="Private key to use in Authentication (env: MACHINE_CERT_FILE)",
    )
    common.add_argument(
        "--port",
        type=int,
        default=env_default("MACHINE_PORT", str(DEFAULT_SSH_PORT)),
        help=f"SSH port (env: MACHINE_PORT, default: {DEFAULT_SSH_PORT})",
    )
    common.add_argument("--sudo", action="store_true", help="Run as sudo for this session")
    common.add_argument("--dryrun", action="store_true", help="Log what would run without connecting")

    parser = argparse.ArgumentParser(description="Invoke command on remote host via SSH")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    run_parser = subparsers.add_parser("run", parents=[common], help="Invoke command from argument")
    run_parser.add_argument("command", nargs="+", help="Command and its arguments")

    script_parser = subparsers.add_parser("script", parents=[common], help="Invoke local script file")
    script_parser.add_argument("script", type=Path, help="Path to the script to run remotely")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run a command (``run``) or script (``script``) on every ``--host``.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = _build_parser().parse_args(argv)

    try:
        if args.mode == "script":
            command = args.script.read_text()
        else:
            command = " ".join(args.command)

        run_on_hosts(
            args.host,
            command,
            user=args.user,
            key_file=args.cert,
            port=args.port,
            sudo=args.sudo,
            dry_run=args.dryrun,
        )
        return 0

    except Exception as e:
        LOGGER.error("Remote exec failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
