"""Command-line interface for shunt."""

import argparse
import logging
import os
import sys

from shunt import __version__
from shunt.colors import supports_color
from shunt.config import get_grace_period, get_shutdown_policy, load_config
from shunt.errors import ConfigError, WriteError
from shunt.models import ShutdownPolicy
from shunt.resolve import resolve_commands
from shunt.supervisor import Supervisor, aggregate_exit_code
from shunt.writer import TerminalWriter

log = logging.getLogger("shunt")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="shunt",
        description="Run several commands at once and interleave their output, line by line",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--shutdown",
        choices=[policy.value for policy in ShutdownPolicy],
        help="What to do when one command exits (default: continue)",
    )
    parser.add_argument(
        "--grace-period",
        type=float,
        metavar="SECONDS",
        help="How long to wait after forwarding a signal before killing commands",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Never color command prefixes",
    )
    parser.add_argument("config", help="Path to a JSON or JSON5 configuration file")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        shutdown = get_shutdown_policy(config, args.shutdown)
        grace_period = get_grace_period(config, args.grace_period)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    commands = resolve_commands(config.commands, config.config_dir, os.environ)
    is_outer_tty = sys.stdout.isatty()
    writer = TerminalWriter(
        sys.stdout.buffer,
        names=[command.name for command in commands],
        color=not args.no_color and supports_color(sys.stdout),
    )
    supervisor = Supervisor(
        writer,
        is_outer_tty=is_outer_tty,
        shutdown=shutdown,
        grace_period=grace_period,
    )
    supervisor.install_signal_handlers()
    log.debug(
        "running %d command(s), shutdown=%s grace_period=%s",
        len(commands),
        shutdown.value,
        grace_period,
    )

    try:
        outcomes = supervisor.run_all(commands)
    except WriteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return aggregate_exit_code(outcomes)


def entrypoint() -> None:
    """Console script entrypoint."""
    raise SystemExit(main())
