"""Command line entry point: version information and migrations."""

from __future__ import annotations

import argparse
import json
import os
import platform
import sys
from typing import Callable

import yaml

from chainindexer.config_migration import run_migration

VERSION = ""
COMMIT = ""
APP_NAME = "chainindexer"

_MIGRATIONS: dict[str, Callable[[str], object]] = {
    "v4": run_migration,
}

_LONG_DESCRIPTION = f"""A Chain chain data aggregator. It improves the chain's data accessibility
by providing an indexed database exposing aggregated resources and models such as blocks, validators, pre-commits,
transactions, and various aspects of the governance module.
{APP_NAME} is meant to run with a GraphQL layer on top so that it even further eases the ability for developers and
downstream clients to answer queries such as "What is the average gas cost of a block?" while also allowing
them to compose more aggregate and complex queries."""

_MIGRATE_DESCRIPTION = """Migrates all the necessary things (config file, database, etc) from the current version to the new one.
Note that migrations must be performed in order: to migrate from vX to vX+2 you need to do vX -> vX+1 and then vX+1 -> vX+2."""


def version_info(output_format: str = "text") -> str:
    """Describe the application version as JSON or, for any other format, YAML."""
    info = {
        "version": VERSION,
        "commit": COMMIT,
        "python": f"{platform.python_version()} {sys.platform}/{platform.machine()}",
    }
    if output_format == "json":
        return json.dumps(info, separators=(",", ":"))
    return yaml.safe_dump(info, sort_keys=False)


def available_versions() -> list[str]:
    return list(_MIGRATIONS)


def run_migrate(version: str, home: str) -> None:
    """Run the migration towards the given version on the home directory."""
    try:
        migrator = _MIGRATIONS[version]
    except KeyError:
        raise ValueError(f"migration for version {version} not found") from None
    migrator(home)


def _default_home() -> str:
    return os.path.join(os.path.expanduser("~"), f".{APP_NAME}")


def _print(text: str) -> None:
    sys.stdout.write(text if text.endswith("\n") else text + "\n")


def _cmd_version(args: argparse.Namespace) -> None:
    _print(version_info(args.format))


def _cmd_migrate(args: argparse.Namespace) -> None:
    if args.version is None:
        print("Please specify a version to migrate to. Available versions:")
        for version in available_versions():
            print("-", version)
        return
    run_migrate(args.version, args.home)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME} is a Chain SDK-based chain data aggregator and exporter",
        epilog=_LONG_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    home_help = "Set the home folder of the application, where all files will be stored"
    parser.add_argument("--home", default=_default_home(), help=home_help)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--home", default=argparse.SUPPRESS, help=home_help)

    subparsers = parser.add_subparsers(dest="command")

    version = subparsers.add_parser("version", parents=[common], help="Print the version information")
    version.add_argument(
        "--format", default="text", help="Print the version in the given format (text | json)"
    )
    version.set_defaults(handler=_cmd_version)

    migrate = subparsers.add_parser(
        "migrate",
        parents=[common],
        help="Perform the migrations from the current version to the specified one",
        description=_MIGRATE_DESCRIPTION,
        epilog=f"Example: {APP_NAME} migrate v4",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    migrate.add_argument("version", nargs="?", metavar="to-version")
    migrate.set_defaults(handler=_cmd_migrate)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    try:
        args.handler(args)
    except (OSError, ValueError, RuntimeError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())